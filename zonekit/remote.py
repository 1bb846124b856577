"""Administrative SSH channel to the global zone for kitchen-zone."""

from __future__ import annotations

import posixpath
import shlex
import socket
import threading
from pathlib import Path
from typing import List, Optional

try:
    import paramiko  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit(f"paramiko is required but not installed: {exc}")

from zonekit.exceptions import RemoteError, RemoteTimeoutError
from zonekit.models import CommandResult, ZoneConfig
from zonekit.utils import log

CONNECT_TIMEOUT = 30


def _drain(stream, sink: list) -> None:
    try:
        sink.append(stream.read())
    except (socket.timeout, paramiko.SSHException, OSError, EOFError) as exc:
        sink.append(exc)


class RemoteChannel:
    """One cached SSH session to the global zone.

    The session is opened on first use and reopened transparently when the
    transport has dropped. ``exec`` reports non-zero exits through the result;
    only transport failures raise.
    """

    def __init__(
        self,
        host: str,
        username: str,
        port: int = 22,
        key_filename: Optional[Path] = None,
        command_timeout: Optional[float] = None,
    ) -> None:
        self.host = host
        self.username = username
        self.port = port
        self.key_filename = key_filename
        self.command_timeout = command_timeout
        self._client: Optional[paramiko.SSHClient] = None

    @classmethod
    def from_config(cls, cfg: ZoneConfig) -> "RemoteChannel":
        return cls(
            host=cfg.global_zone_host,
            username=cfg.global_zone_username,
            port=cfg.global_zone_port,
            key_filename=cfg.global_zone_key,
            command_timeout=cfg.command_timeout,
        )

    def __enter__(self) -> "RemoteChannel":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        if self._client is None:
            return False
        transport = self._client.get_transport()
        return transport is not None and transport.is_active()

    def connect(self) -> paramiko.SSHClient:
        if self.connected:
            return self._client  # type: ignore[return-value]
        self.close()
        log("DEBUG", f"Opening SSH session to {self.username}@{self.host}:{self.port}")
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        kwargs = {
            "hostname": self.host,
            "port": self.port,
            "username": self.username,
            "timeout": CONNECT_TIMEOUT,
            "allow_agent": True,
            "look_for_keys": True,
        }
        if self.key_filename is not None:
            kwargs["key_filename"] = str(self.key_filename)
        try:
            client.connect(**kwargs)
        except (paramiko.SSHException, OSError) as exc:
            client.close()
            raise RemoteError(f"Failed to connect to {self.username}@{self.host}:{self.port}: {exc}") from exc
        self._client = client
        return client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def exec(self, argv: List[str], input: Optional[str] = None, timeout: Optional[float] = None) -> CommandResult:
        """Run one command on the global zone and wait for it to finish."""
        command = shlex.join(argv)
        timeout = timeout if timeout is not None else self.command_timeout
        client = self.connect()
        log("DEBUG", f"Running on {self.host}: {command}")
        try:
            stdin, stdout, stderr = client.exec_command(command, timeout=timeout)
            if input is not None:
                stdin.write(input)
                stdin.flush()
            stdin.channel.shutdown_write()
            # stderr is read on its own thread while stdout drains.
            err_sink: list = []
            err_reader = threading.Thread(target=_drain, args=(stderr, err_sink), daemon=True)
            err_reader.start()
            out = stdout.read().decode("utf-8", errors="replace")
            err_reader.join(timeout)
            if not err_sink:
                raise socket.timeout("stderr not drained")
            if isinstance(err_sink[0], Exception):
                raise err_sink[0]
            err = err_sink[0].decode("utf-8", errors="replace")
            status = stdout.channel.recv_exit_status()
        except socket.timeout as exc:
            self.close()
            raise RemoteTimeoutError(f"Command timed out after {timeout}s on {self.host}: {command}") from exc
        except (paramiko.SSHException, OSError, EOFError) as exc:
            self.close()
            raise RemoteError(f"SSH command failed on {self.host}: {exc}\nCommand: {command}") from exc
        if status != 0:
            log("DEBUG", f"Exit {status} from {command}: {err.strip() or out.strip()}")
        return CommandResult(exit_status=status, stdout=out, stderr=err)

    def upload(self, local_path: Path, remote_dir: str) -> str:
        """Copy ``local_path`` into ``remote_dir``; returns the remote file path."""
        remote_path = posixpath.join(remote_dir, local_path.name)
        client = self.connect()
        log("DEBUG", f"Uploading {local_path} to {self.host}:{remote_path}")
        try:
            sftp = client.open_sftp()
            try:
                sftp.put(str(local_path), remote_path)
            finally:
                sftp.close()
        except (paramiko.SSHException, OSError, EOFError) as exc:
            self.close()
            raise RemoteError(f"Failed to upload {local_path} to {self.host}:{remote_dir}: {exc}") from exc
        return remote_path
