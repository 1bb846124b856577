"""Shared test fixtures: a scripted global zone and a baseline configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest

from zonekit.config import CONFIG_KEYS
from zonekit.models import CommandResult, ZoneConfig

DHCP_OUTPUT = (
    "ADDROBJ           TYPE     STATE        ADDR\n"
    "lo0/v4            static   ok           127.0.0.1/8\n"
    "net0/v4           dhcp     ok           10.0.0.5/24\n"
)
REMOTE_TMP = "/systems/zones/kitchen_tmp/tmp.Xa81Qz"
PUBLIC_KEY = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC7 kitchen@demo-ab12cd34"


class FakeChannel:
    """Stands in for RemoteChannel; records every command and upload.

    ``script(prefix, *results)`` queues results for commands whose argv starts
    with ``prefix``. The last queued result repeats once the queue runs dry.
    A queued exception is raised instead of returned.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[List[str], Optional[str]]] = []
        self.uploads: List[Tuple[str, str, str]] = []
        self.closed = False
        self._scripts: Dict[Tuple[str, ...], list] = {}

    def script(self, prefix, *results) -> None:
        self._scripts.setdefault(tuple(prefix), []).extend(results)

    def exec(self, argv, input=None, timeout=None) -> CommandResult:
        self.calls.append((list(argv), input))
        for prefix, queue in self._scripts.items():
            if tuple(argv[: len(prefix)]) == prefix and queue:
                result = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(result, Exception):
                    raise result
                return result
        if argv[0] == "mktemp":
            return CommandResult(0, REMOTE_TMP + "\n", "")
        if argv[0] == "/usr/sbin/zlogin":
            return CommandResult(0, DHCP_OUTPUT, "")
        return CommandResult(0, "", "")

    def upload(self, local_path: Path, remote_dir: str) -> str:
        self.uploads.append((local_path.name, remote_dir, local_path.read_text()))
        return f"{remote_dir}/{local_path.name}"

    def close(self) -> None:
        self.closed = True

    @property
    def commands(self) -> List[List[str]]:
        return [argv for argv, _ in self.calls]


@pytest.fixture
def fake_channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def fake_keys() -> MagicMock:
    keys = MagicMock()
    keys.read_public_key.return_value = PUBLIC_KEY
    return keys


@pytest.fixture
def default_zone_config(tmp_path) -> ZoneConfig:
    """Return a ZoneConfig with fast polling and keys under tmp_path."""
    local_dir = tmp_path / ".kitchen"
    return ZoneConfig(
        instance_name="demo",
        global_zone_host="gz.example.com",
        global_zone_username="root",
        global_zone_port=22,
        global_zone_key=None,
        kitchen_user_name="kitchen",
        ssh_public_key=local_dir / "id_rsa.pub",
        ssh_private_key=local_dir / "id_rsa",
        ssh_key_bits=2048,
        zone_comment="test zone",
        zone_lower_link="kitchenstub0",
        zone_path_root="/systems/zones/",
        zone_template="base",
        zone_name="demo-ab12cd34",
        zone_port=None,
        zone_ssh_port=22,
        nat_interface="net0",
        keep_config=False,
        network_timeout=30,
        network_interval=0,
        command_timeout=60,
        transport_host="gz.example.com",
        zone_password_hash="$2a$12$R9h/cIPz0gi.URNNX3kh2OPST9/PgBkqquzi.Ss7KIUgO2t0jWMUW",
        local_dir=local_dir,
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Clear every environment variable resolve_config() reads."""
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key.upper(), raising=False)
    monkeypatch.delenv("ZONE_CONFIG", raising=False)
