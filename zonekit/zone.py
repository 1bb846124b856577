"""Zone lifecycle management for kitchen-zone."""

from __future__ import annotations

import contextlib
import tempfile
import threading
import time
from pathlib import Path
from typing import Iterator, List, Optional, Set

from zonekit import commands
from zonekit.constants import DHCP_ADDR_RE, NAT_RULE_PORT_RE, REMOTE_TEMP_DIRNAME
from zonekit.exceptions import NetworkTimeoutError, RemoteError, ZoneCancelled, ZoneCommandError, ZoneError
from zonekit.keys import KeyPairProvisioner
from zonekit.models import (
    CommandResult,
    ProfileParams,
    RunState,
    StepFailure,
    ZoneConfig,
    ZoneConfigParams,
    ZonePhase,
)
from zonekit.remote import RemoteChannel
from zonekit.render import render_profile, render_zone_config
from zonekit.utils import ensure_directory, log, pick_port, write_private_file


class ZoneManager:
    def __init__(
        self,
        cfg: ZoneConfig,
        channel: Optional[RemoteChannel] = None,
        keys: Optional[KeyPairProvisioner] = None,
    ) -> None:
        self.cfg = cfg
        self.channel = channel if channel is not None else RemoteChannel.from_config(cfg)
        self.keys = keys if keys is not None else KeyPairProvisioner(
            cfg.ssh_public_key,
            cfg.ssh_private_key,
            comment=f"{cfg.kitchen_user_name}@{cfg.zone_name}",
            bits=cfg.ssh_key_bits,
        )
        self.cleanup_failures: List[StepFailure] = []

    def close(self) -> None:
        self.channel.close()

    # -- create -------------------------------------------------------------

    def create(self, state: RunState, cancel: Optional[threading.Event] = None) -> RunState:
        try:
            self.keys.ensure()
            state.phase = ZonePhase.KEYS_READY
            self.create_zone(state)
            self.setup_networking(state, cancel=cancel)
        except (ZoneCancelled, KeyboardInterrupt):
            log("WARN", f"Run for zone {state.zone_name or self.cfg.zone_name} cancelled; tearing down")
            try:
                self.destroy(state)
            except ZoneError as exc:
                log("WARN", f"Teardown after cancellation failed: {exc}")
            raise

        state.hostname = self.cfg.transport_host
        state.port = state.zone_port
        state.username = self.cfg.kitchen_user_name
        log("SUCCESS", f"Zone {state.zone_name} reachable at {state.hostname}:{state.port} as {state.username}")
        return state

    def create_zone(self, state: RunState) -> None:
        zone = state.zone_name = self.cfg.zone_name
        config_params = ZoneConfigParams(
            zone_path=self.cfg.zone_path_root + zone,
            zone_lower_link=self.cfg.zone_lower_link,
            zone_comment=self.cfg.zone_comment,
        )
        profile_params = ProfileParams(
            zone_name=zone,
            kitchen_user_name=self.cfg.kitchen_user_name,
            ssh_public_key=self.keys.read_public_key(),
            password_hash=self.cfg.zone_password_hash,
        )
        zone_cfg = render_zone_config(config_params)
        profile = render_profile(profile_params)

        with self._artifact_dir() as local_dir:
            cfg_path = local_dir / f"{zone}.cfg"
            profile_path = local_dir / f"{zone}_profile.xml"
            write_private_file(cfg_path, zone_cfg)
            write_private_file(profile_path, profile)

            tempdir = self._make_remote_tempdir()
            try:
                remote_cfg = self.channel.upload(cfg_path, tempdir)
                remote_profile = self.channel.upload(profile_path, tempdir)
                state.phase = ZonePhase.ARTIFACTS_STAGED

                log("INFO", f"Configuring zone {zone}")
                self._require("zonecfg", commands.zonecfg_apply(zone, remote_cfg))
                state.phase = ZonePhase.ZONE_CONFIGURED

                log("INFO", f"Cloning zone {zone} from template {self.cfg.zone_template}")
                self._require("zoneadm clone", commands.zoneadm_clone(zone, remote_profile, self.cfg.zone_template))
                state.phase = ZonePhase.ZONE_CLONED

                log("INFO", f"Booting zone {zone}")
                self._require("zoneadm boot", commands.zoneadm_boot(zone))
                state.phase = ZonePhase.ZONE_BOOTED
            finally:
                if self.cfg.keep_config:
                    log("INFO", f"Keeping zone config in {self.cfg.global_zone_host}:{tempdir}")
                else:
                    self._remove_remote_tempdir(tempdir)

    @contextlib.contextmanager
    def _artifact_dir(self) -> Iterator[Path]:
        if self.cfg.keep_config:
            ensure_directory(self.cfg.local_dir)
            yield self.cfg.local_dir
            return
        with tempfile.TemporaryDirectory(prefix="kitchen-zone-") as tmpdir:
            yield Path(tmpdir)

    def _make_remote_tempdir(self) -> str:
        temp_root = self.cfg.zone_path_root + REMOTE_TEMP_DIRNAME
        self._require("mkdir", commands.mkdir_p(temp_root))
        result = self._require("mktemp", commands.mktemp_dir(temp_root))
        tempdir = result.stdout.strip()
        if not tempdir:
            raise ZoneError(f"mktemp returned no directory under {temp_root}")
        return tempdir

    def _remove_remote_tempdir(self, tempdir: str) -> None:
        try:
            result = self.channel.exec(commands.remove_tree(tempdir))
        except RemoteError as exc:
            self._record(self.cleanup_failures, "rm", None, str(exc))
            return
        if not result.ok:
            self._record(self.cleanup_failures, "rm", result.exit_status, result.stderr.strip())

    def _require(self, step: str, argv: List[str], input: Optional[str] = None) -> CommandResult:
        result = self.channel.exec(argv, input=input)
        if not result.ok:
            raise ZoneCommandError(step, result)
        return result

    # -- networking ---------------------------------------------------------

    def setup_networking(self, state: RunState, cancel: Optional[threading.Event] = None) -> None:
        if state.zone_name is None:
            raise ZoneError("Cannot set up networking before the zone exists")
        state.phase = ZonePhase.NETWORK_PENDING
        state.zone_ip = self.wait_for_network(state.zone_name, cancel=cancel)

        port = self.cfg.zone_port or pick_port(self._ports_in_use())
        rule = commands.nat_rule(self.cfg.nat_interface, port, state.zone_ip, self.cfg.zone_ssh_port)
        # Recorded before installing so an interrupted install is still unwound.
        state.zone_port = port
        state.nat_rule = rule.strip()
        log("INFO", f"Forwarding {self.cfg.global_zone_host}:{port} to {state.zone_ip}:{self.cfg.zone_ssh_port}")
        self._require("ipnat", commands.nat_install(), input=rule)
        state.phase = ZonePhase.NETWORK_READY

    def wait_for_network(
        self,
        zone: str,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> str:
        """Poll ``ipadm show-addr`` in the zone until DHCP has bound an address."""
        timeout = self.cfg.network_timeout if timeout is None else timeout
        interval = self.cfg.network_interval if interval is None else interval
        deadline = time.monotonic() + timeout
        attempt = 0
        log("INFO", f"Waiting for zone {zone} to obtain an address")
        while max_attempts is None or attempt < max_attempts:
            self._pause(interval, cancel)
            attempt += 1
            try:
                result = self.channel.exec(commands.show_addr(zone))
            except RemoteError as exc:
                log("WARN", f"Address check for {zone} failed: {exc}")
            else:
                if result.ok:
                    match = DHCP_ADDR_RE.search(result.stdout)
                    if match:
                        log("SUCCESS", f"Zone {zone} has address {match.group(1)}")
                        return match.group(1)
                log("DEBUG", f"Zone {zone} has no DHCP address yet (attempt {attempt})")
            if time.monotonic() >= deadline:
                break
        raise NetworkTimeoutError(
            f"Zone {zone} did not obtain a DHCP address after {attempt} attempts ({timeout:g}s limit)"
        )

    @staticmethod
    def _pause(interval: float, cancel: Optional[threading.Event]) -> None:
        if cancel is None:
            time.sleep(interval)
            return
        if cancel.is_set() or cancel.wait(interval):
            raise ZoneCancelled("Run cancelled while waiting for the zone network")

    def _ports_in_use(self) -> Set[int]:
        result = self.channel.exec(commands.nat_list())
        if not result.ok:
            log("WARN", f"Could not list NAT rules (exit {result.exit_status}); choosing a port blind")
            return set()
        return {int(port) for port in NAT_RULE_PORT_RE.findall(result.stdout)}

    # -- destroy ------------------------------------------------------------

    def destroy(self, state: RunState) -> List[StepFailure]:
        """Tear down whatever ``state`` records. Step failures are returned, never raised.

        Every applicable step is attempted. A field is left set only when the
        step that removes it could not reach the global zone, so a later
        ``destroy`` retries it.
        """
        failures: List[StepFailure] = []

        if state.zone_port and state.zone_ip:
            if state.nat_rule:
                log("INFO", f"Removing port forward {state.zone_port} -> {state.zone_ip}")
                reached = self._teardown_step(failures, "ipnat -r", commands.nat_remove(), input=state.nat_rule + "\n")
            else:
                self._record(failures, "ipnat -r", None, "no NAT rule recorded; remove the forward by hand")
                reached = True
            if reached:
                state.zone_port = None
                state.zone_ip = None
                state.nat_rule = None
                state.phase = ZonePhase.NAT_REMOVED

        if state.zone_name:
            zone = state.zone_name
            log("INFO", f"Destroying zone {zone}")
            self._teardown_step(failures, "zoneadm halt", commands.zoneadm_halt(zone))
            if self._teardown_step(failures, "zoneadm uninstall", commands.zoneadm_uninstall(zone)):
                state.phase = ZonePhase.ZONE_UNINSTALLED
            if self._teardown_step(failures, "zonecfg delete", commands.zonecfg_delete(zone)):
                state.phase = ZonePhase.ZONE_DELETED
                state.zone_name = None

        if state.is_empty():
            state.hostname = None
            state.port = None
            state.username = None
            state.phase = ZonePhase.IDLE
        state.failures = failures
        return failures

    def _teardown_step(
        self, failures: List[StepFailure], step: str, argv: List[str], input: Optional[str] = None
    ) -> bool:
        """Run one teardown command; returns False only if the global zone was unreachable."""
        try:
            result = self.channel.exec(argv, input=input)
        except RemoteError as exc:
            self._record(failures, step, None, str(exc))
            return False
        if not result.ok:
            self._record(failures, step, result.exit_status, result.stderr.strip())
        return True

    @staticmethod
    def _record(failures: List[StepFailure], step: str, exit_status: Optional[int], detail: str) -> None:
        suffix = f" (exit {exit_status})" if exit_status is not None else ""
        log("WARN", f"{step} failed{suffix}: {detail or 'no output'}")
        failures.append(StepFailure(step=step, exit_status=exit_status, detail=detail))
