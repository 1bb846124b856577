"""CLI entry points for kitchen-zone."""

from __future__ import annotations

import argparse
import signal
import threading
from pathlib import Path
from typing import List, Optional

from zonekit.config import default_state_path, resolve_config
from zonekit.constants import _SENSITIVE_FIELDS
from zonekit.exceptions import ZoneError
from zonekit.models import ProfileParams, RunState, ZoneConfig, ZoneConfigParams
from zonekit.render import render_profile, render_zone_config
from zonekit.state import StateStore
from zonekit.utils import log
from zonekit.zone import ZoneManager


def show_config(cfg: ZoneConfig) -> None:
    """Print the resolved zone configuration."""
    import dataclasses

    for field in dataclasses.fields(cfg):
        value = getattr(cfg, field.name)
        if field.name in _SENSITIVE_FIELDS:
            print(f"  {field.name}: ********")
        else:
            print(f"  {field.name}: {value}")


def render_artifacts(cfg: ZoneConfig) -> None:
    """Print both rendered artifacts without touching the global zone."""
    if cfg.ssh_public_key.exists():
        public_key = cfg.ssh_public_key.read_text(encoding="utf-8").strip()
    else:
        public_key = f"<generated at create: {cfg.ssh_public_key}>"
    print(f"# {cfg.zone_name}.cfg")
    print(
        render_zone_config(
            ZoneConfigParams(
                zone_path=cfg.zone_path_root + cfg.zone_name,
                zone_lower_link=cfg.zone_lower_link,
                zone_comment=cfg.zone_comment,
            )
        ),
        end="",
    )
    print(f"# {cfg.zone_name}_profile.xml")
    print(
        render_profile(
            ProfileParams(
                zone_name=cfg.zone_name,
                kitchen_user_name=cfg.kitchen_user_name,
                ssh_public_key=public_key,
                password_hash=cfg.zone_password_hash,
            )
        ),
        end="",
    )


def print_connection_banner(state: RunState, cfg: ZoneConfig) -> None:
    lines = [
        f"  Zone: {state.zone_name} ({state.zone_ip})",
        f"  SSH:  ssh -i {cfg.ssh_private_key} -p {state.port} {state.username}@{state.hostname}",
    ]
    border_len = max(len(line) for line in lines) + 2
    banner_colour = "\033[0;36m"
    reset = "\033[0m"
    print(f"{banner_colour}{'=' * border_len}{reset}", flush=True)
    for line in lines:
        print(f"{banner_colour}{line}{reset}", flush=True)
    print(f"{banner_colour}{'=' * border_len}{reset}", flush=True)


def run_create(cfg: ZoneConfig, store: StateStore) -> int:
    state = store.load()
    if state.zone_name:
        log("ERROR", f"Instance {cfg.instance_name} already has zone {state.zone_name}; destroy it first")
        return 1

    manager = ZoneManager(cfg)
    cancel = threading.Event()

    def _request_cancel(signum, frame):
        log("INFO", f"{signal.Signals(signum).name} received, cancelling zone creation")
        cancel.set()

    prev_sigterm = signal.signal(signal.SIGTERM, _request_cancel)
    try:
        manager.create(state, cancel=cancel)
        print_connection_banner(state, cfg)
        return 0
    except ZoneError as exc:
        log("ERROR", str(exc))
        if state.zone_name:
            log("INFO", f"Partial zone recorded in {store.path}; run 'kitchen-zone destroy {cfg.instance_name}'")
        return 1
    except KeyboardInterrupt:
        log("WARN", "Interrupted")
        return 130
    except Exception as exc:
        log("ERROR", f"Unexpected error: {exc}")
        import traceback

        traceback.print_exc()
        return 1
    finally:
        signal.signal(signal.SIGTERM, prev_sigterm)
        store.save(state)
        manager.close()


def run_destroy(cfg: ZoneConfig, store: StateStore) -> int:
    state = store.load()
    if state.is_empty():
        log("INFO", f"Nothing to destroy for instance {cfg.instance_name}")
        store.clear()
        return 0

    manager = ZoneManager(cfg)
    try:
        failures = manager.destroy(state)
    except ZoneError as exc:
        log("ERROR", str(exc))
        return 1
    finally:
        store.save(state)
        manager.close()
    if failures:
        steps = ", ".join(failure.step for failure in failures)
        log("WARN", f"Teardown finished with failed steps: {steps}; check the global zone")
    else:
        log("SUCCESS", f"Instance {cfg.instance_name} destroyed")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Solaris zone provisioner for test runs")
    parser.add_argument("--config", type=Path, default=None, help="YAML config file (default: .kitchen/zone.yaml)")
    parser.add_argument("--state", type=Path, default=None, help="State file (default: .kitchen/<instance>.yml)")
    parser.add_argument(
        "command",
        choices=["create", "destroy", "show-config", "render"],
        help="create or destroy the instance's zone, or inspect the resolved configuration",
    )
    parser.add_argument("instance", nargs="?", default="default", help="Instance name (default: default)")
    args = parser.parse_args(argv)

    try:
        cfg = resolve_config(args.instance, config_path=args.config)
    except ZoneError as exc:
        log("ERROR", str(exc))
        return 1

    if args.command == "show-config":
        show_config(cfg)
        return 0
    if args.command == "render":
        try:
            render_artifacts(cfg)
        except ZoneError as exc:
            log("ERROR", str(exc))
            return 1
        return 0

    store = StateStore(args.state or default_state_path(args.instance))
    try:
        if args.command == "create":
            return run_create(cfg, store)
        return run_destroy(cfg, store)
    except ZoneError as exc:
        log("ERROR", str(exc))
        return 1
