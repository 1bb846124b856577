"""Configuration loading and environment variable parsing for kitchen-zone."""

from __future__ import annotations

import getpass
import os
import socket
import time
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from zonekit.constants import DEFAULT_CONFIG_PATH, DEFAULT_KEY_BITS, MIN_KEY_BITS, STATE_DIR
from zonekit.exceptions import ZoneError
from zonekit.models import ZoneConfig
from zonekit.utils import (
    generate_password,
    generate_zone_name,
    get_env,
    hash_password,
    log,
    parse_bool,
    parse_float,
    parse_int,
    validate_zone_name,
)

CONFIG_KEYS = (
    "global_zone_host",
    "global_zone_username",
    "global_zone_port",
    "global_zone_key",
    "kitchen_user_name",
    "ssh_public_key",
    "ssh_private_key",
    "ssh_key_bits",
    "zone_comment",
    "zone_lower_link",
    "zone_path_root",
    "zone_template",
    "zone_name",
    "zone_port",
    "zone_ssh_port",
    "nat_interface",
    "keep_config",
    "network_timeout",
    "network_interval",
    "command_timeout",
    "transport_host",
    "zone_password",
)

DEFAULTS: Dict[str, Any] = {
    "global_zone_username": "root",
    "global_zone_port": 22,
    "kitchen_user_name": "kitchen",
    "ssh_key_bits": DEFAULT_KEY_BITS,
    "zone_lower_link": "kitchenstub0",
    "zone_path_root": "/systems/zones/",
    "zone_template": "kitchen-template",
    "zone_ssh_port": 22,
    "nat_interface": "net0",
    "keep_config": False,
    "network_timeout": 300,
    "network_interval": 5,
    "command_timeout": 900,
}


def load_config_file(config_path: Optional[Path] = None, base: Optional[Path] = None) -> Dict[str, Any]:
    """Read the optional YAML config; an absent default file yields ``{}``."""
    explicit = config_path is not None
    if config_path is None:
        env_path = get_env("ZONE_CONFIG")
        if env_path:
            config_path = Path(env_path)
            explicit = True
        else:
            config_path = (base or Path.cwd()) / DEFAULT_CONFIG_PATH
    if not config_path.exists():
        if explicit:
            raise ZoneError(f"Config file missing: {config_path}")
        return {}
    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as exc:
        raise ZoneError(f"Config file {config_path} contains invalid YAML: {exc}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ZoneError(f"Config file {config_path} must contain a mapping, got {type(data).__name__}")
    unknown = sorted(set(data) - set(CONFIG_KEYS))
    if unknown:
        log("WARN", f"Ignoring unknown config keys in {config_path}: {', '.join(unknown)}")
    return {key: value for key, value in data.items() if key in CONFIG_KEYS}


def _env_overrides() -> Dict[str, str]:
    overrides = {}
    for key in CONFIG_KEYS:
        value = get_env(key.upper())
        if value is not None and value.strip():
            overrides[key] = value.strip()
    return overrides


def _default_comment() -> str:
    try:
        login = getpass.getuser()
    except (KeyError, OSError):
        login = "unknown"
    stamp = time.strftime("%Y-%m-%d %H:%M:%S %z")
    return f"Test Kitchen created by {login} on {socket.gethostname()} at {stamp}"


def _expand_path(raw: object, base: Path) -> Path:
    path = Path(str(raw)).expanduser()
    if not path.is_absolute():
        path = base / path
    return path


def resolve_config(
    instance_name: str = "default",
    overrides: Optional[Mapping[str, Any]] = None,
    config_path: Optional[Path] = None,
    cwd: Optional[Path] = None,
) -> ZoneConfig:
    """Build the immutable configuration snapshot for one run.

    Precedence, lowest first: defaults, YAML file, environment, ``overrides``.
    Ambient values (login name, hostname, time, working directory) are read
    here and nowhere else.
    """
    base = (cwd or Path(os.getcwd())).resolve()
    raw: Dict[str, Any] = dict(DEFAULTS)
    raw.update(load_config_file(config_path, base))
    raw.update(_env_overrides())
    raw.update({key: value for key, value in (overrides or {}).items() if value is not None})

    host = str(raw.get("global_zone_host") or "").strip()
    if not host:
        raise ZoneError("global_zone_host is required (set GLOBAL_ZONE_HOST or add it to the config file)")

    user_name = str(raw["kitchen_user_name"]).strip()
    if not user_name:
        raise ZoneError("kitchen_user_name must not be empty")
    local_dir = base / f".{user_name}"

    public_key = _expand_path(raw.get("ssh_public_key") or local_dir / "id_rsa.pub", base)
    private_key = _expand_path(raw.get("ssh_private_key") or local_dir / "id_rsa", base)
    if public_key == private_key:
        raise ZoneError("ssh_public_key and ssh_private_key must be different files")

    gz_key = raw.get("global_zone_key")
    global_zone_key = _expand_path(gz_key, base) if gz_key else None

    path_root = str(raw["zone_path_root"]).strip()
    if not path_root.startswith("/"):
        raise ZoneError(f"zone_path_root must be an absolute path (got '{path_root}')")
    if not path_root.endswith("/"):
        path_root += "/"

    zone_name_raw = raw.get("zone_name")
    if zone_name_raw:
        zone_name = validate_zone_name(str(zone_name_raw).strip())
    else:
        zone_name = generate_zone_name(instance_name)

    zone_port_raw = raw.get("zone_port")
    zone_port = parse_int("zone_port", zone_port_raw, min_val=1025, max_val=65535) if zone_port_raw else None

    for key in ("zone_lower_link", "zone_template", "nat_interface"):
        if not str(raw.get(key) or "").strip():
            raise ZoneError(f"{key} must not be empty")

    password = raw.get("zone_password")
    if password is None:
        password = generate_password()
        log("DEBUG", "No zone_password set; generated a random password for the zone accounts")

    network_interval = parse_float("network_interval", raw["network_interval"])
    network_timeout = parse_float("network_timeout", raw["network_timeout"])
    if network_timeout < network_interval:
        raise ZoneError(
            f"network_timeout ({network_timeout}) must be >= network_interval ({network_interval})"
        )

    return ZoneConfig(
        instance_name=instance_name,
        global_zone_host=host,
        global_zone_username=str(raw["global_zone_username"]).strip(),
        global_zone_port=parse_int("global_zone_port", raw["global_zone_port"], max_val=65535),
        global_zone_key=global_zone_key,
        kitchen_user_name=user_name,
        ssh_public_key=public_key,
        ssh_private_key=private_key,
        ssh_key_bits=parse_int("ssh_key_bits", raw["ssh_key_bits"], min_val=MIN_KEY_BITS),
        zone_comment=str(raw.get("zone_comment") or _default_comment()),
        zone_lower_link=str(raw["zone_lower_link"]).strip(),
        zone_path_root=path_root,
        zone_template=str(raw["zone_template"]).strip(),
        zone_name=zone_name,
        zone_port=zone_port,
        zone_ssh_port=parse_int("zone_ssh_port", raw["zone_ssh_port"], max_val=65535),
        nat_interface=str(raw["nat_interface"]).strip(),
        keep_config=parse_bool("keep_config", raw["keep_config"]),
        network_timeout=network_timeout,
        network_interval=network_interval,
        command_timeout=parse_float("command_timeout", raw["command_timeout"], min_val=1.0),
        transport_host=str(raw.get("transport_host") or host).strip(),
        zone_password_hash=hash_password(str(password)),
        local_dir=local_dir,
    )


def default_state_path(instance_name: str, cwd: Optional[Path] = None) -> Path:
    base = cwd or Path(os.getcwd())
    return base / STATE_DIR / f"{instance_name}.yml"
