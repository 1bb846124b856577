"""Global constants and path configuration for kitchen-zone."""

from __future__ import annotations

import os
import re
from pathlib import Path

# Optional YAML config file looked up when --config / ZONE_CONFIG is not given.
DEFAULT_CONFIG_PATH = Path(".kitchen") / "zone.yaml"
STATE_DIR = Path(".kitchen")

TRUTHY = {"1", "true", "yes", "on"}

_LOG_VERBOSE = os.environ.get("LOG_VERBOSE", "").lower() in {"1", "true", "yes", "on"}

# Remote toolchain on the global zone.
ZONECFG = "/usr/sbin/zonecfg"
ZONEADM = "/usr/sbin/zoneadm"
ZLOGIN = "/usr/sbin/zlogin"
IPNAT = "/usr/sbin/ipnat"

# Staging directory created under zone_path_root for uploaded artifacts.
REMOTE_TEMP_DIRNAME = "kitchen_tmp"

# Zone names: alphanumeric first, then [A-Za-z0-9_.-], 64 chars max.
ZONE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")
ZONE_NAME_MAX = 64
ZONE_NAME_RESERVED = "global"
ZONE_NAME_RESERVED_PREFIX = "SUNW"
ZONE_SUFFIX_BYTES = 4  # 8 hex chars

# `ipadm show-addr` line for a bound DHCP address on the zone's primary link.
DHCP_ADDR_RE = re.compile(r"net0/v4\s+dhcp\s+ok\s+([0-9.]+)/\d+")
# Ports already claimed by rdr rules in `ipnat -l` output.
NAT_RULE_PORT_RE = re.compile(r"^rdr\s+\S+\s+\S+\s+port\s+(\d+)\s+->", re.MULTILINE)

PORT_RANGE = (1025, 65535)

DEFAULT_KEY_BITS = 3072
MIN_KEY_BITS = 2048

_SENSITIVE_FIELDS = {"zone_password", "zone_password_hash"}
