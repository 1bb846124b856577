"""Data models for kitchen-zone."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional


class CommandResult(NamedTuple):
    exit_status: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class ZonePhase(str, Enum):
    IDLE = "idle"
    KEYS_READY = "keys_ready"
    ARTIFACTS_STAGED = "artifacts_staged"
    ZONE_CONFIGURED = "zone_configured"
    ZONE_CLONED = "zone_cloned"
    ZONE_BOOTED = "zone_booted"
    NETWORK_PENDING = "network_pending"
    NETWORK_READY = "network_ready"
    NAT_REMOVED = "nat_removed"
    ZONE_UNINSTALLED = "zone_uninstalled"
    ZONE_DELETED = "zone_deleted"


@dataclass(frozen=True)
class ZoneConfig:
    """Configuration snapshot resolved once at run start."""

    instance_name: str
    global_zone_host: str
    global_zone_username: str
    global_zone_port: int
    global_zone_key: Optional[Path]
    kitchen_user_name: str
    ssh_public_key: Path
    ssh_private_key: Path
    ssh_key_bits: int
    zone_comment: str
    zone_lower_link: str
    zone_path_root: str
    zone_template: str
    zone_name: str
    zone_port: Optional[int]
    zone_ssh_port: int
    nat_interface: str
    keep_config: bool
    network_timeout: float
    network_interval: float
    command_timeout: float
    transport_host: str
    zone_password_hash: str
    local_dir: Path


@dataclass(frozen=True)
class ZoneConfigParams:
    zone_path: str
    zone_lower_link: str
    zone_comment: str


@dataclass(frozen=True)
class ProfileParams:
    zone_name: str
    kitchen_user_name: str
    ssh_public_key: str
    password_hash: str


@dataclass
class StepFailure:
    step: str
    exit_status: Optional[int]
    detail: str


@dataclass
class RunState:
    """Mutable record threaded through create/destroy.

    ``destroy`` works from this record alone; nothing is re-derived from
    configuration.
    """

    zone_name: Optional[str] = None
    zone_ip: Optional[str] = None
    zone_port: Optional[int] = None
    nat_rule: Optional[str] = None
    hostname: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    phase: ZonePhase = ZonePhase.IDLE
    failures: List[StepFailure] = field(default_factory=list)

    def is_empty(self) -> bool:
        return self.zone_name is None and self.zone_ip is None and self.zone_port is None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["phase"] = self.phase.value
        return {key: value for key, value in data.items() if value not in (None, [])}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunState":
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in (data or {}).items() if key in known}
        if "phase" in values:
            values["phase"] = ZonePhase(values["phase"])
        if "failures" in values:
            values["failures"] = [StepFailure(**item) for item in values["failures"]]
        return cls(**values)
