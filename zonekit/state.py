"""Run state persistence for kitchen-zone."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from zonekit.exceptions import ZoneError
from zonekit.models import RunState
from zonekit.utils import ensure_directory, log


class StateStore:
    """YAML file holding the ``RunState`` of one instance."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> RunState:
        if not self.path.exists():
            return RunState()
        try:
            data = yaml.safe_load(self.path.read_text())
        except yaml.YAMLError as exc:
            raise ZoneError(f"State file {self.path} contains invalid YAML: {exc}")
        if data is not None and not isinstance(data, dict):
            raise ZoneError(f"State file {self.path} must contain a mapping")
        try:
            return RunState.from_dict(data or {})
        except (TypeError, ValueError) as exc:
            raise ZoneError(f"State file {self.path} is malformed: {exc}")

    def save(self, state: RunState) -> None:
        if state.is_empty():
            self.clear()
            return
        ensure_directory(self.path.parent)
        payload = yaml.safe_dump(state.to_dict(), sort_keys=False, default_flow_style=False)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        log("DEBUG", f"Saved state to {self.path}")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            log("DEBUG", f"Removed state file {self.path}")
