"""Custom exceptions for kitchen-zone."""

from __future__ import annotations


class ZoneError(RuntimeError):
    """Raised on unrecoverable configuration or runtime errors."""


class RemoteError(ZoneError):
    """Transport-level failure talking to the global zone."""


class RemoteTimeoutError(RemoteError):
    """A remote command did not finish within the command timeout."""


class ZoneCommandError(ZoneError):
    """A required remote command exited non-zero."""

    def __init__(self, step: str, result) -> None:
        self.step = step
        self.result = result
        detail = (result.stderr or result.stdout or "").strip()
        message = f"{step} failed (exit {result.exit_status})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class NetworkTimeoutError(ZoneError):
    """The zone never reported a DHCP address within the configured bound."""


class ZoneCancelled(ZoneError):
    """The caller abandoned the run."""
