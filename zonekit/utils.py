"""Utility functions for kitchen-zone."""

from __future__ import annotations

import os
import random
import re
import secrets
import string
import tempfile
from pathlib import Path
from typing import Iterable, Optional

try:
    import bcrypt  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("bcrypt is required but not installed") from exc

from zonekit.constants import (
    _LOG_VERBOSE,
    PORT_RANGE,
    TRUTHY,
    ZONE_NAME_MAX,
    ZONE_NAME_RE,
    ZONE_NAME_RESERVED,
    ZONE_NAME_RESERVED_PREFIX,
    ZONE_SUFFIX_BYTES,
)
from zonekit.exceptions import ZoneError


def log(level: str, message: str) -> None:
    """Lightweight structured logging compatible with existing colour expectation."""
    if level == "DEBUG" and not _LOG_VERBOSE:
        return
    colours = {
        "INFO": "\033[0;34m",
        "WARN": "\033[1;33m",
        "ERROR": "\033[0;31m",
        "SUCCESS": "\033[0;32m",
        "DEBUG": "\033[0;90m",
    }
    colour = colours.get(level, "")
    reset = "\033[0m" if colour else ""
    print(f"{colour}[{level}]{reset} {message}", flush=True)


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def parse_bool(name: str, raw: object) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int):
        return raw != 0
    if isinstance(raw, str):
        return raw.strip().lower() in TRUTHY
    raise ZoneError(f"{name} must be a boolean (got {raw!r})")


def parse_int(name: str, raw: object, min_val: int = 1, max_val: Optional[int] = None) -> int:
    if isinstance(raw, bool):
        raise ZoneError(f"{name} must be an integer (got '{raw}')")
    try:
        value = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ZoneError(f"{name} must be an integer (got '{raw}')")
    if value < min_val:
        raise ZoneError(f"{name} must be >= {min_val} (got {value})")
    if max_val is not None and value > max_val:
        raise ZoneError(f"{name} must be <= {max_val} (got {value})")
    return value


def parse_float(name: str, raw: object, min_val: float = 0.0) -> float:
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ZoneError(f"{name} must be a number (got '{raw}')")
    if value < min_val:
        raise ZoneError(f"{name} must be >= {min_val} (got {value})")
    return value


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def write_private_file(path: Path, content: str) -> None:
    """Atomically write ``content`` to ``path`` readable only by the owner.

    The mode is enforced with fchmod so a permissive umask or a pre-existing
    file cannot leave the result group/world readable. Errors propagate.
    """
    ensure_directory(path.parent)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    if path.stat().st_mode & 0o077:
        raise ZoneError(f"Unable to restrict permissions on {path}")


def generate_password(length: int = 20) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def hash_password(password: str) -> str:
    """Generate a crypt(3)-compatible bcrypt hash for the zone profile."""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(prefix=b"2a"))
    return hashed.decode("utf-8")


def validate_zone_name(name: str) -> str:
    if not ZONE_NAME_RE.match(name):
        raise ZoneError(
            f"Invalid zone name '{name}'. Zone names start with a letter or digit, "
            f"contain only letters, digits, '_', '-' and '.', and are at most {ZONE_NAME_MAX} characters."
        )
    if name == ZONE_NAME_RESERVED or name.startswith(ZONE_NAME_RESERVED_PREFIX):
        raise ZoneError(f"Zone name '{name}' is reserved")
    return name


def sanitize_zone_label(label: str) -> str:
    """Reduce an arbitrary label to characters zone names accept."""
    safe = re.sub(r"[^A-Za-z0-9_.-]", "-", label)
    safe = re.sub(r"^[^A-Za-z0-9]+", "", safe)
    if safe.startswith(ZONE_NAME_RESERVED_PREFIX) or safe == ZONE_NAME_RESERVED:
        safe = f"z{safe}"
    return safe or "kitchen"


def generate_zone_name(label: str) -> str:
    suffix = secrets.token_hex(ZONE_SUFFIX_BYTES)
    room = ZONE_NAME_MAX - len(suffix) - 1
    base = sanitize_zone_label(label)[:room]
    return validate_zone_name(f"{base}-{suffix}")


def pick_port(in_use: Iterable[int] = (), rng: Optional[random.Random] = None) -> int:
    """Choose an unprivileged port not present in ``in_use``."""
    low, high = PORT_RANGE
    taken = {port for port in in_use if low <= port < high}
    if len(taken) >= high - low:
        raise ZoneError("No free forwarding port available")
    rng = rng or random.SystemRandom()
    while True:
        candidate = rng.randrange(low, high)
        if candidate not in taken:
            return candidate
