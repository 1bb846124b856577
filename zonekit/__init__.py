"""kitchen-zone package."""

__all__ = [
    "cli",
    "commands",
    "config",
    "constants",
    "exceptions",
    "keys",
    "models",
    "remote",
    "render",
    "state",
    "utils",
    "zone",
]
