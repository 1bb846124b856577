"""Module entrypoint for ``python -m zonekit``."""

from __future__ import annotations

import sys

from zonekit import cli

sys.exit(cli.main())
