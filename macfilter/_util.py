"""Shared helper functions."""

from __future__ import annotations

import re
from pathlib import Path


def _validate_interface_name(name: str) -> bool:
    """Validate interface name to prevent injection (no leading dash, no newline)."""
    return bool(re.fullmatch(r"[a-zA-Z0-9._][a-zA-Z0-9._-]*", name))


def _read_entries(path: Path) -> list[str]:
    """Return stripped, non-empty, non-comment lines of a text file."""
    entries: list[str] = []
    with open(path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                entries.append(line)
    return entries
