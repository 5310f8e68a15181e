"""MAC address validation and canonicalization."""

from __future__ import annotations

import re

from macfilter.exceptions import InvalidMACError

# Six hex pairs, ':' or '-' between them (mixed separators are tolerated)
MAC_PATTERN = re.compile(r"^([0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}$")


def is_valid_mac(mac: str) -> bool:
    """Return True if *mac* looks like a MAC address in any accepted notation."""
    return bool(MAC_PATTERN.match(mac.strip()))


def normalize_mac(mac: str) -> str:
    """Return *mac* as uppercase, colon-separated ``AA:BB:CC:DD:EE:FF``.

    Raises:
        InvalidMACError: If *mac* is not six hex byte pairs.
    """
    candidate = mac.strip()
    if not MAC_PATTERN.match(candidate):
        raise InvalidMACError(mac)
    digits = re.sub(r"[:-]", "", candidate).upper()
    return ":".join(digits[i : i + 2] for i in range(0, 12, 2))
