"""Hex color parsing and formatting for single-color filter tests."""

from __future__ import annotations

import re

from tilelut.errors import ValidationError

_HEX6 = re.compile(r"^#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")
_HEX2 = re.compile(r"^[0-9a-fA-F]{2}$")


def parse_hex_byte(text: str) -> int:
    """Parse a 2-digit hex channel value (00-FF)."""
    t = text.strip()
    if not _HEX2.match(t):
        raise ValidationError(f"Enter a valid 2-digit hex value (00-FF), got {text!r}.")
    return int(t, 16)


def parse_hex_color(text: str) -> tuple[int, int, int]:
    """Parse '#RRGGBB' or 'RRGGBB' into an (r, g, b) byte triple."""
    m = _HEX6.match(text.strip())
    if m is None:
        raise ValidationError(f"Enter a color as #RRGGBB, got {text!r}.")
    return tuple(int(part, 16) for part in m.groups())


def format_hex_color(r: int, g: int, b: int) -> str:
    """Format a byte triple as '#RRGGBB'."""
    return "#" + "".join(f"{min(255, max(0, int(c))):02X}" for c in (r, g, b))
