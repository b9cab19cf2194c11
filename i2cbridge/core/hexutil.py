"""Address and register formatting helpers."""

from __future__ import annotations


def to_hex_string(value: int, length: int = 2) -> str:
    return f"0x{int(value):0{length}X}"


def parse_int(value: str | int) -> int:
    """Parse decimal or 0x-prefixed hex, as typed on a command line or in YAML."""
    if isinstance(value, bool):
        raise ValueError(f"Expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    return int(value.strip(), 0)
