"""Starknet address helpers (canonical 0x + 64 hex form)."""
from __future__ import annotations

FELT_HEX_WIDTH = 64
FELT_MAX = 2**251 + 17 * 2**192 + 1


def to_int(value: str | int) -> int:
    """Accept a hex string, decimal string or int."""
    if isinstance(value, bool):
        raise ValueError(f"Not an address: {value!r}")
    if isinstance(value, int):
        return value
    text = value.strip().lower()
    if text.startswith("0x"):
        return int(text, 16)
    return int(text, 10)


def normalize_address(value: str | int) -> str:
    """Left-pad an address to the canonical fixed width, e.g. ``0x0..01``."""
    number = to_int(value)
    if number < 0 or number >= FELT_MAX:
        raise ValueError(f"Address out of felt range: {value!r}")
    return "0x" + format(number, "x").zfill(FELT_HEX_WIDTH)


def same_address(a: str | int, b: str | int) -> bool:
    return to_int(a) == to_int(b)
