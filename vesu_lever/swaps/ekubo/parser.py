"""Pure parsing functions for Ekubo quote responses — no I/O.

The quoting API is loose about numeric encodings: the same field may arrive
as an int, a decimal string, a hex string, or a two-limb ``{low, high}``
object. Everything is normalized here so that downstream math only sees ints.
"""
from __future__ import annotations

from typing import Any

from ...chains.starknet.address import normalize_address, to_int
from ...models import PoolKey, RouteHop, Split, SwapQuote


def parse_int(value: Any) -> int:
    """Parse a possibly signed integer from int, decimal or hex string.

    Examples:
        "0x10" → 16
        "-250" → -250
        42 → 42
    """
    if isinstance(value, bool):
        raise ValueError(f"Unexpected boolean numeric value: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        negative = text.startswith("-")
        if negative:
            text = text[1:]
        number = int(text, 16) if text.startswith("0x") else int(text, 10)
        return -number if negative else number
    raise ValueError(f"Unsupported numeric encoding: {value!r}")


def parse_low_limb(value: Any) -> int:
    """Fee and tick spacing: only the low limb of a two-limb value is meaningful."""
    if isinstance(value, dict):
        return parse_low_limb(value["low"])
    number = parse_int(value)
    if number < 0:
        raise ValueError(f"Expected unsigned value, got {number}")
    return number


def parse_u256(value: Any) -> int:
    """Full-width u256 from either a plain integer or ``{low, high}``."""
    if isinstance(value, dict):
        return parse_int(value["low"]) + (parse_int(value.get("high", 0)) << 128)
    number = parse_int(value)
    if number < 0:
        raise ValueError(f"Expected unsigned value, got {number}")
    return number


def parse_pool_key(raw: dict[str, Any]) -> PoolKey:
    """Normalize a pool key; the lower address always becomes ``token0``."""
    token0 = normalize_address(raw["token0"])
    token1 = normalize_address(raw["token1"])
    if to_int(token0) > to_int(token1):
        token0, token1 = token1, token0
    return PoolKey(
        token0=token0,
        token1=token1,
        fee=parse_low_limb(raw["fee"]),
        tick_spacing=parse_low_limb(raw["tick_spacing"]),
        extension=normalize_address(raw.get("extension") or 0),
    )


def parse_route_hop(raw: dict[str, Any]) -> RouteHop:
    return RouteHop(
        pool_key=parse_pool_key(raw["pool_key"]),
        sqrt_ratio_limit=parse_u256(raw["sqrt_ratio_limit"]),
        skip_ahead=parse_low_limb(raw.get("skip_ahead", 0)),
    )


def parse_split(raw: dict[str, Any]) -> Split:
    route = tuple(parse_route_hop(hop) for hop in raw.get("route", []))
    if not route:
        raise ValueError("Quote split has an empty route")
    return Split(
        amount_specified=parse_int(raw["amount_specified"]),
        amount_calculated=abs(parse_int(raw["amount_calculated"])),
        route=route,
    )


def parse_quote(
    data: dict[str, Any],
    token_in: str,
    token_out: str,
    exact_in: bool,
) -> SwapQuote:
    """Build a SwapQuote from the raw API payload.

    Raises:
        ValueError / KeyError / TypeError on any malformed field.
    """
    splits = tuple(parse_split(s) for s in data.get("splits") or [])
    if not splits:
        raise ValueError("Quote contains no splits")

    total = abs(parse_int(data["total_calculated"]))
    if total == 0:
        raise ValueError("Quote total is zero")

    impact = data.get("price_impact")
    return SwapQuote(
        token_in=normalize_address(token_in),
        token_out=normalize_address(token_out),
        exact_in=exact_in,
        splits=splits,
        total_calculated=total,
        price_impact=float(impact) if impact is not None else None,
    )
