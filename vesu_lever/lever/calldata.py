"""Pure Cairo calldata serialization for the calls this package emits. No I/O.

Every encoder returns a flat ``list[int]`` of felts. Structs serialize as
their members in declaration order; arrays as ``len`` followed by items;
enums as ``variant index`` followed by the variant payload.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from ..chains.starknet.address import to_int
from ..models import PoolKey, RouteHop, SwapLeg

T = TypeVar("T")

U128_MAX = 2**128 - 1
U256_MAX = 2**256 - 1

# Enum variant indexes
AMOUNT_DENOMINATION_NATIVE = 0
AMOUNT_DENOMINATION_ASSETS = 1
AMOUNT_TYPE_DELTA = 0
AMOUNT_TYPE_TARGET = 1
LEVER_ACTION_INCREASE = 0
LEVER_ACTION_DECREASE = 1


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


def encode_felt(value: str | int) -> list[int]:
    return [to_int(value)]


def encode_bool(value: bool) -> list[int]:
    return [1 if value else 0]


def encode_u128(value: int) -> list[int]:
    if not 0 <= value <= U128_MAX:
        raise ValueError(f"u128 out of range: {value}")
    return [value]


def encode_u256(value: int) -> list[int]:
    if not 0 <= value <= U256_MAX:
        raise ValueError(f"u256 out of range: {value}")
    return [value & U128_MAX, value >> 128]


def encode_i129(value: int) -> list[int]:
    """Ekubo signed amount: ``{mag: u128, sign: bool}``."""
    return encode_u128(abs(value)) + encode_bool(value < 0)


def encode_i257(value: int) -> list[int]:
    """Vesu signed amount: ``{abs: u256, is_negative: bool}``."""
    return encode_u256(abs(value)) + encode_bool(value < 0)


def encode_array(items: Iterable[T], encoder: Callable[[T], list[int]]) -> list[int]:
    items = list(items)
    out = [len(items)]
    for item in items:
        out.extend(encoder(item))
    return out


# ---------------------------------------------------------------------------
# Ekubo swap structs
# ---------------------------------------------------------------------------


def encode_pool_key(key: PoolKey) -> list[int]:
    return (
        encode_felt(key.token0)
        + encode_felt(key.token1)
        + encode_u128(key.fee)
        + encode_u128(key.tick_spacing)
        + encode_felt(key.extension)
    )


def encode_route_node(hop: RouteHop) -> list[int]:
    return (
        encode_pool_key(hop.pool_key)
        + encode_u256(hop.sqrt_ratio_limit)
        + encode_u128(hop.skip_ahead)
    )


def encode_swap(leg: SwapLeg) -> list[int]:
    return (
        encode_array(leg.route, encode_route_node)
        + encode_felt(leg.token)
        + encode_u128(leg.amount)
        + encode_bool(leg.exact_out)
    )


# ---------------------------------------------------------------------------
# Multiply contract
# ---------------------------------------------------------------------------


def encode_increase_lever(
    *,
    pool: str,
    collateral_asset: str,
    debt_asset: str,
    user: str,
    add_margin: int,
    lever_swap: Iterable[SwapLeg],
    lever_swap_limit_amount: int,
) -> list[int]:
    """``ModifyLeverParams { action: IncreaseLever(...) }`` with no margin swap."""
    return (
        [LEVER_ACTION_INCREASE]
        + encode_felt(pool)
        + encode_felt(collateral_asset)
        + encode_felt(debt_asset)
        + encode_felt(user)
        + encode_u128(add_margin)
        + encode_array([], encode_swap)
        + encode_u128(0)
        + encode_array(lever_swap, encode_swap)
        + encode_u128(lever_swap_limit_amount)
    )


def encode_decrease_lever(
    *,
    pool: str,
    collateral_asset: str,
    debt_asset: str,
    user: str,
    sub_margin: int,
    recipient: str,
    lever_swap: Iterable[SwapLeg],
    lever_swap_limit_amount: int,
    lever_swap_weights: Iterable[int],
    close_position: bool,
) -> list[int]:
    """``ModifyLeverParams { action: DecreaseLever(...) }`` with no withdraw swap."""
    return (
        [LEVER_ACTION_DECREASE]
        + encode_felt(pool)
        + encode_felt(collateral_asset)
        + encode_felt(debt_asset)
        + encode_felt(user)
        + encode_u128(sub_margin)
        + encode_felt(recipient)
        + encode_array(lever_swap, encode_swap)
        + encode_u128(lever_swap_limit_amount)
        + encode_array(lever_swap_weights, encode_u128)
        + encode_array([], encode_swap)
        + encode_u128(0)
        + encode_array([], encode_u128)
        + encode_bool(close_position)
    )


# ---------------------------------------------------------------------------
# Pool contracts
# ---------------------------------------------------------------------------


def encode_amount_v2(value: int, denomination: int = AMOUNT_DENOMINATION_ASSETS) -> list[int]:
    return [denomination] + encode_i257(value)


def encode_modify_position_v2(
    *,
    collateral_asset: str,
    debt_asset: str,
    user: str,
    collateral: int,
    debt: int,
    denomination: int = AMOUNT_DENOMINATION_ASSETS,
) -> list[int]:
    return (
        encode_felt(collateral_asset)
        + encode_felt(debt_asset)
        + encode_felt(user)
        + encode_amount_v2(collateral, denomination)
        + encode_amount_v2(debt, denomination)
    )


def encode_amount_v1(
    value: int,
    denomination: int = AMOUNT_DENOMINATION_ASSETS,
    amount_type: int = AMOUNT_TYPE_DELTA,
) -> list[int]:
    return [amount_type, denomination] + encode_i257(value)


def encode_modify_position_v1(
    *,
    pool_id: str,
    collateral_asset: str,
    debt_asset: str,
    user: str,
    collateral: int,
    debt: int,
    denomination: int = AMOUNT_DENOMINATION_ASSETS,
    debt_amount_type: int = AMOUNT_TYPE_DELTA,
) -> list[int]:
    """Singleton ``ModifyPositionParams`` with an empty ``data`` array.

    A ``Target`` debt amount sets the outstanding debt to ``debt`` instead of
    moving it by that much.
    """
    return (
        encode_felt(pool_id)
        + encode_felt(collateral_asset)
        + encode_felt(debt_asset)
        + encode_felt(user)
        + encode_amount_v1(collateral, denomination)
        + encode_amount_v1(debt, denomination, debt_amount_type)
        + encode_array([], encode_felt)
    )


def encode_approve(spender: str, amount: int) -> list[int]:
    return encode_felt(spender) + encode_u256(amount)


def encode_modify_delegation(delegatee: str, delegation: bool) -> list[int]:
    return encode_felt(delegatee) + encode_bool(delegation)
