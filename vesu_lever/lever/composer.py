"""Atomic call composition, one immutable CallBatch per operation.

Builders take already-solved deltas and an optional quote and return the
complete ordered call list. Delegation to the multiply contract is always
granted immediately before the lever call and revoked immediately after it.
"""
from __future__ import annotations

from ..errors import PoolResolutionError, PositionNotFoundError, RoutingRequiredError
from ..models import (
    Asset,
    Call,
    CallBatch,
    LeverDeltas,
    Pool,
    PoolV1,
    PoolV2,
    Position,
    SwapQuote,
    TokenValue,
)
from ..swaps.ekubo.routing import (
    apply_slippage,
    build_swap_legs,
    normalize_weights,
    split_weights,
)
from . import calldata

# Fixed 10% approval headroom for interest accrued before execution.
REPAY_APPROVAL_BUFFER_NUM = 110
REPAY_APPROVAL_BUFFER_DEN = 100

QUOTE_DEGRADED_MESSAGE = "Swap quote unavailable; composed without swap routing"


# ---------------------------------------------------------------------------
# Call primitives
# ---------------------------------------------------------------------------


def approve(token: Asset, spender: str, amount: int) -> Call:
    return Call(token.address, "approve", tuple(calldata.encode_approve(spender, amount)))


def modify_delegation(pool: PoolV2, delegatee: str, delegation: bool) -> Call:
    return Call(
        pool.address,
        "modify_delegation",
        tuple(calldata.encode_modify_delegation(delegatee, delegation)),
    )


def position_target(pool: Pool) -> str:
    """Contract that owns positions and therefore receives approvals."""
    if isinstance(pool, PoolV2):
        return pool.address
    if not pool.singleton_address:
        raise PoolResolutionError(f"v1 pool {pool.id} has no resolved singleton")
    return pool.singleton_address


def modify_position(
    pool: Pool,
    collateral: Asset,
    debt: Asset,
    user: str,
    collateral_delta: int,
    debt_delta: int,
    denomination: int = calldata.AMOUNT_DENOMINATION_ASSETS,
) -> Call:
    if isinstance(pool, PoolV1):
        data = calldata.encode_modify_position_v1(
            pool_id=pool.id,
            collateral_asset=collateral.address,
            debt_asset=debt.address,
            user=user,
            collateral=collateral_delta,
            debt=debt_delta,
            denomination=denomination,
        )
    else:
        data = calldata.encode_modify_position_v2(
            collateral_asset=collateral.address,
            debt_asset=debt.address,
            user=user,
            collateral=collateral_delta,
            debt=debt_delta,
            denomination=denomination,
        )
    return Call(position_target(pool), "modify_position", tuple(data))


def _require_lever(pool: Pool) -> PoolV2:
    if not isinstance(pool, PoolV2):
        raise PoolResolutionError(
            f"Lever operations need a v2 pool, got {pool.protocol_version}"
        )
    return pool


def _delegated(pool: PoolV2, multiply_address: str, lever_call: Call) -> tuple[Call, ...]:
    return (
        modify_delegation(pool, multiply_address, True),
        lever_call,
        modify_delegation(pool, multiply_address, False),
    )


def _batch(operation: str, calls: tuple[Call, ...], quote: SwapQuote | None) -> CallBatch:
    return CallBatch(
        operation=operation,
        calls=calls,
        swap_routed=quote is not None,
        warnings=() if quote is not None else (QUOTE_DEGRADED_MESSAGE,),
    )


# ---------------------------------------------------------------------------
# Simple borrow
# ---------------------------------------------------------------------------


def compose_borrow(
    pool: Pool, collateral: Asset, debt: Asset, user: str, deltas: LeverDeltas
) -> CallBatch:
    """``[approve(collateral), modify_position(+Δc, +Δd)]``."""
    amount = deltas.collateral_delta.value
    return CallBatch(
        operation="open_borrow",
        calls=(
            approve(collateral, position_target(pool), amount),
            modify_position(pool, collateral, debt, user, amount, deltas.debt_delta.value),
        ),
    )


def repay_approval(amount: int) -> int:
    return amount * REPAY_APPROVAL_BUFFER_NUM // REPAY_APPROVAL_BUFFER_DEN


def compose_repay(
    pool: Pool, collateral: Asset, debt: Asset, user: str, amount: TokenValue
) -> CallBatch:
    """``[approve(debt, amount × 1.10), modify_position(debt: −amount)]``."""
    return CallBatch(
        operation="repay_borrow",
        calls=(
            approve(debt, position_target(pool), repay_approval(amount.value)),
            modify_position(pool, collateral, debt, user, 0, -amount.value),
        ),
    )


def compose_full_repay(
    pool: Pool, collateral: Asset, debt: Asset, user: str, position: Position
) -> CallBatch:
    """Repay the whole debt.

    V2 pools close both legs in native (share / nominal) denomination. The
    v1 singleton sets the debt to a zero target and leaves collateral alone.
    """
    if isinstance(pool, PoolV1):
        return _compose_full_repay_v1(pool, collateral, debt, user, position)

    if position.collateral_shares is None or position.collateral_shares.is_zero:
        raise PositionNotFoundError("No collateral shares found in position")
    shares = position.collateral_shares.value
    nominal = position.nominal_debt.value
    return CallBatch(
        operation="repay_borrow",
        calls=(
            approve(debt, position_target(pool), repay_approval(nominal)),
            modify_position(
                pool,
                collateral,
                debt,
                user,
                -shares,
                -nominal,
                denomination=calldata.AMOUNT_DENOMINATION_NATIVE,
            ),
        ),
    )


def _compose_full_repay_v1(
    pool: PoolV1, collateral: Asset, debt: Asset, user: str, position: Position
) -> CallBatch:
    if position.debt_amount is None or position.debt_amount.is_zero:
        raise PositionNotFoundError("No debt amount found in position")
    target = position_target(pool)
    data = calldata.encode_modify_position_v1(
        pool_id=pool.id,
        collateral_asset=collateral.address,
        debt_asset=debt.address,
        user=user,
        collateral=0,
        debt=0,
        debt_amount_type=calldata.AMOUNT_TYPE_TARGET,
    )
    return CallBatch(
        operation="repay_borrow",
        calls=(
            approve(debt, target, repay_approval(position.debt_amount.value)),
            Call(target, "modify_position", tuple(data)),
        ),
    )


# ---------------------------------------------------------------------------
# Multiply
# ---------------------------------------------------------------------------


def compose_open_multiply(
    pool: Pool,
    multiply_address: str,
    collateral: Asset,
    debt: Asset,
    user: str,
    deltas: LeverDeltas,
    quote: SwapQuote | None,
    slippage_bps: int,
) -> CallBatch:
    """Deposit margin and lever up in one IncreaseLever call.

    With a quote, the lever swap buys ``deltas.swap_amount`` of collateral
    (exact out) with at most the slippage-bounded debt amount.
    """
    v2 = _require_lever(pool)
    margin = deltas.collateral_delta.value
    legs: tuple = ()
    limit = 0
    if quote is not None:
        extra = deltas.swap_amount.value if deltas.swap_amount else 0
        legs = build_swap_legs(quote, collateral.address, extra)
        limit = apply_slippage(quote, slippage_bps)

    lever = Call(
        multiply_address,
        "modify_lever",
        tuple(
            calldata.encode_increase_lever(
                pool=v2.address,
                collateral_asset=collateral.address,
                debt_asset=debt.address,
                user=user,
                add_margin=margin,
                lever_swap=legs,
                lever_swap_limit_amount=limit,
            )
        ),
    )
    calls = (approve(collateral, multiply_address, margin),) + _delegated(
        v2, multiply_address, lever
    )
    return _batch("open_multiply", calls, quote)


def compose_update_multiply(
    pool: Pool,
    multiply_address: str,
    collateral: Asset,
    debt: Asset,
    user: str,
    deltas: LeverDeltas,
    quote: SwapQuote | None,
    slippage_bps: int,
) -> CallBatch:
    """Re-lever without margin change; requires a routed quote.

    Lever-up swaps an exact debt input for at least the bounded collateral
    output. Delever buys an exact debt output for at most the bounded
    collateral input and repays it.
    """
    v2 = _require_lever(pool)
    if quote is None:
        raise RoutingRequiredError("Updating a multiply position requires a swap route")

    debt_amount = deltas.debt_delta.value
    legs = build_swap_legs(quote, debt.address, debt_amount)
    limit = apply_slippage(quote, slippage_bps)

    if deltas.direction == "increase":
        data = calldata.encode_increase_lever(
            pool=v2.address,
            collateral_asset=collateral.address,
            debt_asset=debt.address,
            user=user,
            add_margin=0,
            lever_swap=legs,
            lever_swap_limit_amount=limit,
        )
    else:
        data = calldata.encode_decrease_lever(
            pool=v2.address,
            collateral_asset=collateral.address,
            debt_asset=debt.address,
            user=user,
            sub_margin=0,
            recipient=user,
            lever_swap=legs,
            lever_swap_limit_amount=limit,
            lever_swap_weights=normalize_weights(split_weights(quote)),
            close_position=False,
        )

    lever = Call(multiply_address, "modify_lever", tuple(data))
    return _batch("update_multiply", _delegated(v2, multiply_address, lever), quote)


def compose_close_multiply(
    pool: Pool,
    multiply_address: str,
    collateral: Asset,
    debt: Asset,
    user: str,
    quote: SwapQuote | None,
    slippage_bps: int,
) -> CallBatch:
    """Unwind the whole position.

    Swap legs carry a zero amount so the contract repays the full
    outstanding debt; the normalized weights split it across routes.
    """
    v2 = _require_lever(pool)
    legs: tuple = ()
    weights: tuple[int, ...] = ()
    limit = 0
    if quote is not None:
        legs = build_swap_legs(quote, debt.address, 0)
        weights = normalize_weights(split_weights(quote))
        limit = apply_slippage(quote, slippage_bps)

    lever = Call(
        multiply_address,
        "modify_lever",
        tuple(
            calldata.encode_decrease_lever(
                pool=v2.address,
                collateral_asset=collateral.address,
                debt_asset=debt.address,
                user=user,
                sub_margin=0,
                recipient=user,
                lever_swap=legs,
                lever_swap_limit_amount=limit,
                lever_swap_weights=weights,
                close_position=True,
            )
        ),
    )
    return _batch("close_multiply", _delegated(v2, multiply_address, lever), quote)


def compose_withdraw_multiply(
    pool: Pool,
    multiply_address: str,
    collateral: Asset,
    debt: Asset,
    user: str,
    amount: TokenValue,
) -> CallBatch:
    """Withdraw margin from a multiply position without touching its debt."""
    v2 = _require_lever(pool)
    lever = Call(
        multiply_address,
        "modify_lever",
        tuple(
            calldata.encode_decrease_lever(
                pool=v2.address,
                collateral_asset=collateral.address,
                debt_asset=debt.address,
                user=user,
                sub_margin=amount.value,
                recipient=user,
                lever_swap=(),
                lever_swap_limit_amount=0,
                lever_swap_weights=(),
                close_position=False,
            )
        ),
    )
    return CallBatch(
        operation="decrease_multiply",
        calls=_delegated(v2, multiply_address, lever),
    )
