"""Pure leverage math, no I/O.

All quantities are integers carried as ``TokenValue``. USD values use 18
decimals, LTVs are basis points at the API boundary and WAD (1e18 = 100%)
inside the re-lever solver.
"""
from __future__ import annotations

from ..errors import LTVBoundsError, PriceInvalidError, ZeroAmountError
from ..models import USD_DECIMALS, LeverDeltas, Position, Price, TokenValue

BPS = 10_000
WAD = 10**18
BPS_TO_WAD = WAD // BPS

# Fixed 0.1% haircut applied to every target LTV.
SAFETY_MARGIN_NUM = 999
SAFETY_MARGIN_DEN = 1000

# Targets must lie in [0, 99%).
MAX_TARGET_BPS = 9_900


# ---------------------------------------------------------------------------
# LTV parsing and bounds
# ---------------------------------------------------------------------------


def parse_target_ltv(target: str | int) -> int:
    """Convert a percent such as ``"50"`` or ``"72.5"`` into basis points."""
    try:
        bps = TokenValue.from_human(str(target), 2).value
    except ValueError as e:
        raise LTVBoundsError(f"Invalid target LTV {target!r}: {e}") from e
    if not 0 <= bps < MAX_TARGET_BPS:
        raise LTVBoundsError(f"Target LTV must be between 0 and 99, got {target}%")
    return bps


def apply_safety_margin(ltv_bps: int) -> int:
    return ltv_bps * SAFETY_MARGIN_NUM // SAFETY_MARGIN_DEN


def check_target(target_bps: int, max_ltv_bps: int) -> None:
    if not 0 <= target_bps < MAX_TARGET_BPS:
        raise LTVBoundsError(
            f"Target LTV must be between 0 and 99, got {target_bps / 100}%"
        )
    if target_bps > max_ltv_bps:
        raise LTVBoundsError(
            f"Target LTV ({target_bps / 100}%) exceeds maximum LTV ({max_ltv_bps / 100}%)"
        )


def within_safe_ltv(debt_usd: int, collateral_usd: int, max_ltv_bps: int) -> bool:
    """``debt / collateral <= max_ltv * 0.999`` evaluated without division."""
    return (
        debt_usd * BPS * SAFETY_MARGIN_DEN
        <= collateral_usd * max_ltv_bps * SAFETY_MARGIN_NUM
    )


def ltv_bps(debt_usd: TokenValue, collateral_usd: TokenValue) -> int:
    decimals = max(debt_usd.decimals, collateral_usd.decimals)
    collateral = collateral_usd.rescale(decimals).value
    if collateral == 0:
        return 0
    return debt_usd.rescale(decimals).value * BPS // collateral


# ---------------------------------------------------------------------------
# Unit conversion
# ---------------------------------------------------------------------------


def usd_value(amount: TokenValue, price: Price) -> TokenValue:
    """Token amount → 18-decimal USD."""
    raw = amount.value * price.value.value // 10**amount.decimals
    return TokenValue(raw, price.value.decimals).rescale(USD_DECIMALS)


def to_token_amount(usd: TokenValue, price: Price, decimals: int) -> TokenValue:
    """USD value → smallest token units at the given price."""
    if price.value.value <= 0:
        raise PriceInvalidError("Price is zero, cannot convert USD to token units")
    normalized = usd.rescale(price.value.decimals)
    return TokenValue(normalized.value * 10**decimals // price.value.value, decimals)


# ---------------------------------------------------------------------------
# Regimes
# ---------------------------------------------------------------------------


def solve_borrow(
    collateral_amount: TokenValue,
    target_bps: int,
    max_ltv_bps: int,
    collateral_price: Price,
    debt_price: Price,
    debt_decimals: int,
) -> LeverDeltas:
    """Debt to draw against a collateral deposit at ``target_bps``."""
    check_target(target_bps, max_ltv_bps)
    adjusted = apply_safety_margin(target_bps)

    collateral_usd = usd_value(collateral_amount, collateral_price)
    debt_usd = TokenValue(collateral_usd.value * adjusted // BPS, USD_DECIMALS)
    debt = to_token_amount(debt_usd, debt_price, debt_decimals)
    if debt.is_zero:
        raise ZeroAmountError("Computed debt amount rounds to zero")
    if not within_safe_ltv(debt_usd.value, collateral_usd.value, max_ltv_bps):
        raise LTVBoundsError("Resulting LTV exceeds the pool's safe maximum")

    return LeverDeltas(
        direction="open",
        collateral_delta=collateral_amount,
        debt_delta=debt,
        debt_value_usd=debt_usd,
        adjusted_ltv_bps=adjusted,
    )


def solve_multiply_open(
    collateral_amount: TokenValue,
    target_bps: int,
    max_ltv_bps: int,
    collateral_price: Price,
    debt_price: Price,
    debt_decimals: int,
) -> LeverDeltas:
    """Debt to draw and collateral to buy when opening a leveraged position.

    The borrowed debt is swapped into more collateral, so the debt/margin
    ratio follows ``ltv / (1 - ltv)`` rather than ``ltv``.
    """
    check_target(target_bps, max_ltv_bps)
    adjusted = apply_safety_margin(target_bps)
    denominator = BPS - adjusted
    if denominator <= 0:
        raise LTVBoundsError("Adjusted LTV leaves no room for leverage")

    margin_usd = usd_value(collateral_amount, collateral_price)
    debt_usd = TokenValue(margin_usd.value * adjusted // denominator, USD_DECIMALS)
    debt = to_token_amount(debt_usd, debt_price, debt_decimals)
    extra_collateral = to_token_amount(
        debt_usd, collateral_price, collateral_amount.decimals
    )
    if debt.is_zero or extra_collateral.is_zero:
        raise ZeroAmountError("Computed leverage amount rounds to zero")
    if not within_safe_ltv(
        debt_usd.value, margin_usd.value + debt_usd.value, max_ltv_bps
    ):
        raise LTVBoundsError("Resulting LTV exceeds the pool's safe maximum")

    return LeverDeltas(
        direction="open",
        collateral_delta=collateral_amount,
        debt_delta=debt,
        debt_value_usd=debt_usd,
        adjusted_ltv_bps=adjusted,
        swap_amount=extra_collateral,
    )


def solve_multiply_update(
    position: Position,
    target_bps: int,
    max_ltv_bps: int,
    collateral_price: Price,
    debt_price: Price,
    collateral_decimals: int,
    debt_decimals: int,
) -> LeverDeltas:
    """Re-target an existing position keeping its net USD value fixed.

    Solves ``D / C = T`` and ``C - D = N`` for the new collateral and debt
    values, then prices the debt delta in debt-token units.
    """
    check_target(target_bps, max_ltv_bps)
    adjusted = apply_safety_margin(target_bps)
    target_wad = adjusted * BPS_TO_WAD
    current_wad = position.current_ltv.rescale(USD_DECIMALS).value

    if current_wad == target_bps * BPS_TO_WAD:
        raise LTVBoundsError(
            f"Position LTV is already at target ({target_bps / 100}%)"
        )

    net = position.net_value_usd.rescale(USD_DECIMALS).value
    if net <= 0:
        raise LTVBoundsError("Position has no positive net value to re-lever")

    new_debt = target_wad * net // (WAD - target_wad)
    new_collateral = net + new_debt
    delta_usd = new_debt - position.debt_usd.rescale(USD_DECIMALS).value

    direction = "increase" if target_wad > current_wad else "decrease"
    if delta_usd == 0 or (delta_usd > 0) != (direction == "increase"):
        raise LTVBoundsError(
            f"Position LTV is already at target ({target_bps / 100}%)"
        )
    if not within_safe_ltv(new_debt, new_collateral, max_ltv_bps):
        raise LTVBoundsError("Resulting LTV exceeds the pool's safe maximum")

    delta = TokenValue(abs(delta_usd), USD_DECIMALS)
    debt_delta = to_token_amount(delta, debt_price, debt_decimals)
    collateral_delta = to_token_amount(delta, collateral_price, collateral_decimals)
    if debt_delta.is_zero:
        raise ZeroAmountError("Computed debt delta rounds to zero")

    return LeverDeltas(
        direction=direction,
        collateral_delta=collateral_delta,
        debt_delta=debt_delta,
        debt_value_usd=TokenValue(new_debt, USD_DECIMALS),
        adjusted_ltv_bps=adjusted,
        swap_amount=debt_delta,
    )


def check_withdraw(
    position: Position,
    amount: TokenValue,
    collateral_price: Price,
    max_ltv_bps: int,
) -> int:
    """Validate a margin withdrawal and return the resulting LTV in bps."""
    if amount.is_zero:
        raise ZeroAmountError("Withdraw amount must be positive")
    withdrawn = usd_value(amount, collateral_price).value
    remaining = position.collateral_usd.rescale(USD_DECIMALS).value - withdrawn
    debt = position.debt_usd.rescale(USD_DECIMALS).value
    if remaining <= 0 or not within_safe_ltv(debt, remaining, max_ltv_bps):
        raise LTVBoundsError(
            f"Withdrawing {amount} would push the position past its safe LTV"
        )
    return debt * BPS // remaining
