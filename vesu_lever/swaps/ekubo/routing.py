"""Swap-leg construction from a normalized quote: split weights and slippage."""
from __future__ import annotations

from ...models import SwapLeg, SwapQuote

WAD = 10**18
BPS = 10_000
DEFAULT_SLIPPAGE_BPS = 50


def split_weights(quote: SwapQuote) -> tuple[int, ...]:
    """Share of the total handled by each split, 18-decimal fixed point."""
    if quote.total_calculated == 0:
        return tuple(0 for _ in quote.splits)
    return tuple(
        split.amount_calculated * WAD // quote.total_calculated
        for split in quote.splits
    )


def normalize_weights(weights: tuple[int, ...]) -> tuple[int, ...]:
    """Make weights sum to exactly 1e18; the last weight absorbs rounding."""
    if not weights:
        return ()
    difference = WAD - sum(weights)
    if difference == 0:
        return tuple(weights)
    last = weights[-1] + difference
    if last < 0:
        raise ValueError(
            f"Cannot normalize weights: adjustment would give negative weight {last}"
        )
    return tuple(weights[:-1]) + (last,)


def apply_slippage(quote: SwapQuote, tolerance_bps: int = DEFAULT_SLIPPAGE_BPS) -> int:
    """Limit amount for the swap leg.

    Exact-out quotes yield the maximum payable input (total raised by the
    tolerance); exact-in quotes yield the minimum acceptable output (total
    lowered by the tolerance).
    """
    if not 0 <= tolerance_bps < BPS:
        raise ValueError(
            f"Slippage tolerance must be in [0, {BPS}) bps, got {tolerance_bps}"
        )
    total = abs(quote.total_calculated)
    if quote.exact_in:
        return total * (BPS - tolerance_bps) // BPS
    return total * (BPS + tolerance_bps) // BPS


def build_swap_legs(quote: SwapQuote, token: str, quoted_amount: int) -> tuple[SwapLeg, ...]:
    """Distribute ``quoted_amount`` of ``token`` across the quote's splits by weight."""
    weights = split_weights(quote)
    return tuple(
        SwapLeg(
            route=split.route,
            token=token,
            amount=quoted_amount * weight // WAD,
            exact_out=not quote.exact_in,
        )
        for split, weight in zip(quote.splits, weights)
    )
