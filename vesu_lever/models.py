"""Data models — all frozen (immutable)."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import ClassVar, Union

USD_DECIMALS = 18

_HUMAN_AMOUNT_RE = re.compile(r"^(\d*)(?:\.(\d*))?$")


# ---------------------------------------------------------------------------
# Fixed-point values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenValue:
    """Integer amount with an explicit decimal exponent.

    ``TokenValue(1500000, 6)`` is 1.5 units of a 6-decimal token.
    """

    value: int
    decimals: int

    @classmethod
    def from_human(cls, text: str, decimals: int) -> TokenValue:
        """Parse a decimal string such as ``"12.5"`` without going through float."""
        match = _HUMAN_AMOUNT_RE.match(text.strip())
        if not match or not (match.group(1) or match.group(2)):
            raise ValueError(f"Invalid amount: {text!r}")
        whole, frac = match.group(1) or "0", match.group(2) or ""
        if len(frac) > decimals:
            raise ValueError(
                f"Amount {text!r} has more than {decimals} fractional digits"
            )
        scaled_frac = int(frac.ljust(decimals, "0") or "0")
        return cls(int(whole) * 10**decimals + scaled_frac, decimals)

    @classmethod
    def zero(cls, decimals: int = USD_DECIMALS) -> TokenValue:
        return cls(0, decimals)

    @property
    def is_zero(self) -> bool:
        return self.value == 0

    def rescale(self, decimals: int) -> TokenValue:
        """Express the same quantity with another exponent (floors when narrowing)."""
        if decimals == self.decimals:
            return self
        if decimals > self.decimals:
            return TokenValue(self.value * 10 ** (decimals - self.decimals), decimals)
        return TokenValue(self.value // 10 ** (self.decimals - decimals), decimals)

    def to_decimal(self) -> Decimal:
        """Human-readable value. Display only, never fed back into math."""
        return Decimal(self.value).scaleb(-self.decimals)

    def __str__(self) -> str:
        return format(self.to_decimal(), "f")


@dataclass(frozen=True)
class Price:
    """Oracle price, 18-decimal USD per whole token."""

    value: TokenValue
    is_valid: bool = True


# ---------------------------------------------------------------------------
# Pools and assets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Asset:
    address: str
    symbol: str
    decimals: int
    name: str = ""


@dataclass(frozen=True)
class PoolV1:
    """Legacy pool: positions live in the singleton, prices in the extension."""

    id: str
    name: str
    assets: tuple[Asset, ...]
    extension_address: str
    singleton_address: str = ""

    protocol_version: ClassVar[str] = "v1"
    supports_lever: ClassVar[bool] = False


@dataclass(frozen=True)
class PoolV2:
    """Pool contract deployed at the pool id; supports lever and delegation."""

    id: str
    name: str
    assets: tuple[Asset, ...]

    protocol_version: ClassVar[str] = "v2"
    supports_lever: ClassVar[bool] = True

    @property
    def address(self) -> str:
        return self.id


Pool = Union[PoolV1, PoolV2]


@dataclass(frozen=True)
class PairConfig:
    collateral: Asset
    debt: Asset
    max_ltv_bps: int


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Position:
    """An account's collateral/debt pair as reported by the indexer."""

    pool_id: str
    position_type: str
    collateral_symbol: str
    debt_symbol: str
    collateral_amount: TokenValue
    nominal_debt: TokenValue
    collateral_usd: TokenValue
    debt_usd: TokenValue
    current_ltv: TokenValue
    debt_amount: TokenValue | None = None
    collateral_shares: TokenValue | None = None

    @property
    def net_value_usd(self) -> TokenValue:
        decimals = max(self.collateral_usd.decimals, self.debt_usd.decimals)
        return TokenValue(
            self.collateral_usd.rescale(decimals).value
            - self.debt_usd.rescale(decimals).value,
            decimals,
        )


# ---------------------------------------------------------------------------
# Swap quotes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PoolKey:
    token0: str
    token1: str
    fee: int
    tick_spacing: int
    extension: str


@dataclass(frozen=True)
class RouteHop:
    pool_key: PoolKey
    sqrt_ratio_limit: int
    skip_ahead: int = 0


@dataclass(frozen=True)
class Split:
    amount_specified: int
    amount_calculated: int
    route: tuple[RouteHop, ...]


@dataclass(frozen=True)
class SwapQuote:
    token_in: str
    token_out: str
    exact_in: bool
    splits: tuple[Split, ...]
    total_calculated: int
    price_impact: float | None = None

    @property
    def specified_token(self) -> str:
        return self.token_in if self.exact_in else self.token_out


@dataclass(frozen=True)
class QuoteUnavailable:
    reason: str


@dataclass(frozen=True)
class SwapLeg:
    """One routed swap handed to the multiply contract.

    ``amount`` is the magnitude of ``token``; ``exact_out`` marks it as the
    amount to receive rather than to spend.
    """

    route: tuple[RouteHop, ...]
    token: str
    amount: int
    exact_out: bool = False


# ---------------------------------------------------------------------------
# Solver output and composed calls
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LeverDeltas:
    """Deltas computed by the solver for one operation.

    ``swap_amount`` is the amount to route through the AMM in units of the
    quote's specified token, or ``None`` when no swap is involved.
    """

    direction: str
    collateral_delta: TokenValue
    debt_delta: TokenValue
    debt_value_usd: TokenValue
    adjusted_ltv_bps: int
    swap_amount: TokenValue | None = None


@dataclass(frozen=True)
class Call:
    target: str
    entrypoint: str
    calldata: tuple[int, ...] = ()


@dataclass(frozen=True)
class CallBatch:
    """Ordered calls executed atomically in one transaction."""

    operation: str
    calls: tuple[Call, ...]
    swap_routed: bool = False
    warnings: tuple[str, ...] = ()

    @property
    def entrypoints(self) -> tuple[str, ...]:
        return tuple(call.entrypoint for call in self.calls)


@dataclass(frozen=True)
class OperationResult:
    """Uniform outcome of a public lever operation."""

    status: str
    operation: str
    transaction_hash: str | None = None
    collateral_symbol: str = ""
    debt_symbol: str = ""
    amounts: dict[str, str] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()
    error: str | None = None
    error_type: str | None = None
    step: str | None = None
    batch: CallBatch | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"
