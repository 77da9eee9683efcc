"""Lever service: wires resolver, solver, quoter and composer per request.

Each public operation walks the same state machine::

    RESOLVE_POOL → RESOLVE_PRICES → FETCH_POSITION → SOLVE_DELTAS
        → REQUEST_QUOTE → COMPOSE_WITH_SWAP | COMPOSE_NO_SWAP → SUBMIT

Any failure up to SOLVE_DELTAS aborts before a single call is built. A failed
quote degrades to a swap-less batch for operations that can run without one.
Every operation returns an OperationResult and never raises.
"""
from __future__ import annotations

import logging
import warnings
from collections.abc import Awaitable, Callable

from ..chains.starknet.address import normalize_address
from ..chains.starknet.client import StarknetPoolClient
from ..config import AppConfig
from ..errors import ConfigError, LeverError, QuoteDegradedWarning, ZeroAmountError
from ..interfaces.chain import PoolReader
from ..interfaces.pool_source import PoolSource, PositionSource
from ..interfaces.quote_source import QuoteSource
from ..interfaces.submitter import Submitter
from ..lever import composer, solver
from ..models import (
    USD_DECIMALS,
    Asset,
    CallBatch,
    OperationResult,
    PairConfig,
    Pool,
    PoolV1,
    QuoteUnavailable,
    SwapQuote,
    TokenValue,
)
from ..protocols.vesu.api import VesuApiClient
from ..protocols.vesu.positions import PositionFetcher
from ..protocols.vesu.resolver import PoolResolver
from ..swaps.ekubo.quoter import EkuboQuoter

logger = logging.getLogger(__name__)

Plan = tuple[CallBatch, dict[str, str]]


class LeverService:
    """Open, re-target and unwind Vesu borrow and multiply positions."""

    def __init__(
        self,
        config: AppConfig,
        pool_source: PoolSource,
        position_source: PositionSource,
        pool_reader: PoolReader,
        quote_source: QuoteSource,
    ) -> None:
        self._config = config
        self._resolver = PoolResolver(pool_source, pool_reader)
        self._positions = PositionFetcher(position_source)
        self._quotes = quote_source
        self._multiply_address = normalize_address(config.vesu.multiply_address)

    @classmethod
    def from_config(cls, config: AppConfig) -> LeverService:
        vesu_api = VesuApiClient(config.vesu)
        return cls(
            config,
            pool_source=vesu_api,
            position_source=vesu_api,
            pool_reader=StarknetPoolClient(config.starknet),
            quote_source=EkuboQuoter(config.ekubo),
        )

    # ------------------------------------------------------------------
    # Shared pipeline stages
    # ------------------------------------------------------------------

    async def _resolve(
        self,
        pool_id: str | None,
        collateral_symbol: str,
        debt_symbol: str,
        require_lever: bool,
    ) -> tuple[Pool, Asset, Asset, PairConfig]:
        pool = await self._resolver.resolve_pool(
            pool_id or self._config.vesu.default_pool_id, require_lever=require_lever
        )
        collateral = self._resolver.find_asset(pool, collateral_symbol)
        debt = self._resolver.find_asset(pool, debt_symbol)
        pair = await self._resolver.resolve_pair_config(pool, collateral, debt)
        return pool, collateral, debt, pair

    async def _quote(
        self, token_in: Asset, token_out: Asset, amount: TokenValue, exact_in: bool
    ) -> SwapQuote | None:
        result = await self._quotes.request_quote(
            token_in.address, token_out.address, amount.value, exact_in
        )
        if isinstance(result, QuoteUnavailable):
            logger.warning("Quote unavailable (%s)", result.reason)
            warnings.warn(
                f"{composer.QUOTE_DEGRADED_MESSAGE}: {result.reason}",
                QuoteDegradedWarning,
                stacklevel=2,
            )
            return None
        return result

    def _slippage(self, slippage_bps: int | None) -> int:
        if slippage_bps is None:
            return self._config.ekubo.slippage_bps
        if not 0 <= slippage_bps < 10_000:
            raise ConfigError(f"Slippage must be in [0, 10000) bps, got {slippage_bps}")
        return slippage_bps

    async def _execute(
        self,
        operation: str,
        submitter: Submitter,
        collateral_symbol: str,
        debt_symbol: str,
        plan: Callable[[], Awaitable[Plan]],
        dry_run: bool,
    ) -> OperationResult:
        """Run a planning coroutine, submit its batch and fold any error into a result."""
        logger.info(
            "%s %s/%s%s", operation, collateral_symbol, debt_symbol,
            " (dry run)" if dry_run else "",
        )
        try:
            batch, amounts = await plan()
            tx_hash = None if dry_run else await submitter.submit(batch)
        except LeverError as e:
            logger.error("%s failed at %s: %s", operation, e.step, e)
            return OperationResult(
                status="failure",
                operation=operation,
                collateral_symbol=collateral_symbol,
                debt_symbol=debt_symbol,
                error=str(e),
                error_type=type(e).__name__,
                step=e.step,
            )
        except Exception as e:
            logger.exception("%s failed unexpectedly", operation)
            return OperationResult(
                status="failure",
                operation=operation,
                collateral_symbol=collateral_symbol,
                debt_symbol=debt_symbol,
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
            )

        for message in batch.warnings:
            logger.warning("%s: %s", operation, message)
        return OperationResult(
            status="success",
            operation=operation,
            transaction_hash=tx_hash,
            collateral_symbol=collateral_symbol,
            debt_symbol=debt_symbol,
            amounts=amounts,
            warnings=batch.warnings,
            batch=batch,
        )

    # ------------------------------------------------------------------
    # Planners (pure pipeline, no submission)
    # ------------------------------------------------------------------

    async def plan_open_borrow(
        self,
        user: str,
        collateral_symbol: str,
        debt_symbol: str,
        amount: str,
        target_ltv: str,
        pool_id: str | None = None,
    ) -> Plan:
        target_bps = solver.parse_target_ltv(target_ltv)
        pool, collateral, debt, pair = await self._resolve(
            pool_id, collateral_symbol, debt_symbol, require_lever=False
        )
        collateral_price, debt_price = await self._resolver.resolve_prices(
            pool, collateral, debt
        )
        deltas = solver.solve_borrow(
            _parse_amount(amount, collateral),
            target_bps,
            pair.max_ltv_bps,
            collateral_price,
            debt_price,
            debt.decimals,
        )
        batch = composer.compose_borrow(pool, collateral, debt, user, deltas)
        return batch, {
            "collateral": str(deltas.collateral_delta),
            "debt": str(deltas.debt_delta),
            "debt_value_usd": str(deltas.debt_value_usd),
        }

    async def plan_open_multiply(
        self,
        user: str,
        collateral_symbol: str,
        debt_symbol: str,
        amount: str,
        target_ltv: str,
        pool_id: str | None = None,
        slippage_bps: int | None = None,
    ) -> Plan:
        target_bps = solver.parse_target_ltv(target_ltv)
        pool, collateral, debt, pair = await self._resolve(
            pool_id, collateral_symbol, debt_symbol, require_lever=True
        )
        collateral_price, debt_price = await self._resolver.resolve_prices(
            pool, collateral, debt
        )
        deltas = solver.solve_multiply_open(
            _parse_amount(amount, collateral),
            target_bps,
            pair.max_ltv_bps,
            collateral_price,
            debt_price,
            debt.decimals,
        )
        # Buy exactly the extra collateral, paying in debt.
        quote = await self._quote(debt, collateral, deltas.swap_amount, exact_in=False)
        batch = composer.compose_open_multiply(
            pool,
            self._multiply_address,
            collateral,
            debt,
            user,
            deltas,
            quote,
            self._slippage(slippage_bps),
        )
        return batch, {
            "margin": str(deltas.collateral_delta),
            "extra_collateral": str(deltas.swap_amount),
            "debt": str(deltas.debt_delta),
            "debt_value_usd": str(deltas.debt_value_usd),
        }

    async def plan_update_multiply(
        self,
        user: str,
        collateral_symbol: str,
        debt_symbol: str,
        target_ltv: str,
        pool_id: str | None = None,
        slippage_bps: int | None = None,
    ) -> Plan:
        target_bps = solver.parse_target_ltv(target_ltv)
        pool, collateral, debt, pair = await self._resolve(
            pool_id, collateral_symbol, debt_symbol, require_lever=True
        )
        collateral_price, debt_price = await self._resolver.resolve_prices(
            pool, collateral, debt
        )
        position = await self._positions.fetch_position(
            user, pool, collateral, debt, "multiply"
        )
        deltas = solver.solve_multiply_update(
            position,
            target_bps,
            pair.max_ltv_bps,
            collateral_price,
            debt_price,
            collateral.decimals,
            debt.decimals,
        )
        if deltas.direction == "increase":
            # Sell exactly the new debt for collateral.
            quote = await self._quote(debt, collateral, deltas.debt_delta, exact_in=True)
        else:
            # Buy exactly the debt to repay, paying in collateral.
            quote = await self._quote(collateral, debt, deltas.debt_delta, exact_in=False)
        batch = composer.compose_update_multiply(
            pool,
            self._multiply_address,
            collateral,
            debt,
            user,
            deltas,
            quote,
            self._slippage(slippage_bps),
        )
        return batch, {
            "direction": deltas.direction,
            "debt_delta": str(deltas.debt_delta),
            "collateral_delta": str(deltas.collateral_delta),
            "target_ltv_bps": str(target_bps),
        }

    async def plan_decrease_multiply(
        self,
        user: str,
        collateral_symbol: str,
        debt_symbol: str,
        amount: str | None = None,
        pool_id: str | None = None,
        slippage_bps: int | None = None,
    ) -> Plan:
        """Close when ``amount`` is omitted or "0", otherwise withdraw margin."""
        pool, collateral, debt, pair = await self._resolve(
            pool_id, collateral_symbol, debt_symbol, require_lever=True
        )
        collateral_price, _ = await self._resolver.resolve_prices(pool, collateral, debt)
        position = await self._positions.fetch_position(
            user, pool, collateral, debt, "multiply"
        )

        if _is_close(amount):
            if position.nominal_debt.is_zero:
                raise ZeroAmountError("Position has no debt to close")
            nominal = TokenValue(position.nominal_debt.value, debt.decimals)
            quote = await self._quote(collateral, debt, nominal, exact_in=False)
            batch = composer.compose_close_multiply(
                pool,
                self._multiply_address,
                collateral,
                debt,
                user,
                quote,
                self._slippage(slippage_bps),
            )
            return batch, {"debt_repaid": str(nominal), "close_position": "true"}

        withdraw = _parse_amount(amount, collateral)
        resulting_bps = solver.check_withdraw(
            position, withdraw, collateral_price, pair.max_ltv_bps
        )
        batch = composer.compose_withdraw_multiply(
            pool, self._multiply_address, collateral, debt, user, withdraw
        )
        return batch, {
            "withdrawn": str(withdraw),
            "resulting_ltv_bps": str(resulting_bps),
        }

    async def plan_repay_borrow(
        self,
        user: str,
        collateral_symbol: str,
        debt_symbol: str,
        amount: str | None = None,
        pool_id: str | None = None,
    ) -> Plan:
        """Repay ``amount`` of debt, or the whole position when omitted or "0"."""
        pool, collateral, debt, _ = await self._resolve(
            pool_id, collateral_symbol, debt_symbol, require_lever=False
        )
        # Prices are unused here, but a stale or zero oracle price still blocks
        # the repay like every other operation.
        await self._resolver.resolve_prices(pool, collateral, debt)

        if _is_close(amount):
            position = await self._positions.fetch_position(
                user, pool, collateral, debt, "borrow"
            )
            repaid = position.nominal_debt
            if isinstance(pool, PoolV1) and position.debt_amount is not None:
                repaid = position.debt_amount
            if repaid.is_zero:
                raise ZeroAmountError("Position has no debt to repay")
            batch = composer.compose_full_repay(pool, collateral, debt, user, position)
            return batch, {"debt_repaid": str(repaid), "full": "true"}

        repay = _parse_amount(amount, debt)
        batch = composer.compose_repay(pool, collateral, debt, user, repay)
        return batch, {
            "debt_repaid": str(repay),
            "approved": str(TokenValue(composer.repay_approval(repay.value), debt.decimals)),
        }

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def open_borrow(
        self,
        submitter: Submitter,
        collateral_symbol: str,
        debt_symbol: str,
        amount: str,
        target_ltv: str,
        pool_id: str | None = None,
        dry_run: bool = False,
    ) -> OperationResult:
        return await self._execute(
            "open_borrow", submitter, collateral_symbol, debt_symbol,
            lambda: self.plan_open_borrow(
                submitter.address, collateral_symbol, debt_symbol,
                amount, target_ltv, pool_id,
            ),
            dry_run,
        )

    async def open_multiply(
        self,
        submitter: Submitter,
        collateral_symbol: str,
        debt_symbol: str,
        amount: str,
        target_ltv: str,
        pool_id: str | None = None,
        slippage_bps: int | None = None,
        dry_run: bool = False,
    ) -> OperationResult:
        return await self._execute(
            "open_multiply", submitter, collateral_symbol, debt_symbol,
            lambda: self.plan_open_multiply(
                submitter.address, collateral_symbol, debt_symbol,
                amount, target_ltv, pool_id, slippage_bps,
            ),
            dry_run,
        )

    async def update_multiply(
        self,
        submitter: Submitter,
        collateral_symbol: str,
        debt_symbol: str,
        target_ltv: str,
        pool_id: str | None = None,
        slippage_bps: int | None = None,
        dry_run: bool = False,
    ) -> OperationResult:
        return await self._execute(
            "update_multiply", submitter, collateral_symbol, debt_symbol,
            lambda: self.plan_update_multiply(
                submitter.address, collateral_symbol, debt_symbol,
                target_ltv, pool_id, slippage_bps,
            ),
            dry_run,
        )

    async def decrease_multiply(
        self,
        submitter: Submitter,
        collateral_symbol: str,
        debt_symbol: str,
        amount: str | None = None,
        pool_id: str | None = None,
        slippage_bps: int | None = None,
        dry_run: bool = False,
    ) -> OperationResult:
        operation = "close_multiply" if _is_close(amount) else "decrease_multiply"
        return await self._execute(
            operation, submitter, collateral_symbol, debt_symbol,
            lambda: self.plan_decrease_multiply(
                submitter.address, collateral_symbol, debt_symbol,
                amount, pool_id, slippage_bps,
            ),
            dry_run,
        )

    async def repay_borrow(
        self,
        submitter: Submitter,
        collateral_symbol: str,
        debt_symbol: str,
        amount: str | None = None,
        pool_id: str | None = None,
        dry_run: bool = False,
    ) -> OperationResult:
        return await self._execute(
            "repay_borrow", submitter, collateral_symbol, debt_symbol,
            lambda: self.plan_repay_borrow(
                submitter.address, collateral_symbol, debt_symbol, amount, pool_id,
            ),
            dry_run,
        )


def _is_close(amount: str | None) -> bool:
    """``None``, blank or any zero such as ``"0.00"`` means the whole position."""
    if amount is None or not amount.strip():
        return True
    try:
        return TokenValue.from_human(amount, USD_DECIMALS).is_zero
    except ValueError:
        return False


def _parse_amount(amount: str | None, asset: Asset) -> TokenValue:
    try:
        value = TokenValue.from_human(amount or "", asset.decimals)
    except ValueError as e:
        raise ZeroAmountError(f"Invalid {asset.symbol} amount: {e}") from e
    if value.is_zero:
        raise ZeroAmountError(f"{asset.symbol} amount must be positive")
    return value

