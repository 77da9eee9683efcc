"""Position state fetcher: current position from the Vesu indexer."""
from __future__ import annotations

import logging

from ...errors import PositionNotFoundError
from ...interfaces.pool_source import PositionSource
from ...models import Asset, Pool, Position
from . import parser
from .api import VesuApiError

logger = logging.getLogger(__name__)


class PositionFetcher:
    """Look up a wallet's position for a pool and asset pair."""

    def __init__(self, position_source: PositionSource) -> None:
        self._source = position_source

    async def fetch_position(
        self,
        wallet_address: str,
        pool: Pool,
        collateral: Asset,
        debt: Asset,
        position_type: str = "multiply",
    ) -> Position:
        try:
            raw_positions = await self._source.get_positions(wallet_address, position_type)
        except VesuApiError as e:
            raise PositionNotFoundError(f"Failed to get position data: {e}") from e

        raw = parser.find_position(
            raw_positions, pool.id, collateral.symbol, debt.symbol, position_type
        )
        if raw is None:
            raise PositionNotFoundError(
                f"No matching {position_type} position found for "
                f"{collateral.symbol}/{debt.symbol} in pool {pool.id}"
            )

        try:
            position = parser.parse_position(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise PositionNotFoundError(f"Malformed position data: {e}") from e

        logger.info("=" * 60)
        logger.info(
            "POSITION %s/%s (%s)",
            position.collateral_symbol, position.debt_symbol, position_type,
        )
        logger.info(
            "  Collateral:    %s ($%s)", position.collateral_amount, position.collateral_usd
        )
        logger.info("  Nominal debt:  %s ($%s)", position.nominal_debt, position.debt_usd)
        logger.info("  Current LTV:   %s", position.current_ltv)
        logger.info("  Net value:     $%s", position.net_value_usd)
        logger.info("=" * 60)
        return position
