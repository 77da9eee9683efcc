"""Pool, pair-config and oracle price resolution."""
from __future__ import annotations

import asyncio
import logging

from ...errors import AssetNotFoundError, PoolResolutionError, PriceInvalidError
from ...interfaces.chain import PoolReader
from ...interfaces.pool_source import PoolSource
from ...models import Asset, PairConfig, Pool, PoolV1, PoolV2, Price
from . import parser
from .api import VesuApiError

logger = logging.getLogger(__name__)

WAD = 10**18
BPS = 10_000


class PoolResolver:
    """Resolve pool metadata from the indexer and risk/price data from chain."""

    def __init__(self, pool_source: PoolSource, reader: PoolReader) -> None:
        self._source = pool_source
        self._reader = reader

    async def resolve_pool(self, pool_id: str, require_lever: bool = False) -> Pool:
        """Fetch and parse a pool; lever capability is checked here and only here."""
        try:
            raw = await self._source.get_pool(pool_id)
            pool = parser.parse_pool(raw)
        except VesuApiError as e:
            raise PoolResolutionError(f"Unknown pool {pool_id}: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise PoolResolutionError(f"Malformed pool {pool_id}: {e}") from e

        if require_lever and not pool.supports_lever:
            raise PoolResolutionError(
                "Multiply operations are only supported on v2 pools. "
                f"This pool is {pool.protocol_version}"
            )

        if isinstance(pool, PoolV1):
            try:
                singleton = await self._reader.singleton_address(pool.extension_address)
            except Exception as e:
                raise PoolResolutionError(
                    f"Could not read singleton for pool {pool.id}: {e}"
                ) from e
            pool = PoolV1(
                id=pool.id,
                name=pool.name,
                assets=pool.assets,
                extension_address=pool.extension_address,
                singleton_address=singleton,
            )

        logger.info(
            "Resolved pool %s (%s, %s, %d assets)",
            pool.id, pool.name, pool.protocol_version, len(pool.assets),
        )
        return pool

    @staticmethod
    def find_asset(pool: Pool, symbol: str) -> Asset:
        for asset in pool.assets:
            if asset.symbol.upper() == symbol.upper():
                return asset
        raise AssetNotFoundError(f"Asset {symbol} not found in pool {pool.name or pool.id}")

    async def resolve_pair_config(
        self, pool: Pool, collateral: Asset, debt: Asset
    ) -> PairConfig:
        """Max LTV of the pair in basis points."""
        try:
            if isinstance(pool, PoolV2):
                raw = await self._reader.pair_config(
                    pool.address, collateral.address, debt.address
                )
            else:
                raw = await self._reader.ltv_config(
                    pool.singleton_address, pool.id, collateral.address, debt.address
                )
        except Exception as e:
            raise PoolResolutionError(
                f"Could not read pair config {collateral.symbol}/{debt.symbol}: {e}"
            ) from e

        max_ltv_bps = raw * BPS // WAD
        if max_ltv_bps <= 0:
            raise PoolResolutionError(
                f"Pair {collateral.symbol}/{debt.symbol} is not enabled for borrowing"
            )
        return PairConfig(collateral=collateral, debt=debt, max_ltv_bps=max_ltv_bps)

    async def resolve_price(self, pool: Pool, asset: Asset) -> Price:
        try:
            if isinstance(pool, PoolV2):
                price = await self._reader.price(pool.address, asset.address)
            else:
                price = await self._reader.extension_price(
                    pool.extension_address, pool.id, asset.address
                )
        except Exception as e:
            raise PriceInvalidError(f"Could not read price for {asset.symbol}: {e}") from e

        if not price.is_valid:
            raise PriceInvalidError(f"Oracle price for {asset.symbol} is stale")
        if price.value.value <= 0:
            raise PriceInvalidError(f"Oracle price for {asset.symbol} is zero")
        return price

    async def resolve_prices(
        self, pool: Pool, collateral: Asset, debt: Asset
    ) -> tuple[Price, Price]:
        """Collateral and debt prices, fetched concurrently."""
        collateral_price, debt_price = await asyncio.gather(
            self.resolve_price(pool, collateral),
            self.resolve_price(pool, debt),
        )
        logger.info(
            "Prices: %s=$%s %s=$%s",
            collateral.symbol, collateral_price.value, debt.symbol, debt_price.value,
        )
        return collateral_price, debt_price
