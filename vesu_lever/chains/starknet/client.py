"""Starknet RPC client for Vesu pool, singleton and extension reads."""
from __future__ import annotations

import asyncio
import logging

from starknet_py.hash.selector import get_selector_from_name
from starknet_py.net.client_models import Call
from starknet_py.net.full_node_client import FullNodeClient

from ...config import StarknetConfig
from ...models import Price, TokenValue
from .address import normalize_address, to_int

logger = logging.getLogger(__name__)

PRICE_DECIMALS = 18


def _decode_asset_price(result: list[int]) -> Price:
    """``AssetPrice { value: u256, is_valid: bool }`` → Price."""
    if len(result) < 3:
        raise ValueError(f"Unexpected AssetPrice layout: {result}")
    low, high, is_valid = result[0], result[1], result[2]
    return Price(
        value=TokenValue(low + (high << 128), PRICE_DECIMALS),
        is_valid=bool(is_valid),
    )


class StarknetPoolClient:
    """Read Vesu contract state through a JSON-RPC full node."""

    def __init__(self, config: StarknetConfig, client: FullNodeClient | None = None) -> None:
        self._client = client or FullNodeClient(node_url=config.rpc_url)
        self._timeout = config.rpc_timeout

    @property
    def client(self) -> FullNodeClient:
        return self._client

    async def call(
        self, address: str, entrypoint: str, calldata: list[int] | None = None
    ) -> list[int]:
        """Raw ``starknet_call`` against the latest block, bounded by ``rpc_timeout``."""
        logger.debug("call %s.%s(%s)", address, entrypoint, calldata or [])
        request = self._client.call_contract(
            call=Call(
                to_addr=to_int(address),
                selector=get_selector_from_name(entrypoint),
                calldata=calldata or [],
            ),
            block_number="latest",
        )
        try:
            return await asyncio.wait_for(request, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(
                "RPC call %s.%s timed out after %ss", address, entrypoint, self._timeout
            )
            raise

    async def pair_config(self, pool_address: str, collateral: str, debt: str) -> int:
        """Raw 18-decimal ``max_ltv`` from ``PairConfig``."""
        result = await self.call(
            pool_address, "pair_config", [to_int(collateral), to_int(debt)]
        )
        return result[0]

    async def price(self, pool_address: str, asset: str) -> Price:
        result = await self.call(pool_address, "price", [to_int(asset)])
        return _decode_asset_price(result)

    async def singleton_address(self, extension_address: str) -> str:
        result = await self.call(extension_address, "singleton")
        return normalize_address(result[0])

    async def ltv_config(
        self, singleton_address: str, pool_id: str, collateral: str, debt: str
    ) -> int:
        """Raw 18-decimal ``max_ltv`` from the singleton's ``LTVConfig``."""
        result = await self.call(
            singleton_address,
            "ltv_config",
            [to_int(pool_id), to_int(collateral), to_int(debt)],
        )
        return result[0]

    async def extension_price(self, extension_address: str, pool_id: str, asset: str) -> Price:
        result = await self.call(
            extension_address, "price", [to_int(pool_id), to_int(asset)]
        )
        return _decode_asset_price(result)
