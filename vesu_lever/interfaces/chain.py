"""Pool reader protocol — on-chain lending pool reads."""
from typing import Protocol

from ..models import Price


class PoolReader(Protocol):
    """Read-only access to Vesu pool, singleton and extension contracts."""

    async def pair_config(self, pool_address: str, collateral: str, debt: str) -> int: ...

    async def price(self, pool_address: str, asset: str) -> Price: ...

    async def singleton_address(self, extension_address: str) -> str: ...

    async def ltv_config(
        self, singleton_address: str, pool_id: str, collateral: str, debt: str
    ) -> int: ...

    async def extension_price(
        self, extension_address: str, pool_id: str, asset: str
    ) -> Price: ...
