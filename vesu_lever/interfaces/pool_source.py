"""Pool and position sources — indexer REST abstraction."""
from typing import Any, Protocol


class PoolSource(Protocol):
    """Pool metadata lookup by id."""

    async def get_pool(self, pool_id: str) -> dict[str, Any]: ...


class PositionSource(Protocol):
    """Indexed positions held by a wallet."""

    async def get_positions(
        self, wallet_address: str, position_type: str
    ) -> list[dict[str, Any]]: ...
