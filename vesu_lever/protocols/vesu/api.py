"""Vesu indexer REST client."""
from __future__ import annotations

import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import VesuConfig

logger = logging.getLogger(__name__)


class VesuApiError(Exception):
    """Transport or payload failure talking to the Vesu indexer."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class VesuApiClient:
    """Fetch pools and positions from the Vesu REST API."""

    def __init__(self, config: VesuConfig) -> None:
        self.api_url = config.api_url.rstrip("/")
        self.timeout = config.http_timeout

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        url = f"{self.api_url}{path}"
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(connector=connector, timeout=timeout) as session:
                async with session.get(url, params=params) as response:
                    if response.status != 200:
                        raise VesuApiError(
                            f"GET {path} returned HTTP {response.status}",
                            status=response.status,
                        )
                    return await response.json()
        except VesuApiError:
            raise
        except Exception as e:
            logger.error("Error calling Vesu API %s: %s", path, e)
            raise VesuApiError(f"GET {path} failed: {e}") from e

    async def get_pool(self, pool_id: str) -> dict[str, Any]:
        """Raw pool payload (the ``data`` member of ``/pools/{id}``)."""
        body = await self._get_json(f"/pools/{pool_id}")
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise VesuApiError(f"Pool {pool_id} response has no data")
        return data

    async def get_positions(
        self, wallet_address: str, position_type: str
    ) -> list[dict[str, Any]]:
        """Raw positions of ``position_type`` ("multiply", "borrow", ...) for a wallet."""
        body = await self._get_json(
            "/positions",
            params={"walletAddress": wallet_address, "type": position_type},
        )
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise VesuApiError("Positions response has no data list")
        logger.info(
            "Fetched %d %s position(s) for %s", len(data), position_type, wallet_address
        )
        return data
