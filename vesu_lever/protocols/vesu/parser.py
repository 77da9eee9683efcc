"""Pure parsing functions for Vesu indexer payloads — no I/O."""
from __future__ import annotations

from typing import Any

from ...chains.starknet.address import normalize_address, same_address
from ...models import Asset, Pool, PoolV1, PoolV2, Position, TokenValue


def parse_token_value(raw: dict[str, Any] | None, default_decimals: int = 18) -> TokenValue:
    """``{"value": "123", "decimals": 18}`` → TokenValue.

    Missing blocks parse as zero so that optional fields stay optional.
    """
    if not raw:
        return TokenValue(0, default_decimals)
    return TokenValue(int(raw.get("value", 0) or 0), int(raw.get("decimals", default_decimals)))


def parse_asset(raw: dict[str, Any]) -> Asset:
    return Asset(
        address=normalize_address(raw["address"]),
        symbol=str(raw["symbol"]),
        decimals=int(raw["decimals"]),
        name=str(raw.get("name", "")),
    )


def parse_pool(raw: dict[str, Any]) -> Pool:
    """Build the version-specific pool variant.

    Raises:
        ValueError / KeyError on malformed payloads or unknown versions.
    """
    version = raw.get("protocolVersion")
    pool_id = normalize_address(raw["id"])
    name = str(raw.get("name", ""))
    assets = tuple(parse_asset(a) for a in raw.get("assets") or [])
    if not assets:
        raise ValueError(f"Pool {pool_id} lists no assets")

    if version == "v2":
        return PoolV2(id=pool_id, name=name, assets=assets)
    if version == "v1":
        extension = raw.get("extensionContractAddress")
        if not extension:
            raise ValueError(f"v1 pool {pool_id} has no extension contract")
        return PoolV1(
            id=pool_id,
            name=name,
            assets=assets,
            extension_address=normalize_address(extension),
        )
    raise ValueError(f"Unknown protocol version {version!r} for pool {pool_id}")


def find_position(
    positions: list[dict[str, Any]],
    pool_id: str,
    collateral_symbol: str,
    debt_symbol: str,
    position_type: str,
) -> dict[str, Any] | None:
    """First indexed position matching pool, type and symbols (case-insensitive)."""
    for raw in positions:
        if raw.get("type") != position_type:
            continue
        raw_pool = (raw.get("pool") or {}).get("id")
        if not raw_pool or not same_address(raw_pool, pool_id):
            continue
        collateral = (raw.get("collateral") or {}).get("symbol", "")
        debt = (raw.get("debt") or {}).get("symbol", "")
        if (
            collateral.upper() == collateral_symbol.upper()
            and debt.upper() == debt_symbol.upper()
        ):
            return raw
    return None


def parse_position(raw: dict[str, Any]) -> Position:
    """Convert an indexed position into a Position.

    ``usdPrice`` on the collateral and debt blocks is the USD value of the
    whole holding, not a unit price.
    """
    collateral = raw.get("collateral") or {}
    debt = raw.get("debt") or {}
    collateral_shares = raw.get("collateralShares")
    return Position(
        pool_id=normalize_address(raw["pool"]["id"]),
        position_type=str(raw.get("type", "")),
        collateral_symbol=str(collateral.get("symbol", "")),
        debt_symbol=str(debt.get("symbol", "")),
        collateral_amount=parse_token_value(collateral),
        nominal_debt=parse_token_value(raw.get("nominalDebt")),
        collateral_usd=parse_token_value(collateral.get("usdPrice")),
        debt_usd=parse_token_value(debt.get("usdPrice")),
        current_ltv=parse_token_value((raw.get("ltv") or {}).get("current")),
        debt_amount=parse_token_value(debt) if debt else None,
        collateral_shares=parse_token_value(collateral_shares) if collateral_shares else None,
    )
