"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from vesu_lever.config import (
    AccountConfig,
    AppConfig,
    EkuboConfig,
    StarknetConfig,
    VesuConfig,
)
from vesu_lever.models import Asset, PoolV1, PoolV2, Position, SwapQuote, TokenValue

from tests.factories import (
    ETH,
    EXTENSION,
    MULTIPLY,
    POOL_ID,
    SINGLETON,
    USDC,
    USER,
    V1_POOL_ID,
    WAD,
    FakeSubmitter,
    make_quote,
    price,
    usd,
)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_app_config() -> AppConfig:
    return AppConfig(
        starknet=StarknetConfig(rpc_url="https://rpc.example.com", rpc_timeout=10),
        account=AccountConfig(address=USER, private_key="0x1234"),
        vesu=VesuConfig(
            api_url="https://api.example.com",
            default_pool_id=POOL_ID,
            multiply_address=MULTIPLY,
        ),
        ekubo=EkuboConfig(quoter_url="https://quoter.example.com/quote", slippage_bps=50),
    )


SAMPLE_YAML = textwrap.dedent(f"""\
    starknet:
      rpc_url: "https://rpc.example.com"
      rpc_timeout: 10
      chain: mainnet
    account:
      address: "{USER}"
      private_key: "0x1234"
    vesu:
      api_url: "https://api.example.com/"
      multiply_address: "{MULTIPLY}"
    ekubo:
      quoter_url: "https://quoter.example.com/quote"
      slippage_bps: 75
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def eth() -> Asset:
    return Asset(address=ETH, symbol="ETH", decimals=18, name="Ether")


@pytest.fixture()
def usdc() -> Asset:
    return Asset(address=USDC, symbol="USDC", decimals=6, name="USD Coin")


@pytest.fixture()
def pool_v2(eth: Asset, usdc: Asset) -> PoolV2:
    return PoolV2(id=POOL_ID, name="Prime", assets=(eth, usdc))


@pytest.fixture()
def pool_v1(eth: Asset, usdc: Asset) -> PoolV1:
    return PoolV1(
        id=V1_POOL_ID,
        name="Genesis",
        assets=(eth, usdc),
        extension_address=EXTENSION,
        singleton_address=SINGLETON,
    )


@pytest.fixture()
def multiply_position() -> Position:
    """1 ETH at $3000 against $1500 of USDC debt: 50% LTV, $1500 net."""
    return Position(
        pool_id=POOL_ID,
        position_type="multiply",
        collateral_symbol="ETH",
        debt_symbol="USDC",
        collateral_amount=TokenValue(10**18, 18),
        nominal_debt=TokenValue(1_500_000_000, 6),
        collateral_usd=usd(3000),
        debt_usd=usd(1500),
        current_ltv=TokenValue(WAD // 2, 18),
        debt_amount=TokenValue(1_500_000_000, 6),
        collateral_shares=TokenValue(10**18, 18),
    )


@pytest.fixture()
def sample_quote() -> SwapQuote:
    return make_quote()


# ---------------------------------------------------------------------------
# Raw API payloads
# ---------------------------------------------------------------------------


@pytest.fixture()
def pool_v2_payload() -> dict[str, Any]:
    return {
        "id": POOL_ID,
        "name": "Prime",
        "owner": USER,
        "extensionContractAddress": None,
        "isVerified": True,
        "protocolVersion": "v2",
        "assets": [
            {"address": ETH, "symbol": "ETH", "decimals": 18, "name": "Ether"},
            {"address": USDC, "symbol": "USDC", "decimals": 6, "name": "USD Coin"},
        ],
    }


@pytest.fixture()
def pool_v1_payload(pool_v2_payload: dict[str, Any]) -> dict[str, Any]:
    return {
        **pool_v2_payload,
        "id": V1_POOL_ID,
        "name": "Genesis",
        "protocolVersion": "v1",
        "extensionContractAddress": EXTENSION,
    }


@pytest.fixture()
def multiply_position_payload() -> dict[str, Any]:
    return {
        "type": "multiply",
        "pool": {"id": POOL_ID},
        "collateral": {
            "symbol": "eth",
            "value": str(10**18),
            "decimals": 18,
            "usdPrice": {"value": str(3000 * WAD), "decimals": 18},
        },
        "collateralShares": {"value": str(10**18), "decimals": 18},
        "debt": {
            "symbol": "USDC",
            "value": "1500000000",
            "decimals": 6,
            "usdPrice": {"value": str(1500 * WAD), "decimals": 18},
        },
        "nominalDebt": {"value": "1500000000", "decimals": 6},
        "ltv": {"current": {"value": str(WAD // 2), "decimals": 18}},
    }


@pytest.fixture()
def quote_payload() -> dict[str, Any]:
    """Ekubo quote with mixed numeric encodings across two splits."""
    return {
        "total_calculated": "-1000",
        "price_impact": 0.0012,
        "splits": [
            {
                "amount_specified": "-500000000000000000",
                "amount_calculated": "-600",
                "route": [
                    {
                        "pool_key": {
                            "token0": USDC,
                            "token1": ETH,
                            "fee": {"low": "0x20c49ba5e353f80000000000000000", "high": "0x0"},
                            "tick_spacing": {"low": 1000, "high": 0},
                            "extension": "0x0",
                        },
                        "sqrt_ratio_limit": {"low": "0x5", "high": "0x1"},
                        "skip_ahead": 0,
                    }
                ],
            },
            {
                "amount_specified": "-500000000000000000",
                "amount_calculated": 400,
                "route": [
                    {
                        "pool_key": {
                            "token0": ETH,
                            "token1": USDC,
                            "fee": "170141183460469235273462165868118016",
                            "tick_spacing": "0x3e8",
                            "extension": "0x43e4f09c32d13d43a880e85f69f7de93ceda62d6cf2581a582c6db635548fdc",
                        },
                        "sqrt_ratio_limit": "18446748437148339061",
                        "skip_ahead": "0x2",
                    }
                ],
            },
        ],
    }


# ---------------------------------------------------------------------------
# Capability doubles
# ---------------------------------------------------------------------------


@pytest.fixture()
def submitter() -> FakeSubmitter:
    return FakeSubmitter()


@pytest.fixture()
def pool_reader() -> AsyncMock:
    """Pool reader: 80% max LTV, ETH at $3000, USDC at $1."""
    reader = AsyncMock()
    reader.pair_config.return_value = 80 * WAD // 100
    reader.ltv_config.return_value = 80 * WAD // 100
    prices = {ETH: price(3000), USDC: price(1)}
    reader.price.side_effect = lambda pool, asset: prices[asset]
    reader.extension_price.side_effect = lambda ext, pool_id, asset: prices[asset]
    reader.singleton_address.return_value = SINGLETON
    return reader
