"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

GENESIS_POOL_ID = "0x0451fe483d5921a2919ddd81d0de6696669bccdacd859f72a4fba7656b97c3b5"

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StarknetConfig:
    rpc_url: str = ""
    rpc_timeout: int = 30
    chain: str = "mainnet"


@dataclass(frozen=True)
class AccountConfig:
    address: str = ""
    private_key: str = field(default="", repr=False)


@dataclass(frozen=True)
class VesuConfig:
    api_url: str = "https://api.vesu.xyz"
    default_pool_id: str = GENESIS_POOL_ID
    multiply_address: str = ""
    http_timeout: int = 30


@dataclass(frozen=True)
class EkuboConfig:
    quoter_url: str = "https://mainnet-api.ekubo.org/quote"
    http_timeout: int = 15
    slippage_bps: int = 50


@dataclass(frozen=True)
class AppConfig:
    starknet: StarknetConfig = field(default_factory=StarknetConfig)
    account: AccountConfig = field(default_factory=AccountConfig)
    vesu: VesuConfig = field(default_factory=VesuConfig)
    ekubo: EkuboConfig = field(default_factory=EkuboConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_starknet(raw: dict[str, Any]) -> StarknetConfig:
    return StarknetConfig(
        rpc_url=raw.get("rpc_url", ""),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        chain=str(raw.get("chain", "mainnet")).lower(),
    )


def _build_account(raw: dict[str, Any]) -> AccountConfig:
    return AccountConfig(
        address=raw.get("address", ""),
        private_key=raw.get("private_key", ""),
    )


def _build_vesu(raw: dict[str, Any]) -> VesuConfig:
    return VesuConfig(
        api_url=str(raw.get("api_url", VesuConfig.api_url)).rstrip("/"),
        default_pool_id=raw.get("default_pool_id", GENESIS_POOL_ID) or GENESIS_POOL_ID,
        multiply_address=raw.get("multiply_address", ""),
        http_timeout=int(raw.get("http_timeout", 30)),
    )


def _build_ekubo(raw: dict[str, Any]) -> EkuboConfig:
    return EkuboConfig(
        quoter_url=str(raw.get("quoter_url", EkuboConfig.quoter_url)).rstrip("/"),
        http_timeout=int(raw.get("http_timeout", 15)),
        slippage_bps=int(raw.get("slippage_bps", 50)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        starknet=_build_starknet(raw.get("starknet", {})),
        account=_build_account(raw.get("account", {})),
        vesu=_build_vesu(raw.get("vesu", {})),
        ekubo=_build_ekubo(raw.get("ekubo", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.starknet.rpc_url:
        raise ConfigError("starknet.rpc_url must be configured")
    if cfg.starknet.chain not in ("mainnet", "sepolia"):
        raise ConfigError(f"Unknown starknet chain '{cfg.starknet.chain}'")
    if not cfg.account.address:
        raise ConfigError("account.address must be configured")
    if not cfg.vesu.multiply_address:
        raise ConfigError("vesu.multiply_address must be configured")
    if not 0 <= cfg.ekubo.slippage_bps < 10_000:
        raise ConfigError(
            f"ekubo.slippage_bps must be in [0, 10000), got {cfg.ekubo.slippage_bps}"
        )
