"""Overcollateralized synthetic-dollar issuance engine.

Public API:
- ``DSCEngine`` — deposit, mint, burn, redeem and liquidate under the
  health-factor gate.
- ``AssetRegistry`` — collateral asset → price feed mapping.
- ``DecentralizedStableCoin`` / ``FungibleToken`` — in-memory token ledgers.
- ``StaticPriceFeed`` / ``PythOracle`` — price sources.
"""
from .engine import DSCEngine
from .errors import (
    ArithmeticUnderflow,
    BurnFailed,
    ConfigurationError,
    EngineError,
    HealthFactorBroken,
    HealthFactorNotImproved,
    HealthFactorOk,
    InsufficientCollateral,
    InsufficientCollateralToSeize,
    InvalidAmount,
    MintFailed,
    OracleUnavailable,
    ReentrancyError,
    TransferFailed,
    UnsupportedAsset,
)
from .health import calculate_health_factor
from .models import AccountInfo, EngineEvent, Event, LiquidationResult, PriceData
from .oracles import PythOracle, StaticPriceFeed
from .registry import AssetRegistry
from .tokens import DecentralizedStableCoin, FungibleToken

__all__ = [
    "DSCEngine",
    "AssetRegistry",
    "DecentralizedStableCoin",
    "FungibleToken",
    "StaticPriceFeed",
    "PythOracle",
    "calculate_health_factor",
    "AccountInfo",
    "EngineEvent",
    "Event",
    "LiquidationResult",
    "PriceData",
    "EngineError",
    "ArithmeticUnderflow",
    "BurnFailed",
    "ConfigurationError",
    "HealthFactorBroken",
    "HealthFactorNotImproved",
    "HealthFactorOk",
    "InsufficientCollateral",
    "InsufficientCollateralToSeize",
    "InvalidAmount",
    "MintFailed",
    "OracleUnavailable",
    "ReentrancyError",
    "TransferFailed",
    "UnsupportedAsset",
]
