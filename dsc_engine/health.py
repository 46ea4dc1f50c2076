"""Health factor arithmetic and the solvency gate."""
from __future__ import annotations

from .constants import (
    HEALTH_FACTOR_INFINITE,
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MIN_HEALTH_FACTOR,
    PRECISION,
)
from .errors import HealthFactorBroken


def calculate_health_factor(total_dsc_minted: int, collateral_value_usd: int) -> int:
    """Risk-adjusted collateral over debt, scaled by 1e18.

    Zero debt yields ``HEALTH_FACTOR_INFINITE``.
    """
    if total_dsc_minted == 0:
        return HEALTH_FACTOR_INFINITE
    adjusted = collateral_value_usd * LIQUIDATION_THRESHOLD // LIQUIDATION_PRECISION
    return adjusted * PRECISION // total_dsc_minted


def is_healthy(health_factor: int) -> bool:
    return health_factor >= MIN_HEALTH_FACTOR


def assert_healthy(health_factor: int) -> None:
    if not is_healthy(health_factor):
        raise HealthFactorBroken(health_factor)
