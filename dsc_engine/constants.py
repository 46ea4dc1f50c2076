"""Protocol constants — fixed at import time, never reconfigured."""

# USD values and health factors share this fixed-point scale.
PRECISION = 10**18
ENGINE_DECIMALS = 18

LIQUIDATION_THRESHOLD = 50  # 200% overcollateralized
LIQUIDATION_PRECISION = 100
LIQUIDATION_BONUS = 10  # percent of the seized base amount

MIN_HEALTH_FACTOR = 10**18

# Returned for accounts without debt.
HEALTH_FACTOR_INFINITE = 2**256 - 1

DEFAULT_MAX_PRICE_AGE_SECONDS = 3 * 60 * 60

DEFAULT_ENGINE_ADDRESS = "dsc-engine"
