"""Price conversion between raw collateral units and 18-decimal USD.

All arithmetic is integer-only and multiplies before it divides:

    normalized = price * 10**(18 - feed_decimals)
    usd        = normalized * amount // 10**18
    amount     = usd * 10**18 // normalized
"""
from __future__ import annotations

import logging
import time
from typing import Callable

from .constants import DEFAULT_MAX_PRICE_AGE_SECONDS, ENGINE_DECIMALS, PRECISION
from .errors import OracleUnavailable
from .interfaces.price_oracle import PriceOracle
from .models import PriceData
from .registry import AssetRegistry

logger = logging.getLogger(__name__)


def normalize_price(price: int, decimals: int) -> int:
    """Scale a feed price with ``decimals`` places to 18 places."""
    return price * 10 ** (ENGINE_DECIMALS - decimals)


def usd_value_of(price: int, decimals: int, amount: int) -> int:
    return normalize_price(price, decimals) * amount // PRECISION


def token_amount_of(price: int, decimals: int, usd_amount: int) -> int:
    return usd_amount * PRECISION // normalize_price(price, decimals)


class PriceConverter:
    """Reads the registry's feeds and converts amounts to and from USD.

    Args:
        max_price_age: Seconds after which a reading is stale. ``None``
            disables the staleness check.
        clock: Returns the current unix time in seconds.
    """

    def __init__(
        self,
        registry: AssetRegistry,
        oracle: PriceOracle,
        max_price_age: int | None = DEFAULT_MAX_PRICE_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._registry = registry
        self._oracle = oracle
        self._max_price_age = max_price_age
        self._clock = clock

    def latest_price(self, asset: str) -> PriceData:
        feed_id = self._registry.feed_for(asset)
        data = self._oracle.latest_price(feed_id)

        if data.price <= 0:
            raise OracleUnavailable(f"feed {feed_id} returned price {data.price}")
        if not 0 <= data.decimals <= ENGINE_DECIMALS:
            raise OracleUnavailable(
                f"feed {feed_id} reports unsupported decimals {data.decimals}"
            )
        if self._max_price_age is not None:
            age = int(self._clock()) - data.updated_at
            if age > self._max_price_age:
                logger.warning("Stale price for %s: %ds old", feed_id, age)
                raise OracleUnavailable(
                    f"feed {feed_id} is stale ({age}s > {self._max_price_age}s)"
                )
        return data

    def usd_value(self, asset: str, amount: int) -> int:
        data = self.latest_price(asset)
        return usd_value_of(data.price, data.decimals, amount)

    def token_amount_from_usd(self, asset: str, usd_amount: int) -> int:
        data = self.latest_price(asset)
        return token_amount_of(data.price, data.decimals, usd_amount)
