"""In-memory price feeds, settable like a mock aggregator."""
from __future__ import annotations

import logging
import time
from typing import Callable

from ..config import OracleConfig
from ..errors import OracleUnavailable
from ..interfaces.price_oracle import PriceOracle
from ..models import PriceData
from .pyth import PythOracle

logger = logging.getLogger(__name__)


class StaticPriceFeed:
    """Holds the latest ``PriceData`` per feed id."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._prices: dict[str, PriceData] = {}

    def set_price(
        self, feed_id: str, price: int, decimals: int = 8, updated_at: int | None = None
    ) -> None:
        if updated_at is None:
            updated_at = int(self._clock())
        self._prices[feed_id] = PriceData(price=price, decimals=decimals, updated_at=updated_at)
        logger.debug("Feed %s set to %d (decimals=%d)", feed_id, price, decimals)

    def update_answer(self, feed_id: str, price: int) -> None:
        """Publish a new price, keeping the feed's decimals."""
        current = self.latest_price(feed_id)
        self.set_price(feed_id, price, current.decimals)

    def latest_price(self, feed_id: str) -> PriceData:
        try:
            return self._prices[feed_id]
        except KeyError:
            raise OracleUnavailable(f"no price published for feed {feed_id}") from None

    @property
    def feeds(self) -> list[str]:
        return list(self._prices)


def build_oracle(config: OracleConfig) -> PriceOracle:
    """Instantiate the configured oracle provider."""
    if config.provider == "pyth":
        return PythOracle(config.pyth)

    feed = StaticPriceFeed()
    for feed_id, entry in config.static_prices.items():
        feed.set_price(feed_id, entry.price, entry.decimals)
    return feed
