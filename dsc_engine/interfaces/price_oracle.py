"""Price oracle protocol — one feed per registered collateral asset."""
from typing import Protocol

from ..models import PriceData


class PriceOracle(Protocol):
    """Abstract interface for reading the latest price of a feed."""

    def latest_price(self, feed_id: str) -> PriceData: ...
