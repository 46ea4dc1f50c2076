"""Pyth Network price oracle service."""
from __future__ import annotations

import logging
import ssl
from typing import Iterable

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import OracleUnavailable
from ..models import PriceData

logger = logging.getLogger(__name__)


def parse_price_update(item: dict) -> PriceData:
    """Convert one Hermes ``parsed`` entry into ``PriceData``.

    Hermes reports ``price * 10**expo``; expo is normally negative, so the
    feed's decimal count is ``-expo``.
    """
    price_data = item.get("price", {})
    price = int(price_data.get("price", 0))
    expo = int(price_data.get("expo", 0))
    publish_time = int(price_data.get("publish_time", 0))

    if expo > 0:
        return PriceData(price=price * 10**expo, decimals=0, updated_at=publish_time)
    return PriceData(price=price, decimals=-expo, updated_at=publish_time)


class PythOracle:
    """Fetch prices from Pyth Network and serve the cached readings.

    ``refresh()`` performs the network call; ``latest_price()`` is synchronous
    so the engine can read it inside an operation.
    """

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.timeout = config.timeout
        self._cache: dict[str, PriceData] = {}

    def latest_price(self, feed_id: str) -> PriceData:
        try:
            return self._cache[_normalize_id(feed_id)]
        except KeyError:
            raise OracleUnavailable(f"no Pyth price fetched for feed {feed_id}") from None

    async def refresh(self, feed_ids: Iterable[str]) -> dict[str, PriceData]:
        """Fetch current prices for ``feed_ids`` from Pyth Network.

        Returns the readings that were updated; failures are logged and
        leave the cache untouched.
        """
        updated: dict[str, PriceData] = {}

        ids = sorted({_normalize_id(fid) for fid in feed_ids})
        if not ids:
            return updated

        query_params = "&".join([f"ids[]={fid}" for fid in ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return updated

                    data = await response.json()
                    for item in data.get("parsed", []):
                        feed_id = _normalize_id(item.get("id", ""))
                        if feed_id not in ids:
                            continue
                        updated[feed_id] = parse_price_update(item)

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)
            return updated

        self._cache.update(updated)
        logger.info("Fetched %d price(s) from Pyth Network", len(updated))
        return updated


def _normalize_id(feed_id: str) -> str:
    return feed_id.lower().removeprefix("0x")
