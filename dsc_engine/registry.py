"""Supported collateral registry — ordered asset → price feed mapping."""
from __future__ import annotations

from typing import Iterable, Iterator, Sequence

from .errors import ConfigurationError, UnsupportedAsset


class AssetRegistry:
    """Ordered, immutable set of collateral assets, one price feed each."""

    def __init__(self, assets: Sequence[str], feeds: Sequence[str]) -> None:
        if len(assets) != len(feeds):
            raise ConfigurationError(
                f"asset and price feed lists must be the same length "
                f"({len(assets)} != {len(feeds)})"
            )
        if not assets:
            raise ConfigurationError("at least one collateral asset is required")

        feed_by_asset: dict[str, str] = {}
        for asset, feed in zip(assets, feeds):
            if not asset:
                raise ConfigurationError("collateral asset id must not be empty")
            if not feed:
                raise ConfigurationError(f"asset {asset!r} has no price feed")
            if asset in feed_by_asset:
                raise ConfigurationError(f"asset {asset!r} registered twice")
            feed_by_asset[asset] = feed

        self._assets: tuple[str, ...] = tuple(assets)
        self._feeds = feed_by_asset

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> AssetRegistry:
        pairs = list(pairs)
        return cls([a for a, _ in pairs], [f for _, f in pairs])

    @property
    def assets(self) -> tuple[str, ...]:
        return self._assets

    def feed_for(self, asset: str) -> str:
        try:
            return self._feeds[asset]
        except KeyError:
            raise UnsupportedAsset(asset) from None

    def is_supported(self, asset: str) -> bool:
        return asset in self._feeds

    def require(self, asset: str) -> None:
        if asset not in self._feeds:
            raise UnsupportedAsset(asset)

    def __contains__(self, asset: object) -> bool:
        return asset in self._feeds

    def __iter__(self) -> Iterator[str]:
        return iter(self._assets)

    def __len__(self) -> int:
        return len(self._assets)

    def __repr__(self) -> str:
        return f"AssetRegistry({list(self._feeds.items())!r})"
