"""Protocol interfaces for the engine's collaborators."""
from .notifier import Notifier
from .price_oracle import PriceOracle
from .token import CollateralToken, SyntheticToken

__all__ = ["CollateralToken", "Notifier", "PriceOracle", "SyntheticToken"]
