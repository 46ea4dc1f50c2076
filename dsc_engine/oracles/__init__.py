"""Price oracle implementations."""
from .pyth import PythOracle
from .static import StaticPriceFeed, build_oracle

__all__ = ["PythOracle", "StaticPriceFeed", "build_oracle"]
