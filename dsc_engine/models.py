"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique


@dataclass(frozen=True)
class PriceData:
    """Single oracle reading: ``price`` scaled by ``10**decimals``."""

    price: int
    decimals: int
    updated_at: int


@dataclass(frozen=True)
class AccountInfo:
    """Debt and USD collateral value of one account."""

    total_dsc_minted: int
    collateral_value_usd: int


@dataclass(frozen=True)
class AccountSnapshot:
    """Raw ledger entry of an account, comparable across calls."""

    account: str
    collateral: tuple[tuple[str, int], ...]
    debt: int

    def collateral_of(self, asset: str) -> int:
        return dict(self.collateral).get(asset, 0)


@dataclass(frozen=True)
class LiquidationResult:
    victim: str
    liquidator: str
    asset: str
    debt_covered: int
    collateral_seized: int
    bonus_collateral: int
    starting_health_factor: int
    ending_health_factor: int


@unique
class Event(Enum):
    COLLATERAL_DEPOSITED = "CollateralDeposited"
    COLLATERAL_REDEEMED = "CollateralRedeemed"
    DSC_MINTED = "DscMinted"
    DSC_BURNED = "DscBurned"
    LIQUIDATED = "Liquidated"


@dataclass(frozen=True)
class EngineEvent:
    """Emitted once per committed operation.

    ``counterparty`` is the recipient of redeemed collateral or the victim
    of a liquidation; it is empty when the account acted on itself.
    """

    event: Event
    account: str
    amount: int
    asset: str = ""
    counterparty: str = ""


@dataclass(frozen=True)
class PositionReport:
    """Monitor-facing view of one account."""

    account: str
    debt: int
    collateral_value_usd: int
    health_factor: int
    liquidatable: bool
    collateral: tuple[tuple[str, int], ...] = ()
