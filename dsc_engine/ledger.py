"""Collateral/debt ledger — per-account balances and aggregate views."""
from __future__ import annotations

from typing import TYPE_CHECKING

from .errors import ArithmeticUnderflow, InvalidAmount
from .models import AccountInfo, AccountSnapshot
from .registry import AssetRegistry
from .transaction import UnitOfWork

if TYPE_CHECKING:
    from .pricing import PriceConverter


def checked_sub(minuend: int, subtrahend: int) -> int:
    """Subtract without wrapping or clamping."""
    if subtrahend > minuend:
        raise ArithmeticUnderflow(minuend, subtrahend)
    return minuend - subtrahend


def _require_positive(amount: int) -> None:
    if amount <= 0:
        raise InvalidAmount(amount)


class CollateralLedger:
    """Raw collateral and debt bookkeeping.

    The ledger never moves tokens; the engine pairs each record with the
    matching collaborator call inside one ``UnitOfWork``. While a unit is
    open every write registers its inverse on it.
    """

    def __init__(self, registry: AssetRegistry, journal: UnitOfWork | None = None) -> None:
        self._registry = registry
        self._journal = journal if journal is not None else UnitOfWork()
        self._collateral: dict[str, dict[str, int]] = {}
        self._debt: dict[str, int] = {}

    @property
    def journal(self) -> UnitOfWork:
        return self._journal

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _set_collateral(self, account: str, asset: str, amount: int) -> None:
        self._collateral.setdefault(account, {})[asset] = amount

    def _set_debt(self, account: str, amount: int) -> None:
        self._debt[account] = amount

    def record_deposit(self, account: str, asset: str, amount: int) -> None:
        _require_positive(amount)
        self._registry.require(asset)
        before = self.collateral_of(account, asset)
        self._set_collateral(account, asset, before + amount)
        self._journal.record(
            lambda: self._set_collateral(account, asset, before), "deposit"
        )

    def record_redeem(self, account: str, asset: str, amount: int) -> None:
        _require_positive(amount)
        before = self.collateral_of(account, asset)
        self._set_collateral(account, asset, checked_sub(before, amount))
        self._journal.record(
            lambda: self._set_collateral(account, asset, before), "redeem"
        )

    def record_mint(self, account: str, amount: int) -> None:
        _require_positive(amount)
        before = self.debt_of(account)
        self._set_debt(account, before + amount)
        self._journal.record(lambda: self._set_debt(account, before), "mint")

    def record_burn(self, account: str, amount: int) -> None:
        _require_positive(amount)
        before = self.debt_of(account)
        self._set_debt(account, checked_sub(before, amount))
        self._journal.record(lambda: self._set_debt(account, before), "burn")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def collateral_of(self, account: str, asset: str) -> int:
        return self._collateral.get(account, {}).get(asset, 0)

    def debt_of(self, account: str) -> int:
        return self._debt.get(account, 0)

    def accounts(self) -> list[str]:
        """Every account that has ever held collateral or debt."""
        seen = dict.fromkeys(self._collateral)
        seen.update(dict.fromkeys(self._debt))
        return list(seen)

    def total_debt(self) -> int:
        return sum(self._debt.values())

    def total_collateral(self, asset: str) -> int:
        return sum(entry.get(asset, 0) for entry in self._collateral.values())

    def snapshot(self, account: str) -> AccountSnapshot:
        return AccountSnapshot(
            account=account,
            collateral=tuple(
                (asset, self.collateral_of(account, asset)) for asset in self._registry
            ),
            debt=self.debt_of(account),
        )

    def collateral_value_usd(self, account: str, converter: PriceConverter) -> int:
        return sum(
            converter.usd_value(asset, self.collateral_of(account, asset))
            for asset in self._registry
        )

    def account_info(self, account: str, converter: PriceConverter) -> AccountInfo:
        return AccountInfo(
            total_dsc_minted=self.debt_of(account),
            collateral_value_usd=self.collateral_value_usd(account, converter),
        )
