"""Token protocols — fungible balance ledgers the engine moves value through.

Transfers signal failure by returning ``False``; the engine treats that as
a fatal error for the whole operation.
"""
from typing import Protocol


class CollateralToken(Protocol):
    """Collateral asset ledger."""

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool: ...

    def transfer_from(
        self, spender: str, owner: str, recipient: str, amount: int
    ) -> bool: ...


class SyntheticToken(CollateralToken, Protocol):
    """Dollar-pegged token; only its owner (the engine) may mint and burn."""

    def mint(self, caller: str, to: str, amount: int) -> bool: ...

    def burn(self, caller: str, holder: str, amount: int) -> None: ...

    def total_supply(self) -> int: ...
