"""In-memory fungible token ledgers used as engine collaborators."""
from __future__ import annotations

import logging

from .errors import NotOwnerError, TokenError

logger = logging.getLogger(__name__)


class FungibleToken:
    """Balances plus allowances; failed transfers return ``False``."""

    def __init__(self, symbol: str, decimals: int = 18) -> None:
        self.symbol = symbol
        self.decimals = decimals
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total_supply = 0

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def total_supply(self) -> int:
        return self._total_supply

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        if amount < 0:
            raise TokenError(f"negative allowance {amount}")
        self._allowances[(owner, spender)] = amount
        return True

    def mint_to(self, account: str, amount: int) -> None:
        """Unrestricted faucet for funding test and scenario accounts."""
        if amount <= 0:
            raise TokenError(f"mint amount must be positive, got {amount}")
        self._balances[account] = self.balance_of(account) + amount
        self._total_supply += amount

    def _move(self, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0 or self.balance_of(sender) < amount:
            logger.debug(
                "%s transfer of %d from %s rejected", self.symbol, amount, sender
            )
            return False
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
        return True

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        return self._move(sender, recipient, amount)

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            logger.debug(
                "%s allowance %d of %s for %s is below %d",
                self.symbol, allowed, owner, spender, amount,
            )
            return False
        if not self._move(owner, recipient, amount):
            return False
        self._allowances[(owner, spender)] = allowed - amount
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.symbol!r})"


class DecentralizedStableCoin(FungibleToken):
    """Synthetic dollar whose supply only its owner can change."""

    def __init__(self, owner: str, symbol: str = "DSC") -> None:
        super().__init__(symbol, decimals=18)
        self.owner = owner

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise NotOwnerError(f"{caller} is not the owner of {self.symbol}")

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._only_owner(caller)
        self.owner = new_owner

    def mint(self, caller: str, to: str, amount: int) -> bool:
        self._only_owner(caller)
        if amount <= 0:
            raise TokenError("mint amount must be more than zero")
        self._balances[to] = self.balance_of(to) + amount
        self._total_supply += amount
        return True

    def burn(self, caller: str, holder: str, amount: int) -> None:
        self._only_owner(caller)
        if amount <= 0:
            raise TokenError("burn amount must be more than zero")
        balance = self.balance_of(holder)
        if balance < amount:
            raise TokenError(f"burn amount {amount} exceeds balance {balance}")
        self._balances[holder] = balance - amount
        self._total_supply -= amount

    def mint_to(self, account: str, amount: int) -> None:
        raise NotOwnerError("stablecoin supply changes only through mint()")
