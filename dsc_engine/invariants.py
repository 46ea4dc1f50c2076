"""Global invariant checks over an engine's ledger and collaborators.

Each ``inv_*`` function returns True when the invariant holds;
``check_all()`` returns the names of the violated ones (empty = all pass).

``system_solvent`` is a population property: a price move can break it until
liquidations restore it, so callers report rather than enforce it.
"""
from __future__ import annotations

from typing import Callable

from .engine import DSCEngine
from .health import is_healthy


def inv_debt_matches_supply(engine: DSCEngine) -> bool:
    return engine.ledger.total_debt() == engine.get_dsc().total_supply()


def inv_custody_covers_ledger(engine: DSCEngine) -> bool:
    for asset in engine.registry:
        custody = engine.collateral_token(asset).balance_of(engine.address)
        if custody < engine.ledger.total_collateral(asset):
            return False
    return True


def inv_accounts_healthy(engine: DSCEngine) -> bool:
    return all(
        is_healthy(engine.health_factor(account))
        for account in engine.accounts()
        if engine.ledger.debt_of(account) > 0
    )


def inv_system_solvent(engine: DSCEngine) -> bool:
    collateral_usd = sum(
        engine.get_account_collateral_value(account) for account in engine.accounts()
    )
    return collateral_usd >= engine.ledger.total_debt()


INVARIANTS: dict[str, Callable[[DSCEngine], bool]] = {
    "debt_matches_supply": inv_debt_matches_supply,
    "custody_covers_ledger": inv_custody_covers_ledger,
    "accounts_healthy": inv_accounts_healthy,
    "system_solvent": inv_system_solvent,
}


def check_all(engine: DSCEngine) -> list[str]:
    return [name for name, check in INVARIANTS.items() if not check(engine)]
