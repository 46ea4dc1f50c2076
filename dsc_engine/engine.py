"""Position engine — deposit, mint, burn, redeem and liquidate.

Every mutating entry point:

1. takes the global engine lock (re-entry from a collaborator raises
   ``ReentrancyError``; other threads wait their turn),
2. opens a ``UnitOfWork`` so ledger writes and collaborator calls are undone
   together if any later step fails,
3. applies the tentative ledger change, runs the health-factor gate, and only
   then moves tokens.

The acting account is passed explicitly as ``sender``.
"""
from __future__ import annotations

import functools
import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, Mapping, TypeVar

from .constants import (
    DEFAULT_ENGINE_ADDRESS,
    DEFAULT_MAX_PRICE_AGE_SECONDS,
    ENGINE_DECIMALS,
    HEALTH_FACTOR_INFINITE,
    LIQUIDATION_BONUS,
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MIN_HEALTH_FACTOR,
    PRECISION,
)
from .errors import (
    BurnFailed,
    ConfigurationError,
    EngineError,
    HealthFactorNotImproved,
    HealthFactorOk,
    InsufficientCollateral,
    InsufficientCollateralToSeize,
    InvalidAmount,
    MintFailed,
    ReentrancyError,
    TokenError,
    TransferFailed,
)
from .health import assert_healthy, calculate_health_factor
from .interfaces.price_oracle import PriceOracle
from .interfaces.token import CollateralToken, SyntheticToken
from .ledger import CollateralLedger, checked_sub
from .models import AccountInfo, EngineEvent, Event, LiquidationResult
from .pricing import PriceConverter
from .registry import AssetRegistry
from .transaction import UnitOfWork

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)


class _EngineLock:
    """Global mutex that refuses re-entry from the holding thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._owner: int | None = None

    @property
    def held(self) -> bool:
        return self._owner is not None

    @property
    def held_by_current_thread(self) -> bool:
        return self._owner == threading.get_ident()

    @contextmanager
    def hold(self, name: str) -> Iterator[None]:
        if self._owner == threading.get_ident():
            raise ReentrancyError(f"re-entrant call to {name}")
        with self._lock:
            self._owner = threading.get_ident()
            try:
                yield
            finally:
                self._owner = None


def _mutation(method: F) -> F:
    """Run ``method`` under the engine lock inside one unit of work."""

    @functools.wraps(method)
    def wrapper(self: DSCEngine, *args, **kwargs):
        with self._lock.hold(method.__name__):
            try:
                with self._journal.begin():
                    return method(self, *args, **kwargs)
            except EngineError as e:
                logger.warning("%s rejected: %s", method.__name__, e)
                raise

    return wrapper  # type: ignore[return-value]


def _settled_view(method: F) -> F:
    """Refuse ledger reads from a collaborator called back mid-operation."""

    @functools.wraps(method)
    def wrapper(self: DSCEngine, *args, **kwargs):
        if self._lock.held_by_current_thread:
            raise ReentrancyError(f"{method.__name__} called during an engine operation")
        return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def _require_positive(amount: int) -> None:
    if amount <= 0:
        raise InvalidAmount(amount)


class DSCEngine:
    """Overcollateralized issuance engine for a dollar-pegged synthetic token.

    Args:
        registry: Supported collateral assets and their price feeds.
        dsc: Synthetic token; the engine's ``address`` must own it.
        collateral_tokens: Token ledger per registered asset.
        oracle: Price source for every feed in ``registry``.
        address: Identity the engine holds custody and token ownership under.
        max_price_age: Oracle staleness limit in seconds, ``None`` to disable.
        clock: Unix-time source for staleness checks.
    """

    def __init__(
        self,
        registry: AssetRegistry,
        dsc: SyntheticToken,
        collateral_tokens: Mapping[str, CollateralToken],
        oracle: PriceOracle,
        address: str = DEFAULT_ENGINE_ADDRESS,
        max_price_age: int | None = DEFAULT_MAX_PRICE_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        missing = [asset for asset in registry if asset not in collateral_tokens]
        if missing:
            raise ConfigurationError(f"no token ledger for collateral {missing}")

        self.address = address
        self._registry = registry
        self._dsc = dsc
        self._tokens: dict[str, CollateralToken] = {
            asset: collateral_tokens[asset] for asset in registry
        }
        self._journal = UnitOfWork()
        self._ledger = CollateralLedger(registry, self._journal)
        self._converter = PriceConverter(registry, oracle, max_price_age, clock)
        self._lock = _EngineLock()
        self._events: list[EngineEvent] = []

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[tuple[str, str]],
        dsc: SyntheticToken,
        collateral_tokens: Mapping[str, CollateralToken],
        oracle: PriceOracle,
        **kwargs,
    ) -> DSCEngine:
        return cls(AssetRegistry.from_pairs(pairs), dsc, collateral_tokens, oracle, **kwargs)

    # ------------------------------------------------------------------
    # Public mutating API
    # ------------------------------------------------------------------

    @_mutation
    def deposit_collateral(self, sender: str, asset: str, amount: int) -> None:
        self._deposit_collateral(sender, asset, amount)

    @_mutation
    def mint_dsc(self, sender: str, amount: int) -> None:
        self._mint_dsc(sender, amount)

    @_mutation
    def deposit_collateral_and_mint_dsc(
        self, sender: str, asset: str, collateral_amount: int, mint_amount: int
    ) -> None:
        self._deposit_collateral(sender, asset, collateral_amount)
        self._mint_dsc(sender, mint_amount)

    @_mutation
    def redeem_collateral(self, sender: str, asset: str, amount: int) -> None:
        self._redeem_collateral(asset, amount, sender, sender)
        self._revert_if_health_factor_is_broken(sender)
        self._push_collateral(asset, sender, amount)

    @_mutation
    def burn_dsc(self, sender: str, amount: int) -> None:
        self._burn_dsc(amount, sender, sender)

    @_mutation
    def redeem_collateral_for_dsc(
        self, sender: str, asset: str, collateral_amount: int, dsc_amount: int
    ) -> None:
        # Burn first so the gate sees the reduced debt.
        self._burn_dsc(dsc_amount, sender, sender)
        self._redeem_collateral(asset, collateral_amount, sender, sender)
        self._revert_if_health_factor_is_broken(sender)
        self._push_collateral(asset, sender, collateral_amount)

    @_mutation
    def liquidate(
        self, sender: str, asset: str, victim: str, debt_to_cover: int
    ) -> LiquidationResult:
        """Repay ``debt_to_cover`` of ``victim``'s debt for a bonus share of its collateral.

        The liquidator burns its own DSC and receives
        ``token_amount_from_usd(asset, debt_to_cover)`` plus a 10% bonus.
        Seizure beyond the victim's recorded collateral fails; it is never
        capped.
        """
        _require_positive(debt_to_cover)
        self._registry.require(asset)

        starting = self._health_factor(victim)
        if starting >= MIN_HEALTH_FACTOR:
            raise HealthFactorOk(starting)

        base = self._converter.token_amount_from_usd(asset, debt_to_cover)
        bonus = base * LIQUIDATION_BONUS // LIQUIDATION_PRECISION
        seize = base + bonus
        if seize == 0:
            raise InvalidAmount(debt_to_cover)

        available = self._ledger.collateral_of(victim, asset)
        if seize > available:
            raise InsufficientCollateralToSeize(available, seize)

        self._redeem_collateral(asset, seize, victim, sender)
        self._burn_dsc(debt_to_cover, victim, sender)

        ending = self._health_factor(victim)
        if ending <= starting:
            raise HealthFactorNotImproved(starting, ending)
        self._revert_if_health_factor_is_broken(sender)

        self._push_collateral(asset, sender, seize)
        self._emit(
            EngineEvent(Event.LIQUIDATED, sender, debt_to_cover, asset, counterparty=victim)
        )
        logger.info(
            "%s liquidated %s: covered %d DSC, seized %d %s (bonus %d)",
            sender, victim, debt_to_cover, seize, asset, bonus,
        )
        return LiquidationResult(
            victim=victim,
            liquidator=sender,
            asset=asset,
            debt_covered=debt_to_cover,
            collateral_seized=seize,
            bonus_collateral=bonus,
            starting_health_factor=starting,
            ending_health_factor=ending,
        )

    # ------------------------------------------------------------------
    # Internal steps (run inside an open unit of work)
    # ------------------------------------------------------------------

    def _emit(self, event: EngineEvent) -> None:
        self._events.append(event)
        self._journal.record(self._events.pop, "event")

    def _deposit_collateral(self, sender: str, asset: str, amount: int) -> None:
        self._ledger.record_deposit(sender, asset, amount)
        token = self._tokens[asset]
        if not token.transfer_from(self.address, sender, self.address, amount):
            raise TransferFailed(f"could not pull {amount} {asset} from {sender}")
        self._journal.record(
            lambda: token.transfer(self.address, sender, amount), "refund deposit"
        )
        self._emit(EngineEvent(Event.COLLATERAL_DEPOSITED, sender, amount, asset))
        logger.info("%s deposited %d %s", sender, amount, asset)

    def _mint_dsc(self, sender: str, amount: int) -> None:
        self._ledger.record_mint(sender, amount)
        self._revert_if_health_factor_is_broken(sender)
        try:
            minted = self._dsc.mint(self.address, sender, amount)
        except TokenError as e:
            raise MintFailed(str(e)) from e
        if not minted:
            raise MintFailed(f"token refused to mint {amount} to {sender}")
        self._journal.record(
            lambda: self._dsc.burn(self.address, sender, amount), "unmint"
        )
        self._emit(EngineEvent(Event.DSC_MINTED, sender, amount))
        logger.info("%s minted %d DSC", sender, amount)

    def _redeem_collateral(self, asset: str, amount: int, owner: str, recipient: str) -> None:
        """Debit ``owner``'s ledger entry; the transfer happens in ``_push_collateral``."""
        _require_positive(amount)
        self._registry.require(asset)
        available = self._ledger.collateral_of(owner, asset)
        if amount > available:
            raise InsufficientCollateral(owner, asset, available, amount)
        self._ledger.record_redeem(owner, asset, amount)
        self._emit(
            EngineEvent(
                Event.COLLATERAL_REDEEMED, owner, amount, asset,
                counterparty="" if owner == recipient else recipient,
            )
        )

    def _push_collateral(self, asset: str, recipient: str, amount: int) -> None:
        # Always the last step: nothing after it can fail.
        if not self._tokens[asset].transfer(self.address, recipient, amount):
            raise TransferFailed(f"could not send {amount} {asset} to {recipient}")
        logger.info("Released %d %s to %s", amount, asset, recipient)

    def _burn_dsc(self, amount: int, on_behalf_of: str, dsc_from: str) -> None:
        _require_positive(amount)
        self._ledger.record_burn(on_behalf_of, amount)

        if not self._dsc.transfer_from(self.address, dsc_from, self.address, amount):
            raise BurnFailed(f"could not pull {amount} DSC from {dsc_from}")
        self._journal.record(
            lambda: self._dsc.transfer(self.address, dsc_from, amount), "return dsc"
        )
        try:
            self._dsc.burn(self.address, self.address, amount)
        except TokenError as e:
            raise BurnFailed(str(e)) from e
        self._journal.record(
            lambda: self._dsc.mint(self.address, self.address, amount), "unburn"
        )

        self._emit(
            EngineEvent(
                Event.DSC_BURNED, on_behalf_of, amount,
                counterparty="" if dsc_from == on_behalf_of else dsc_from,
            )
        )
        logger.info("%d DSC burned for %s (paid by %s)", amount, on_behalf_of, dsc_from)

    def _health_factor(self, account: str) -> int:
        if self._ledger.debt_of(account) == 0:
            return HEALTH_FACTOR_INFINITE
        info = self._ledger.account_info(account, self._converter)
        return calculate_health_factor(info.total_dsc_minted, info.collateral_value_usd)

    def _revert_if_health_factor_is_broken(self, account: str) -> None:
        assert_healthy(self._health_factor(account))

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    @property
    def ledger(self) -> CollateralLedger:
        return self._ledger

    @property
    def registry(self) -> AssetRegistry:
        return self._registry

    @property
    def events(self) -> tuple[EngineEvent, ...]:
        return tuple(self._events)

    @_settled_view
    def accounts(self) -> list[str]:
        return self._ledger.accounts()

    def collateral_token(self, asset: str) -> CollateralToken:
        self._registry.require(asset)
        return self._tokens[asset]

    @_settled_view
    def get_account_information(self, account: str) -> AccountInfo:
        return self._ledger.account_info(account, self._converter)

    @_settled_view
    def get_account_collateral_value(self, account: str) -> int:
        return self._ledger.collateral_value_usd(account, self._converter)

    @_settled_view
    def get_collateral_balance_of_user(self, account: str, asset: str) -> int:
        return self._ledger.collateral_of(account, asset)

    @_settled_view
    def health_factor(self, account: str) -> int:
        return self._health_factor(account)

    @staticmethod
    def calculate_health_factor(total_dsc_minted: int, collateral_value_usd: int) -> int:
        return calculate_health_factor(total_dsc_minted, collateral_value_usd)

    @_settled_view
    def prospective_health_factor(
        self,
        account: str,
        dsc_delta: int = 0,
        asset: str | None = None,
        collateral_delta: int = 0,
    ) -> int:
        """Health factor ``account`` would have after the given changes.

        Positive deltas model mint/deposit, negative ones burn/redeem.
        Removing more than the account holds raises ``ArithmeticUnderflow``.
        Nothing is written.
        """
        info = self.get_account_information(account)
        collateral_usd = info.collateral_value_usd
        if asset is not None and collateral_delta:
            held = self._ledger.collateral_of(account, asset)
            if collateral_delta < 0:
                new_amount = checked_sub(held, -collateral_delta)
            else:
                new_amount = held + collateral_delta
            collateral_usd += self._converter.usd_value(asset, new_amount)
            collateral_usd -= self._converter.usd_value(asset, held)
        if dsc_delta < 0:
            debt = checked_sub(info.total_dsc_minted, -dsc_delta)
        else:
            debt = info.total_dsc_minted + dsc_delta
        return calculate_health_factor(debt, collateral_usd)

    def get_usd_value(self, asset: str, amount: int) -> int:
        return self._converter.usd_value(asset, amount)

    def get_token_amount_from_usd(self, asset: str, usd_amount: int) -> int:
        return self._converter.token_amount_from_usd(asset, usd_amount)

    def get_collateral_tokens(self) -> list[str]:
        return list(self._registry.assets)

    def get_collateral_token_price_feed(self, asset: str) -> str:
        return self._registry.feed_for(asset)

    def get_dsc(self) -> SyntheticToken:
        return self._dsc

    @staticmethod
    def get_precision() -> int:
        return PRECISION

    @staticmethod
    def get_additional_feed_precision() -> int:
        """Scale applied to an 8-decimal feed to reach 18 decimals."""
        return 10 ** (ENGINE_DECIMALS - 8)

    @staticmethod
    def get_liquidation_threshold() -> int:
        return LIQUIDATION_THRESHOLD

    @staticmethod
    def get_liquidation_bonus() -> int:
        return LIQUIDATION_BONUS

    @staticmethod
    def get_liquidation_precision() -> int:
        return LIQUIDATION_PRECISION

    @staticmethod
    def get_min_health_factor() -> int:
        return MIN_HEALTH_FACTOR

    @staticmethod
    def constants() -> dict[str, int]:
        return {
            "PRECISION": PRECISION,
            "LIQUIDATION_THRESHOLD": LIQUIDATION_THRESHOLD,
            "LIQUIDATION_PRECISION": LIQUIDATION_PRECISION,
            "LIQUIDATION_BONUS": LIQUIDATION_BONUS,
            "MIN_HEALTH_FACTOR": MIN_HEALTH_FACTOR,
            "HEALTH_FACTOR_INFINITE": HEALTH_FACTOR_INFINITE,
        }
