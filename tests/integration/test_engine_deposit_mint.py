"""Integration tests for collateral deposits and DSC minting."""
from __future__ import annotations

import pytest

from dsc_engine.constants import HEALTH_FACTOR_INFINITE
from dsc_engine.engine import DSCEngine
from dsc_engine.errors import (
    ArithmeticUnderflow,
    ConfigurationError,
    HealthFactorBroken,
    InvalidAmount,
    MintFailed,
    OracleUnavailable,
    TransferFailed,
    UnsupportedAsset,
)
from dsc_engine.models import Event
from dsc_engine.oracles.static import StaticPriceFeed
from dsc_engine.registry import AssetRegistry
from dsc_engine.tokens import DecentralizedStableCoin, FungibleToken

from tests.conftest import (
    AMOUNT_TO_MINT,
    COLLATERAL_AMOUNT,
    ENGINE,
    ETH_USD,
    NOW,
    STARTING_BALANCE,
    USER,
    clock,
    deposit,
)


class TestConstruction:
    def test_missing_token_ledger(
        self, registry: AssetRegistry, dsc: DecentralizedStableCoin, weth: FungibleToken,
        oracle: StaticPriceFeed,
    ) -> None:
        with pytest.raises(ConfigurationError):
            DSCEngine(registry, dsc, {"WETH": weth}, oracle)

    def test_from_pairs(
        self, dsc: DecentralizedStableCoin, weth: FungibleToken, oracle: StaticPriceFeed
    ) -> None:
        engine = DSCEngine.from_pairs([("WETH", ETH_USD)], dsc, {"WETH": weth}, oracle)
        assert engine.get_collateral_tokens() == ["WETH"]
        assert engine.get_collateral_token_price_feed("WETH") == ETH_USD
        assert engine.get_dsc() is dsc

    def test_constant_getters(self) -> None:
        assert DSCEngine.get_precision() == 10**18
        assert DSCEngine.get_additional_feed_precision() == 10**10
        assert DSCEngine.get_liquidation_threshold() == 50
        assert DSCEngine.get_liquidation_bonus() == 10
        assert DSCEngine.get_liquidation_precision() == 100
        assert DSCEngine.get_min_health_factor() == 10**18
        assert DSCEngine.constants()["HEALTH_FACTOR_INFINITE"] == 2**256 - 1


class TestDeposit:
    def test_can_deposit_collateral_without_minting(
        self, engine_deposited: DSCEngine, dsc: DecentralizedStableCoin, weth: FungibleToken
    ) -> None:
        assert dsc.balance_of(USER) == 0
        assert weth.balance_of(USER) == STARTING_BALANCE - COLLATERAL_AMOUNT
        assert weth.balance_of(ENGINE) == COLLATERAL_AMOUNT
        assert engine_deposited.get_collateral_balance_of_user(USER, "WETH") == COLLATERAL_AMOUNT

    def test_can_deposit_collateral_and_get_account_info(
        self, engine_deposited: DSCEngine
    ) -> None:
        info = engine_deposited.get_account_information(USER)
        assert info.total_dsc_minted == 0
        assert info.collateral_value_usd == 20_000 * 10**18
        expected_deposit = engine_deposited.get_token_amount_from_usd(
            "WETH", info.collateral_value_usd
        )
        assert expected_deposit == COLLATERAL_AMOUNT

    def test_zero_debt_health_factor_is_infinite(self, engine_deposited: DSCEngine) -> None:
        assert engine_deposited.health_factor(USER) == HEALTH_FACTOR_INFINITE

    def test_deposit_emits_event(self, engine_deposited: DSCEngine) -> None:
        (event,) = engine_deposited.events
        assert event.event is Event.COLLATERAL_DEPOSITED
        assert event.account == USER
        assert event.amount == COLLATERAL_AMOUNT
        assert event.asset == "WETH"

    def test_reverts_if_collateral_zero(self, engine: DSCEngine, weth: FungibleToken) -> None:
        weth.approve(USER, ENGINE, COLLATERAL_AMOUNT)
        before = engine.ledger.snapshot(USER)
        with pytest.raises(InvalidAmount):
            engine.deposit_collateral(USER, "WETH", 0)
        assert engine.ledger.snapshot(USER) == before
        assert weth.balance_of(USER) == STARTING_BALANCE
        assert engine.events == ()

    def test_reverts_with_unapproved_collateral(self, engine: DSCEngine) -> None:
        ran = FungibleToken("RAN")
        ran.mint_to(USER, COLLATERAL_AMOUNT)
        ran.approve(USER, ENGINE, COLLATERAL_AMOUNT)
        before = engine.ledger.snapshot(USER)
        with pytest.raises(UnsupportedAsset):
            engine.deposit_collateral(USER, "RAN", COLLATERAL_AMOUNT)
        assert engine.ledger.snapshot(USER) == before
        assert ran.balance_of(USER) == COLLATERAL_AMOUNT
        assert engine.events == ()

    def test_failed_pull_leaves_no_trace(self, engine: DSCEngine, weth: FungibleToken) -> None:
        # No allowance: transfer_from returns False
        before = engine.ledger.snapshot(USER)
        with pytest.raises(TransferFailed):
            engine.deposit_collateral(USER, "WETH", COLLATERAL_AMOUNT)
        assert engine.ledger.snapshot(USER) == before
        assert weth.balance_of(USER) == STARTING_BALANCE
        assert engine.events == ()

    def test_deposit_needs_no_price(
        self, engine: DSCEngine, weth: FungibleToken, oracle: StaticPriceFeed
    ) -> None:
        oracle.set_price(ETH_USD, 0, 8, updated_at=NOW)
        deposit(engine, weth, USER, COLLATERAL_AMOUNT)
        assert engine.get_collateral_balance_of_user(USER, "WETH") == COLLATERAL_AMOUNT


class TestMint:
    def test_can_mint_with_deposited_collateral(
        self, engine_minted: DSCEngine, dsc: DecentralizedStableCoin
    ) -> None:
        assert dsc.balance_of(USER) == AMOUNT_TO_MINT
        assert engine_minted.get_account_information(USER).total_dsc_minted == AMOUNT_TO_MINT

    def test_properly_reports_health_factor(self, engine_minted: DSCEngine) -> None:
        # $20,000 collateral, 50% threshold, 100 DSC debt
        assert engine_minted.health_factor(USER) == 100 * 10**18

    def test_health_factor_can_go_below_one(
        self, engine_minted: DSCEngine, oracle: StaticPriceFeed
    ) -> None:
        oracle.update_answer(ETH_USD, 18 * 10**8)
        assert engine_minted.health_factor(USER) == 9 * 10**17

    def test_mint_up_to_health_factor_five(
        self, engine_deposited: DSCEngine, dsc: DecentralizedStableCoin
    ) -> None:
        engine_deposited.mint_dsc(USER, 2000 * 10**18)
        assert engine_deposited.health_factor(USER) == 5 * 10**18
        assert dsc.total_supply() == 2000 * 10**18

    def test_reverts_if_mint_amount_breaks_health_factor(
        self, engine_deposited: DSCEngine, dsc: DecentralizedStableCoin
    ) -> None:
        collateral_usd = engine_deposited.get_usd_value("WETH", COLLATERAL_AMOUNT)
        assert collateral_usd == 20_000 * 10**18
        before = engine_deposited.ledger.snapshot(USER)
        events_before = engine_deposited.events

        with pytest.raises(HealthFactorBroken) as exc:
            engine_deposited.mint_dsc(USER, collateral_usd)

        assert exc.value.health_factor == 5 * 10**17
        assert engine_deposited.ledger.snapshot(USER) == before
        assert engine_deposited.events == events_before
        assert dsc.total_supply() == 0

    def test_reverts_if_minted_dsc_breaks_health_factor_combined(
        self, engine: DSCEngine, weth: FungibleToken
    ) -> None:
        weth.approve(USER, ENGINE, COLLATERAL_AMOUNT)
        with pytest.raises(HealthFactorBroken):
            engine.deposit_collateral_and_mint_dsc(
                USER, "WETH", COLLATERAL_AMOUNT, 20_000 * 10**18
            )
        # The deposit half is undone as well
        assert weth.balance_of(USER) == STARTING_BALANCE
        assert weth.balance_of(ENGINE) == 0
        assert engine.get_collateral_balance_of_user(USER, "WETH") == 0

    def test_mint_at_exact_threshold(self, engine_deposited: DSCEngine) -> None:
        engine_deposited.mint_dsc(USER, 10_000 * 10**18)
        assert engine_deposited.health_factor(USER) == 10**18

    def test_mint_zero_rejected(self, engine_deposited: DSCEngine) -> None:
        with pytest.raises(InvalidAmount):
            engine_deposited.mint_dsc(USER, 0)

    def test_mint_without_collateral(self, engine: DSCEngine) -> None:
        with pytest.raises(HealthFactorBroken) as exc:
            engine.mint_dsc(USER, 1)
        assert exc.value.health_factor == 0

    def test_mint_fails_when_engine_does_not_own_dsc(
        self, registry: AssetRegistry, weth: FungibleToken, wbtc: FungibleToken,
        oracle: StaticPriceFeed,
    ) -> None:
        foreign = DecentralizedStableCoin(owner="someone-else")
        engine = DSCEngine(
            registry, foreign, {"WETH": weth, "WBTC": wbtc}, oracle,
            address=ENGINE, clock=clock,
        )
        deposit(engine, weth, USER, COLLATERAL_AMOUNT)
        with pytest.raises(MintFailed):
            engine.mint_dsc(USER, AMOUNT_TO_MINT)
        assert engine.get_account_information(USER).total_dsc_minted == 0

    def test_mint_with_stale_price(
        self, engine_deposited: DSCEngine, oracle: StaticPriceFeed
    ) -> None:
        oracle.set_price(ETH_USD, 2000 * 10**8, 8, updated_at=NOW - 4 * 3600)
        with pytest.raises(OracleUnavailable):
            engine_deposited.mint_dsc(USER, AMOUNT_TO_MINT)
        assert engine_deposited.ledger.debt_of(USER) == 0

    def test_multi_collateral_value(
        self, engine: DSCEngine, weth: FungibleToken, wbtc: FungibleToken
    ) -> None:
        deposit(engine, weth, USER, COLLATERAL_AMOUNT)
        deposit(engine, wbtc, USER, COLLATERAL_AMOUNT)
        assert engine.get_account_collateral_value(USER) == 30_000 * 10**18


class TestProspectiveHealthFactor:
    def test_matches_actual_after_mint(self, engine_deposited: DSCEngine) -> None:
        predicted = engine_deposited.prospective_health_factor(USER, dsc_delta=2000 * 10**18)
        engine_deposited.mint_dsc(USER, 2000 * 10**18)
        assert predicted == engine_deposited.health_factor(USER)

    def test_collateral_delta(self, engine_minted: DSCEngine) -> None:
        hf = engine_minted.prospective_health_factor(
            USER, asset="WETH", collateral_delta=-5 * 10**18
        )
        assert hf == 50 * 10**18
        # Nothing written
        assert engine_minted.health_factor(USER) == 100 * 10**18

    def test_overdrawn_collateral_raises(self, engine_minted: DSCEngine) -> None:
        with pytest.raises(ArithmeticUnderflow):
            engine_minted.prospective_health_factor(
                USER, asset="WETH", collateral_delta=-(COLLATERAL_AMOUNT + 1)
            )

    def test_overburned_debt_raises(self, engine_minted: DSCEngine) -> None:
        with pytest.raises(ArithmeticUnderflow):
            engine_minted.prospective_health_factor(USER, dsc_delta=-(AMOUNT_TO_MINT + 1))

    def test_full_repayment_is_infinite(self, engine_minted: DSCEngine) -> None:
        hf = engine_minted.prospective_health_factor(USER, dsc_delta=-AMOUNT_TO_MINT)
        assert hf == HEALTH_FACTOR_INFINITE
