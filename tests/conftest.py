"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from dsc_engine.config import (
    AppConfig,
    CollateralConfig,
    EngineConfig,
    MonitorConfig,
    NotificationsConfig,
    OracleConfig,
    PythConfig,
    StaticPriceConfig,
    TelegramConfig,
)
from dsc_engine.engine import DSCEngine
from dsc_engine.oracles.static import StaticPriceFeed
from dsc_engine.registry import AssetRegistry
from dsc_engine.tokens import DecentralizedStableCoin, FungibleToken

NOW = 1_700_000_000
ENGINE = "dsc-engine"
USER = "user"
LIQUIDATOR = "liquidator"

ETH_USD = "ETH/USD"
BTC_USD = "BTC/USD"
ETH_USD_PRICE = 2000 * 10**8
BTC_USD_PRICE = 1000 * 10**8
FEED_DECIMALS = 8

COLLATERAL_AMOUNT = 10 * 10**18
AMOUNT_TO_MINT = 100 * 10**18
COLLATERAL_TO_COVER = 20 * 10**18
STARTING_BALANCE = 10 * 10**18


def clock() -> float:
    return NOW


def deposit(engine: DSCEngine, token: FungibleToken, account: str, amount: int) -> None:
    token.approve(account, engine.address, amount)
    engine.deposit_collateral(account, token.symbol, amount)


# ---------------------------------------------------------------------------
# Collaborator fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def oracle() -> StaticPriceFeed:
    feed = StaticPriceFeed(clock=clock)
    feed.set_price(ETH_USD, ETH_USD_PRICE, FEED_DECIMALS)
    feed.set_price(BTC_USD, BTC_USD_PRICE, FEED_DECIMALS)
    return feed


@pytest.fixture()
def weth() -> FungibleToken:
    token = FungibleToken("WETH")
    token.mint_to(USER, STARTING_BALANCE)
    return token


@pytest.fixture()
def wbtc() -> FungibleToken:
    token = FungibleToken("WBTC")
    token.mint_to(USER, STARTING_BALANCE)
    return token


@pytest.fixture()
def dsc() -> DecentralizedStableCoin:
    return DecentralizedStableCoin(owner=ENGINE)


@pytest.fixture()
def registry() -> AssetRegistry:
    return AssetRegistry(["WETH", "WBTC"], [ETH_USD, BTC_USD])


@pytest.fixture()
def engine(
    registry: AssetRegistry,
    dsc: DecentralizedStableCoin,
    weth: FungibleToken,
    wbtc: FungibleToken,
    oracle: StaticPriceFeed,
) -> DSCEngine:
    return DSCEngine(
        registry,
        dsc,
        {"WETH": weth, "WBTC": wbtc},
        oracle,
        address=ENGINE,
        clock=clock,
    )


@pytest.fixture()
def engine_deposited(engine: DSCEngine, weth: FungibleToken) -> DSCEngine:
    deposit(engine, weth, USER, COLLATERAL_AMOUNT)
    return engine


@pytest.fixture()
def engine_minted(engine: DSCEngine, weth: FungibleToken) -> DSCEngine:
    weth.approve(USER, ENGINE, COLLATERAL_AMOUNT)
    engine.deposit_collateral_and_mint_dsc(USER, "WETH", COLLATERAL_AMOUNT, AMOUNT_TO_MINT)
    return engine


@pytest.fixture()
def engine_liquidatable(
    engine_minted: DSCEngine,
    weth: FungibleToken,
    dsc: DecentralizedStableCoin,
    oracle: StaticPriceFeed,
) -> DSCEngine:
    """USER at HF 0.9 after ETH drops to $18; LIQUIDATOR funded with DSC."""
    oracle.update_answer(ETH_USD, 18 * 10**8)
    weth.mint_to(LIQUIDATOR, COLLATERAL_TO_COVER)
    weth.approve(LIQUIDATOR, ENGINE, COLLATERAL_TO_COVER)
    engine_minted.deposit_collateral_and_mint_dsc(
        LIQUIDATOR, "WETH", COLLATERAL_TO_COVER, AMOUNT_TO_MINT
    )
    dsc.approve(LIQUIDATOR, ENGINE, AMOUNT_TO_MINT)
    return engine_minted


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_app_config() -> AppConfig:
    return AppConfig(
        engine=EngineConfig(address=ENGINE, max_price_age_seconds=0),
        collateral=(
            CollateralConfig(asset="WETH", feed=ETH_USD),
            CollateralConfig(asset="WBTC", feed=BTC_USD),
        ),
        oracle=OracleConfig(
            provider="static",
            static_prices={
                ETH_USD: StaticPriceConfig(price=ETH_USD_PRICE, decimals=8),
                BTC_USD: StaticPriceConfig(price=BTC_USD_PRICE, decimals=8),
            },
            pyth=PythConfig(hermes_url="https://hermes.example.com"),
        ),
        monitor=MonitorConfig(accounts=(), warning_health_factor=15 * 10**17),
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True,
                alert_bot_token="fake-alert-token",
                log_bot_token="fake-log-token",
                chat_id="12345",
            ),
        ),
    )


SAMPLE_YAML = textwrap.dedent("""\
    engine:
      address: dsc-engine
      max_price_age_seconds: 3600
    collateral:
      - asset: WETH
        feed: ETH/USD
      - asset: WBTC
        feed: BTC/USD
    oracle:
      provider: static
      static:
        ETH/USD: {price: 200000000000, decimals: 8}
        BTC/USD: {price: 100000000000, decimals: 8}
      pyth:
        hermes_url: "https://hermes.example.com"
    monitor:
      accounts: [alice, bob]
      warning_health_factor: 2000000000000000000
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
