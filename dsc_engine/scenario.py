"""Scenario replay — drives an engine with in-memory collaborators from YAML.

A scenario looks like::

    prices:                  # optional overrides of the configured feeds
      ETH/USD: {price: 200000000000, decimals: 8}
    accounts:                # faucet balances per collateral asset
      alice: {WETH: 10e18}
    steps:
      - {op: deposit_and_mint, account: alice, asset: WETH,
         amount: 10e18, mint: 100e18}
      - {op: set_price, feed: ETH/USD, price: 1800000000}
      - {op: liquidate, account: bob, asset: WETH, victim: alice,
         amount: 100e18, expect_error: HealthFactorOk}

Deposits and burns approve the engine for exactly the needed amount unless
``auto_approve: false`` is set at the top level.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable

import yaml

from .config import AppConfig
from .engine import DSCEngine
from .errors import EngineError, TokenError
from .oracles.static import StaticPriceFeed
from .tokens import DecentralizedStableCoin, FungibleToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepOutcome:
    index: int
    op: str
    ok: bool
    error: str = ""
    expected: bool = True


@dataclass
class ScenarioResult:
    engine: DSCEngine
    oracle: StaticPriceFeed
    tokens: dict[str, FungibleToken]
    dsc: DecentralizedStableCoin
    outcomes: list[StepOutcome] = field(default_factory=list)

    @property
    def unexpected(self) -> list[StepOutcome]:
        return [o for o in self.outcomes if not o.expected]


def parse_amount(value: Any) -> int:
    """Accept ints and exact decimal strings such as ``"10e18"``."""
    if isinstance(value, bool):
        raise ValueError(f"invalid amount {value!r}")
    if isinstance(value, int):
        return value
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"invalid amount {value!r}") from None
    if parsed != parsed.to_integral_value():
        raise ValueError(f"amount {value!r} is not a whole number of units")
    return int(parsed)


def load_scenario(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw.get("steps", []), list):
        raise ValueError("scenario 'steps' must be a list")
    return raw


class _Runner:
    def __init__(self, config: AppConfig, scenario: dict[str, Any]) -> None:
        self.auto_approve = bool(scenario.get("auto_approve", True))

        self.oracle = StaticPriceFeed()
        for feed_id, entry in config.oracle.static_prices.items():
            self.oracle.set_price(feed_id, entry.price, entry.decimals)
        for feed_id, entry in (scenario.get("prices") or {}).items():
            self.oracle.set_price(
                str(feed_id), parse_amount(entry["price"]), int(entry.get("decimals", 8))
            )

        address = config.engine.address
        self.tokens = {c.asset: FungibleToken(c.asset) for c in config.collateral}
        self.dsc = DecentralizedStableCoin(owner=address)
        self.engine = DSCEngine.from_pairs(
            config.collateral_pairs(),
            self.dsc,
            self.tokens,
            self.oracle,
            address=address,
            max_price_age=config.engine.max_price_age_seconds or None,
        )

        for account, balances in (scenario.get("accounts") or {}).items():
            for asset, amount in (balances or {}).items():
                self.tokens[asset].mint_to(str(account), parse_amount(amount))

        self._ops: dict[str, Callable[[dict[str, Any]], None]] = {
            "deposit": self._deposit,
            "mint": self._mint,
            "deposit_and_mint": self._deposit_and_mint,
            "redeem": self._redeem,
            "burn": self._burn,
            "redeem_for_dsc": self._redeem_for_dsc,
            "liquidate": self._liquidate,
            "set_price": self._set_price,
            "approve": self._approve,
        }

    def _token(self, name: str) -> FungibleToken:
        if name == self.dsc.symbol:
            return self.dsc
        return self.tokens[name]

    def _allow(self, token: FungibleToken, account: str, amount: int) -> None:
        if self.auto_approve:
            token.approve(account, self.engine.address, amount)

    def _deposit(self, step: dict[str, Any]) -> None:
        amount = parse_amount(step["amount"])
        if step["asset"] in self.tokens:
            self._allow(self.tokens[step["asset"]], step["account"], amount)
        self.engine.deposit_collateral(step["account"], step["asset"], amount)

    def _mint(self, step: dict[str, Any]) -> None:
        self.engine.mint_dsc(step["account"], parse_amount(step["amount"]))

    def _deposit_and_mint(self, step: dict[str, Any]) -> None:
        amount = parse_amount(step["amount"])
        if step["asset"] in self.tokens:
            self._allow(self.tokens[step["asset"]], step["account"], amount)
        self.engine.deposit_collateral_and_mint_dsc(
            step["account"], step["asset"], amount, parse_amount(step["mint"])
        )

    def _redeem(self, step: dict[str, Any]) -> None:
        self.engine.redeem_collateral(
            step["account"], step["asset"], parse_amount(step["amount"])
        )

    def _burn(self, step: dict[str, Any]) -> None:
        amount = parse_amount(step["amount"])
        self._allow(self.dsc, step["account"], amount)
        self.engine.burn_dsc(step["account"], amount)

    def _redeem_for_dsc(self, step: dict[str, Any]) -> None:
        burn = parse_amount(step["burn"])
        self._allow(self.dsc, step["account"], burn)
        self.engine.redeem_collateral_for_dsc(
            step["account"], step["asset"], parse_amount(step["amount"]), burn
        )

    def _liquidate(self, step: dict[str, Any]) -> None:
        amount = parse_amount(step["amount"])
        self._allow(self.dsc, step["account"], amount)
        self.engine.liquidate(step["account"], step["asset"], step["victim"], amount)

    def _set_price(self, step: dict[str, Any]) -> None:
        self.oracle.update_answer(str(step["feed"]), parse_amount(step["price"]))

    def _approve(self, step: dict[str, Any]) -> None:
        self._token(step["token"]).approve(
            step["account"], self.engine.address, parse_amount(step["amount"])
        )

    def run(self, steps: list[dict[str, Any]]) -> list[StepOutcome]:
        outcomes: list[StepOutcome] = []
        for index, step in enumerate(steps):
            op = step.get("op", "")
            handler = self._ops.get(op)
            if handler is None:
                raise ValueError(f"step {index}: unknown op {op!r}")

            expect_error = step.get("expect_error", "")
            try:
                handler(step)
            except (EngineError, TokenError) as e:
                name = type(e).__name__
                expected = bool(expect_error) and expect_error == name
                if not expected:
                    logger.warning("Step %d (%s) failed: %s: %s", index, op, name, e)
                outcomes.append(StepOutcome(index, op, False, f"{name}: {e}", expected))
                continue

            if expect_error:
                logger.warning("Step %d (%s) succeeded, expected %s", index, op, expect_error)
            outcomes.append(StepOutcome(index, op, True, expected=not expect_error))
        return outcomes


def run_scenario(config: AppConfig, scenario: dict[str, Any]) -> ScenarioResult:
    """Replay ``scenario`` against a fresh engine built from ``config``."""
    runner = _Runner(config, scenario)
    outcomes = runner.run(scenario.get("steps") or [])
    logger.info(
        "Scenario finished: %d step(s), %d unexpected",
        len(outcomes), sum(1 for o in outcomes if not o.expected),
    )
    return ScenarioResult(
        engine=runner.engine,
        oracle=runner.oracle,
        tokens=runner.tokens,
        dsc=runner.dsc,
        outcomes=outcomes,
    )
