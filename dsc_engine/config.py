"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .constants import DEFAULT_ENGINE_ADDRESS, DEFAULT_MAX_PRICE_AGE_SECONDS

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineConfig:
    address: str = DEFAULT_ENGINE_ADDRESS
    # 0 disables the staleness check.
    max_price_age_seconds: int = DEFAULT_MAX_PRICE_AGE_SECONDS


@dataclass(frozen=True)
class CollateralConfig:
    asset: str = ""
    feed: str = ""


@dataclass(frozen=True)
class StaticPriceConfig:
    price: int = 0
    decimals: int = 8


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    timeout: int = 30


@dataclass(frozen=True)
class OracleConfig:
    provider: str = "static"
    static_prices: dict[str, StaticPriceConfig] = field(default_factory=dict)
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class MonitorConfig:
    accounts: tuple[str, ...] = ()
    # Accounts below this factor (1e18 scale) get a warning alert.
    warning_health_factor: int = 15 * 10**17


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    engine: EngineConfig = field(default_factory=EngineConfig)
    collateral: tuple[CollateralConfig, ...] = ()
    oracle: OracleConfig = field(default_factory=OracleConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)

    def collateral_pairs(self) -> list[tuple[str, str]]:
        return [(c.asset, c.feed) for c in self.collateral]


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_engine(raw: dict[str, Any]) -> EngineConfig:
    return EngineConfig(
        address=str(raw.get("address", DEFAULT_ENGINE_ADDRESS)),
        max_price_age_seconds=int(
            raw.get("max_price_age_seconds", DEFAULT_MAX_PRICE_AGE_SECONDS)
        ),
    )


def _build_collateral(raw: list[dict[str, Any]]) -> tuple[CollateralConfig, ...]:
    return tuple(
        CollateralConfig(asset=str(c.get("asset", "")), feed=str(c.get("feed", "")))
        for c in raw
    )


def _build_oracle(raw: dict[str, Any]) -> OracleConfig:
    static_raw = raw.get("static", {}) or {}
    pyth_raw = raw.get("pyth", {}) or {}
    static_prices = {
        str(feed): StaticPriceConfig(
            price=int(entry.get("price", 0)),
            decimals=int(entry.get("decimals", 8)),
        )
        for feed, entry in static_raw.items()
    }
    return OracleConfig(
        provider=raw.get("provider", "static"),
        static_prices=static_prices,
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            timeout=int(pyth_raw.get("timeout", PythConfig.timeout)),
        ),
    )


def _build_monitor(raw: dict[str, Any]) -> MonitorConfig:
    return MonitorConfig(
        accounts=tuple(str(a) for a in raw.get("accounts", [])),
        warning_health_factor=int(
            raw.get("warning_health_factor", MonitorConfig.warning_health_factor)
        ),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {}) or {}
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            current working directory.
    """
    load_dotenv()

    if config_path is None:
        config_path = Path.cwd() / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        engine=_build_engine(raw.get("engine", {}) or {}),
        collateral=_build_collateral(raw.get("collateral", []) or []),
        oracle=_build_oracle(raw.get("oracle", {}) or {}),
        monitor=_build_monitor(raw.get("monitor", {}) or {}),
        notifications=_build_notifications(raw.get("notifications", {}) or {}),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.collateral:
        raise ValueError("At least one collateral asset must be configured")

    seen: set[str] = set()
    for entry in cfg.collateral:
        if not entry.asset:
            raise ValueError("Collateral entry has no asset id")
        if not entry.feed:
            raise ValueError(f"Collateral '{entry.asset}' has no price feed")
        if entry.asset in seen:
            raise ValueError(f"Collateral '{entry.asset}' is configured twice")
        seen.add(entry.asset)

    if cfg.engine.max_price_age_seconds < 0:
        raise ValueError("engine.max_price_age_seconds must not be negative")

    if cfg.oracle.provider not in ("static", "pyth"):
        raise ValueError(f"Unknown oracle provider '{cfg.oracle.provider}'")

    if cfg.oracle.provider == "static":
        for entry in cfg.collateral:
            if entry.feed not in cfg.oracle.static_prices:
                raise ValueError(
                    f"Static oracle has no price for feed '{entry.feed}'"
                )
