"""Command-line interface for the DSC engine."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import AppConfig, load_config
from .engine import DSCEngine
from .interfaces.notifier import Notifier
from .logging_setup import configure_logging
from .notifications import TelegramNotifier
from .oracles import PythOracle, build_oracle
from .pricing import PriceConverter
from .registry import AssetRegistry
from .scenario import load_scenario, run_scenario
from .services import HealthMonitor
from .services.monitor import format_usd

ONE_UNIT = 10**18


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="dsc-engine",
        description="Overcollateralized synthetic-dollar engine",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in the current directory)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("constants", help="Print protocol constants")
    sub.add_parser("prices", help="Print the USD price of one unit of each collateral")

    simulate_parser = sub.add_parser("simulate", help="Replay a scenario file")
    simulate_parser.add_argument("scenario", help="Path to the scenario YAML")
    simulate_parser.add_argument(
        "--alert",
        action="store_true",
        help="Send monitor alerts for the final positions",
    )

    return parser


def _notifiers(config: AppConfig) -> list[Notifier]:
    notifiers: list[Notifier] = []
    if config.notifications.telegram.enabled:
        notifiers.append(TelegramNotifier(config.notifications.telegram))
    return notifiers


def _print_constants() -> None:
    for name, value in DSCEngine.constants().items():
        print(f"{name:<24} {value}")


async def _print_prices(config: AppConfig) -> None:
    registry = AssetRegistry.from_pairs(config.collateral_pairs())
    oracle = build_oracle(config.oracle)
    if isinstance(oracle, PythOracle):
        await oracle.refresh(registry.feed_for(asset) for asset in registry)

    converter = PriceConverter(
        registry, oracle, config.engine.max_price_age_seconds or None
    )
    for asset in registry:
        print(f"{asset:<10} {format_usd(converter.usd_value(asset, ONE_UNIT))}")


async def _simulate(config: AppConfig, scenario_path: str, alert: bool) -> int:
    result = run_scenario(config, load_scenario(scenario_path))

    for outcome in result.outcomes:
        mark = "ok" if outcome.ok else outcome.error
        flag = "" if outcome.expected else "  <-- unexpected"
        print(f"[{outcome.index:>3}] {outcome.op:<17} {mark}{flag}")

    monitor = HealthMonitor(
        result.engine,
        _notifiers(config) if alert else (),
        accounts=config.monitor.accounts,
        warning_health_factor=config.monitor.warning_health_factor,
    )
    if alert:
        reports = await monitor.check_and_alert()
    else:
        reports = monitor.build_reports()
    for report in reports:
        print(monitor.format_report(report))

    return 1 if result.unexpected else 0


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command."""
    configure_logging(args.log_level)

    if args.command == "constants":
        _print_constants()
        return 0

    config = load_config(args.config)
    if args.command == "prices":
        await _print_prices(config)
        return 0
    if args.command == "simulate":
        return await _simulate(config, args.scenario, args.alert)

    build_parser().print_help()
    return 1


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))
