"""Health monitoring — reports every watched account and alerts on risk."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from ..constants import HEALTH_FACTOR_INFINITE, MIN_HEALTH_FACTOR, PRECISION
from ..engine import DSCEngine
from ..errors import OracleUnavailable
from ..interfaces.notifier import Notifier
from ..models import PositionReport

logger = logging.getLogger(__name__)


def format_usd(value: int) -> str:
    return f"${value / PRECISION:,.2f}"


def format_health_factor(health_factor: int) -> str:
    if health_factor == HEALTH_FACTOR_INFINITE:
        return "∞"
    return f"{health_factor / PRECISION:.4f}"


class HealthMonitor:
    """Builds position reports from an engine and dispatches alerts.

    Args:
        accounts: Accounts to watch. Empty means every account the ledger
            has seen.
        warning_health_factor: Factor (1e18 scale) below which a healthy
            account still gets a warning.
    """

    def __init__(
        self,
        engine: DSCEngine,
        notifiers: Iterable[Notifier] = (),
        accounts: Iterable[str] = (),
        warning_health_factor: int = 15 * 10**17,
    ) -> None:
        self._engine = engine
        self._notifiers: list[Notifier] = list(notifiers)
        self._accounts = tuple(accounts)
        self._warning_health_factor = warning_health_factor

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def watched_accounts(self) -> list[str]:
        return list(self._accounts) or self._engine.accounts()

    def build_report(self, account: str) -> PositionReport:
        info = self._engine.get_account_information(account)
        health_factor = self._engine.calculate_health_factor(
            info.total_dsc_minted, info.collateral_value_usd
        )
        return PositionReport(
            account=account,
            debt=info.total_dsc_minted,
            collateral_value_usd=info.collateral_value_usd,
            health_factor=health_factor,
            liquidatable=health_factor < MIN_HEALTH_FACTOR,
            collateral=self._engine.ledger.snapshot(account).collateral,
        )

    def build_reports(self) -> list[PositionReport]:
        reports: list[PositionReport] = []
        for account in self.watched_accounts():
            try:
                reports.append(self.build_report(account))
            except OracleUnavailable as e:
                logger.error("Cannot price account %s: %s", account, e)
        return reports

    def status(self, report: PositionReport) -> str:
        if report.liquidatable:
            return "🚨 LIQUIDATABLE"
        if report.health_factor < self._warning_health_factor:
            return "⚠️ WARNING"
        return "✅ Healthy"

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    def format_report(self, report: PositionReport) -> str:
        holdings = ", ".join(
            f"{asset} {amount / PRECISION:,.4f}" for asset, amount in report.collateral if amount
        ) or "—"
        return (
            f"📊 {report.account} · {self.status(report)}\n"
            f"Collateral: {holdings} — {format_usd(report.collateral_value_usd)}\n"
            f"Debt: {report.debt / PRECISION:,.2f} DSC\n"
            f"HF: {format_health_factor(report.health_factor)}"
        )

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    async def _send_log(self, message: str) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=True)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def _send_alert(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    async def check_and_alert(self) -> list[PositionReport]:
        """Report every watched account and alert on risky ones."""
        reports = self.build_reports()

        for report in reports:
            logger.info(
                "Position — %s · Collateral: %s  Debt: %d  HF: %s",
                report.account,
                format_usd(report.collateral_value_usd),
                report.debt,
                format_health_factor(report.health_factor),
            )
            message = f"{self.format_report(report)}\n\n{self._now_str()} UTC"
            await self._send_log(message)

            if report.liquidatable:
                await self._send_alert(message, subject="🚨 CRITICAL: Position liquidatable")
            elif report.health_factor < self._warning_health_factor:
                await self._send_alert(message, subject="⚠️ WARNING: Low health factor")

        return reports
