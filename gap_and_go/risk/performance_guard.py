"""
Year-to-date performance kill-switch.

From the checkpoint date (start of Q2 by default) the guard evaluates the
year's trades once: if both the profit factor and the average trade are below
their minimums, new entries are suspended until the next calendar year.
A single breached metric is not enough.
"""

from __future__ import annotations
import logging
from datetime import date, datetime
from typing import Iterable, List, Optional

from gap_and_go.analytics.metrics import compute_metrics, PerformanceMetrics
from gap_and_go.core.types import TradeRecord, YearPhase

logger = logging.getLogger("gap_and_go.risk.performance")


class PerformanceGuard:
    """Tracks the yearly lifecycle (monitoring -> checked | suspended)."""

    def __init__(
        self,
        enabled: bool = True,
        min_profit_factor: float = 0.8,
        min_average_trade: float = 0.0,
        checkpoint_month: int = 4,
        checkpoint_day: int = 1,
    ):
        self.enabled = enabled
        self.min_profit_factor = min_profit_factor
        self.min_average_trade = min_average_trade
        self.checkpoint_month = checkpoint_month
        self.checkpoint_day = checkpoint_day
        self.year: Optional[int] = None
        self.phase = YearPhase.MONITORING
        self.last_metrics: Optional[PerformanceMetrics] = None

    @property
    def suspended(self) -> bool:
        return self.phase is YearPhase.SUSPENDED

    def start_year(self, year: int) -> None:
        """Year boundary: clears suspension and the once-a-year check."""
        if self.suspended:
            logger.info("New year %d: trading suspension lifted", year)
        self.year = year
        self.phase = YearPhase.MONITORING
        self.last_metrics = None

    def checkpoint(self, year: int) -> date:
        return date(year, self.checkpoint_month, self.checkpoint_day)

    def check_and_maybe_suspend(self, now: datetime, year_records: Iterable[TradeRecord]) -> bool:
        """
        Evaluate year-to-date records once per year on/after the checkpoint.
        Open records carry their unrealized profit in net_profit.
        Returns True if trading is (now) suspended.
        """
        if self.year != now.year:
            self.start_year(now.year)
        if not self.enabled or self.phase is not YearPhase.MONITORING:
            return self.suspended
        if now.date() < self.checkpoint(now.year):
            return False

        ytd: List[TradeRecord] = [r for r in year_records if r.entry_time_local.year == now.year]
        if not ytd:
            logger.debug("Performance check deferred: no trades yet in %d", now.year)
            return False

        metrics = compute_metrics([r.net_profit for r in ytd])
        self.last_metrics = metrics
        logger.info(
            "Performance check %s: trades=%d profit_factor=%.2f avg_trade=%.2f",
            now.date(), metrics.total_trades, metrics.profit_factor, metrics.expectancy,
        )
        if metrics.expectancy < self.min_average_trade and metrics.profit_factor < self.min_profit_factor:
            self.phase = YearPhase.SUSPENDED
            logger.warning(
                "Trading suspended for %d: profit_factor %.2f < %.2f and avg_trade %.2f < %.2f",
                now.year, metrics.profit_factor, self.min_profit_factor,
                metrics.expectancy, self.min_average_trade,
            )
        else:
            self.phase = YearPhase.CHECKED
        return self.suspended
