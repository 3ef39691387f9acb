"""Analytics: trade performance metrics (win rate, profit factor, expectancy)."""

from gap_and_go.analytics.metrics import (
    PerformanceMetrics,
    compute_metrics,
    win_rate,
    profit_factor,
    expectancy,
)

__all__ = [
    "PerformanceMetrics",
    "compute_metrics",
    "win_rate",
    "profit_factor",
    "expectancy",
]
