"""Risk: fixed-dollar position sizing and the year-to-date performance guard."""

from gap_and_go.risk.sizer import RiskSizer, calculate_size
from gap_and_go.risk.performance_guard import PerformanceGuard

__all__ = ["RiskSizer", "calculate_size", "PerformanceGuard"]
