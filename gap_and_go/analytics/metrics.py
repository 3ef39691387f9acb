"""
Trade performance metrics: win rate, profit factor, expectancy.
Input is a list of per-trade net profits.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List

import numpy as np

# Profit factor reported when there are winners but no losers.
NO_LOSS_PROFIT_FACTOR = 999.0


@dataclass
class PerformanceMetrics:
    """Aggregate performance metrics."""
    total_trades: int
    winning_trades: int
    losing_trades: int
    gross_profit: float
    gross_loss: float
    win_rate: float
    profit_factor: float
    expectancy: float
    avg_win: float
    avg_loss: float


def win_rate(pnls: List[float]) -> float:
    """Fraction of trades with positive PnL."""
    if not pnls:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls)


def profit_factor(pnls: List[float], no_loss_value: float = NO_LOSS_PROFIT_FACTOR) -> float:
    """Gross profit / gross loss. no_loss_value if there are wins but no losses, 0 if neither."""
    wins = sum(p for p in pnls if p > 0)
    losses = sum(-p for p in pnls if p < 0)
    if losses <= 0:
        return no_loss_value if wins > 0 else 0.0
    return wins / losses


def expectancy(pnls: List[float]) -> float:
    """Average PnL per trade."""
    if not pnls:
        return 0.0
    return float(np.mean(pnls))


def compute_metrics(pnls: List[float]) -> PerformanceMetrics:
    """Compute the summary used by the performance guard and the session logs."""
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]
    return PerformanceMetrics(
        total_trades=len(pnls),
        winning_trades=len(wins),
        losing_trades=len(losses),
        gross_profit=float(sum(wins)),
        gross_loss=float(-sum(losses)),
        win_rate=win_rate(pnls),
        profit_factor=profit_factor(pnls),
        expectancy=expectancy(pnls),
        avg_win=sum(wins) / len(wins) if wins else 0.0,
        avg_loss=sum(losses) / len(losses) if losses else 0.0,
    )
