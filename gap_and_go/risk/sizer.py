"""
Position sizing from a fixed dollar risk per trade.
Size = risk_usd / (|entry - stop| * pip_value), so the loss at the stop is risk_usd.
"""

from __future__ import annotations
import logging
from decimal import Decimal, ROUND_HALF_UP

from gap_and_go.execution.base import SymbolInfo

logger = logging.getLogger("gap_and_go.risk.sizer")

EPSILON = 1e-10


def round_half_away(value: float, places: int = 1) -> float:
    """Round to `places` decimals with ties going away from zero (2.25 -> 2.3, -2.25 -> -2.3)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def calculate_size(
    entry_price: float,
    stop_loss_price: float,
    risk_budget: float,
    pip_value: float,
    min_size: float,
    max_size: float,
) -> float:
    """
    Pure sizing function. Never fails: a degenerate stop distance returns min_size,
    everything else is rounded to one decimal and clamped to [min_size, max_size].
    """
    distance = abs(entry_price - stop_loss_price)
    if distance < EPSILON or pip_value <= 0:
        return min_size
    raw = risk_budget / (distance * pip_value)
    if raw >= max_size:
        return max_size
    size = round_half_away(raw, 1)
    return min(max(size, min_size), max_size)


class RiskSizer:
    """Binds the risk budget and symbol metadata for repeated sizing."""

    def __init__(self, risk_per_trade_usd: float, symbol_info: SymbolInfo):
        self.risk_per_trade_usd = risk_per_trade_usd
        self.symbol_info = symbol_info

    def size(self, entry_price: float, stop_loss_price: float) -> float:
        size = calculate_size(
            entry_price,
            stop_loss_price,
            self.risk_per_trade_usd,
            self.symbol_info.pip_value,
            self.symbol_info.min_size,
            self.symbol_info.max_size,
        )
        logger.debug(
            "Sized %.4f for entry=%.5f stop=%.5f risk=$%.2f",
            size, entry_price, stop_loss_price, self.risk_per_trade_usd,
        )
        return size
