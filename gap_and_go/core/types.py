"""
Core data types for bars, gap state, pattern orders, positions and trade records.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class SignalSide(str, Enum):
    LONG = "BUY"
    SHORT = "SELL"

    @property
    def is_long(self) -> bool:
        return self is SignalSide.LONG


class GapType(str, Enum):
    """Directional bias of the trading day relative to the session EMA."""
    NONE = "none"
    UP = "up"
    DOWN = "down"


class AdditionalTradeMode(str, Enum):
    CONSERVATIVE = "conservative"
    AGGRESSIVE = "aggressive"


class OrderState(str, Enum):
    PENDING = "pending"
    FOURTH_BAR_PENDING = "fourth_bar_pending"
    ESCALATED = "escalated"
    INVALIDATED = "invalidated"
    CANCELED = "canceled"
    FILLED = "filled"
    CLOSED = "closed"

    @property
    def is_pending(self) -> bool:
        return self in (OrderState.PENDING, OrderState.FOURTH_BAR_PENDING)


class DayPhase(str, Enum):
    AWAITING_GAP = "awaiting_gap"
    GAP_RESOLVED = "gap_resolved"
    SESSION_CLOSED = "session_closed"


class YearPhase(str, Enum):
    MONITORING = "monitoring"
    CHECKED = "checked"
    SUSPENDED = "suspended"


@dataclass(frozen=True)
class Bar:
    """Completed OHLC bar with its open time in UTC and in session-local time."""
    open: float
    high: float
    low: float
    close: float
    open_time_utc: datetime
    open_time_local: datetime

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def midpoint(self) -> float:
        return (self.high + self.low) / 2.0

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open


@dataclass(frozen=True)
class PatternSignature:
    """Open times of the three bars of a window; dedup key for pattern scanning."""
    bar1_time: datetime
    bar2_time: datetime
    bar3_time: datetime

    @classmethod
    def from_bars(cls, b1: Bar, b2: Bar, b3: Bar) -> "PatternSignature":
        return cls(b1.open_time_utc, b2.open_time_utc, b3.open_time_utc)


@dataclass(frozen=True)
class PatternSetup:
    """A confirmed three-bar continuation with its entry, stop and target."""
    side: SignalSide
    entry_price: float
    stop_loss: float
    take_profit: float
    signature: PatternSignature
    confirming_bar: Bar

    @property
    def is_long(self) -> bool:
        return self.side.is_long


@dataclass
class PatternOrder:
    """
    Order placed for a pattern, tracked until filled, canceled or closed.
    intended_entry_price keeps the pattern's entry level even after a market
    escalation fills elsewhere.
    """
    signature: PatternSignature
    confirming_bar: Bar
    order_id: str
    entry_price: float
    stop_loss: float
    take_profit: float
    size: float
    is_long: bool
    created_at: datetime
    state: OrderState = OrderState.PENDING
    position_id: Optional[str] = None
    intended_entry_price: Optional[float] = None

    def __post_init__(self) -> None:
        if self.intended_entry_price is None:
            self.intended_entry_price = self.entry_price

    @property
    def side(self) -> SignalSide:
        return SignalSide.LONG if self.is_long else SignalSide.SHORT

    @property
    def stop_distance(self) -> float:
        return abs(self.entry_price - self.stop_loss)

    @property
    def target_distance(self) -> float:
        return abs(self.take_profit - self.entry_price)

    def refilled(self, fill_price: float, position_id: str, order_id: str) -> "PatternOrder":
        """Same order moved to a new fill price, keeping the original SL/TP distances."""
        sign = 1.0 if self.is_long else -1.0
        return replace(
            self,
            order_id=order_id,
            position_id=position_id,
            entry_price=fill_price,
            stop_loss=fill_price - sign * self.stop_distance,
            take_profit=fill_price + sign * self.target_distance,
            state=OrderState.FILLED,
        )


@dataclass
class TradeRecord:
    """One executed position as seen by the re-entry policy and the performance guard."""
    id: str
    entry_time_local: datetime
    is_long: bool
    original_entry_price: float
    is_closed: bool = False
    net_profit: float = 0.0
    gross_profit: float = 0.0


@dataclass
class Position:
    """Open position state."""
    position_id: str
    symbol: str
    side: SignalSide
    quantity: float
    entry_price: float
    entry_time: datetime
    label: str = ""
    unrealized_pnl: float = 0.0
    order_id: Optional[str] = None  # pending order that produced the fill, if any


@dataclass
class Trade:
    """Closed position for analytics and performance tracking."""
    position_id: str
    symbol: str
    side: SignalSide
    quantity: float
    entry_price: float
    exit_price: float
    net_profit: float
    gross_profit: float
    entry_time: datetime
    exit_time: datetime
    label: str = ""
    exit_reason: str = ""  # "stop_loss" | "take_profit" | "session_end" | "manual"
    metadata: dict = field(default_factory=dict)
