"""Abstract execution gateway: orders, positions, quotes and position events."""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

from gap_and_go.core.types import Position, SignalSide, Trade

logger = logging.getLogger("gap_and_go.execution")


@dataclass
class OrderResult:
    """Result of a gateway call. position_id is set when a position exists after the call."""
    success: bool
    order_id: Optional[str] = None
    position_id: Optional[str] = None
    avg_price: Optional[float] = None
    quantity: Optional[float] = None
    message: str = ""


@dataclass(frozen=True)
class SymbolInfo:
    """Symbol metadata used for pip conversion and sizing."""
    name: str
    pip_size: float
    pip_value: float
    min_size: float
    max_size: float


class PositionListener(ABC):
    """Receives position lifecycle events from a gateway, synchronously."""

    @abstractmethod
    def on_position_opened(self, position: Position) -> None:
        pass

    @abstractmethod
    def on_position_closed(self, trade: Trade) -> None:
        pass


class ExecutionGateway(ABC):
    """
    Abstract gateway. Order, cancel, close and modify calls return OrderResult and
    report broker rejections as failures. Queries (quotes, open positions, pending
    orders) may raise on transport errors; callers decide whether to retry.
    """

    def __init__(self) -> None:
        self._listeners: List[PositionListener] = []

    def add_position_listener(self, listener: PositionListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_position_listener(self, listener: PositionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit_opened(self, position: Position) -> None:
        for listener in list(self._listeners):
            listener.on_position_opened(position)

    def _emit_closed(self, trade: Trade) -> None:
        for listener in list(self._listeners):
            listener.on_position_closed(trade)

    @abstractmethod
    def symbol_info(self) -> SymbolInfo:
        """Pip size, pip value and size limits for the traded symbol."""
        pass

    @abstractmethod
    def best_bid_ask(self) -> Tuple[float, float]:
        """Current (bid, ask)."""
        pass

    @abstractmethod
    def place_stop_order(self, side: SignalSide, size: float, price: float, label: str) -> OrderResult:
        """Submit a stop entry order at `price`. order_id identifies the pending order."""
        pass

    @abstractmethod
    def execute_market_order(self, side: SignalSide, size: float, label: str) -> OrderResult:
        """Open a position at market. position_id and avg_price describe the fill."""
        pass

    @abstractmethod
    def modify_stop_loss_take_profit(
        self,
        handle: str,
        stop_loss: Optional[float] = None,
        take_profit: Optional[float] = None,
    ) -> OrderResult:
        """Set absolute stop-loss / take-profit prices on an order or position."""
        pass

    @abstractmethod
    def modify_stop_loss_take_profit_pips(
        self,
        handle: str,
        stop_loss_pips: Optional[float] = None,
        take_profit_pips: Optional[float] = None,
    ) -> OrderResult:
        """Set stop-loss / take-profit as pip distances from the order's entry price."""
        pass

    @abstractmethod
    def cancel_order(self, order_id: str) -> OrderResult:
        pass

    @abstractmethod
    def close_position(self, position_id: str) -> OrderResult:
        pass

    @abstractmethod
    def open_positions(self, label_prefix: str = "") -> List[Position]:
        """Open positions whose label starts with label_prefix, with unrealized PnL."""
        pass

    @abstractmethod
    def pending_orders(self, label_prefix: str = "") -> List[str]:
        """Ids of pending orders whose label starts with label_prefix."""
        pass
