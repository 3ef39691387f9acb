"""Shared fixtures: an in-memory recording gateway and a session-local bar factory."""

from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest
import pytz

from gap_and_go.core.config import Config
from gap_and_go.core.types import Bar, Position, SignalSide, Trade
from gap_and_go.execution.base import ExecutionGateway, OrderResult, SymbolInfo

ET = pytz.timezone("America/New_York")


def make_bar(hh: int, mm: int, o: float, h: float, l: float, c: float, day: date = date(2024, 3, 5)) -> Bar:
    """Bar opening at hh:mm New York time on `day`."""
    local = ET.localize(datetime(day.year, day.month, day.day, hh, mm))
    return Bar(open=o, high=h, low=l, close=c,
               open_time_utc=local.astimezone(timezone.utc), open_time_local=local)


class FakeGateway(ExecutionGateway):
    """Records every call; fills and closes are triggered explicitly by tests."""

    def __init__(self, pip_size=1.0, pip_value=1.0, min_size=0.1, max_size=100.0, bid=0.0, ask=0.0):
        super().__init__()
        self.info = SymbolInfo("TEST", pip_size, pip_value, min_size, max_size)
        self.quote = (bid, ask)
        self.stop_orders: Dict[str, dict] = {}
        self.positions: Dict[str, Position] = {}
        self.brackets: Dict[str, Tuple[Optional[float], Optional[float]]] = {}
        self.pip_brackets: Dict[str, Tuple[Optional[float], Optional[float]]] = {}
        self.market_orders: List[dict] = []
        self.canceled: List[str] = []
        self.closed: List[str] = []
        self.fail_place = False
        self.fail_market = False
        self.fail_cancel = False
        self.market_fill_price: Optional[float] = None
        self._seq = 0

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}{self._seq}"

    def symbol_info(self) -> SymbolInfo:
        return self.info

    def best_bid_ask(self):
        return self.quote

    def place_stop_order(self, side, size, price, label):
        if self.fail_place:
            return OrderResult(success=False, message="rejected")
        order_id = self._next_id("S")
        self.stop_orders[order_id] = {"side": side, "size": size, "price": price, "label": label}
        return OrderResult(success=True, order_id=order_id, quantity=size)

    def execute_market_order(self, side, size, label):
        if self.fail_market:
            return OrderResult(success=False, message="no liquidity")
        pid = self._next_id("P")
        self.market_orders.append({"side": side, "size": size, "label": label})
        price = self.market_fill_price or 0.0
        self.positions[pid] = Position(pid, "TEST", side, size, price, datetime.now(timezone.utc), label=label)
        return OrderResult(success=True, order_id=pid, position_id=pid, avg_price=self.market_fill_price,
                           quantity=size)

    def modify_stop_loss_take_profit(self, handle, stop_loss=None, take_profit=None):
        self.brackets[handle] = (stop_loss, take_profit)
        return OrderResult(success=True)

    def modify_stop_loss_take_profit_pips(self, handle, stop_loss_pips=None, take_profit_pips=None):
        self.pip_brackets[handle] = (stop_loss_pips, take_profit_pips)
        return OrderResult(success=True)

    def cancel_order(self, order_id):
        if self.fail_cancel:
            return OrderResult(success=False, message="unknown order")
        self.stop_orders.pop(order_id, None)
        self.canceled.append(order_id)
        return OrderResult(success=True, order_id=order_id)

    def close_position(self, position_id):
        self.positions.pop(position_id, None)
        self.closed.append(position_id)
        return OrderResult(success=True, position_id=position_id)

    def open_positions(self, label_prefix=""):
        return [p for p in self.positions.values() if p.label.startswith(label_prefix)]

    def pending_orders(self, label_prefix=""):
        return [oid for oid, o in self.stop_orders.items() if o["label"].startswith(label_prefix)]

    # test helpers

    def fill(self, order_id: str, price: Optional[float] = None, when: Optional[datetime] = None) -> Position:
        order = self.stop_orders.pop(order_id)
        pid = self._next_id("P")
        position = Position(
            position_id=pid, symbol="TEST", side=order["side"], quantity=order["size"],
            entry_price=price if price is not None else order["price"],
            entry_time=when or datetime.now(timezone.utc), label=order["label"], order_id=order_id,
        )
        self.positions[pid] = position
        self._emit_opened(position)
        return position

    def close(self, position_id: str, net_profit: float, when: Optional[datetime] = None) -> Trade:
        position = self.positions.pop(position_id)
        trade = Trade(
            position_id=position_id, symbol="TEST", side=position.side, quantity=position.quantity,
            entry_price=position.entry_price, exit_price=position.entry_price, net_profit=net_profit,
            gross_profit=net_profit, entry_time=position.entry_time,
            exit_time=when or datetime.now(timezone.utc), label=position.label,
        )
        self._emit_closed(trade)
        return trade


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def config():
    return Config(
        timeframe="5m",
        ema_period=20,
        session="09:30-16:15",
        entry_limit="14:30",
        max_trades_per_day=5,
        risk_per_trade_usd=100.0,
    )


@pytest.fixture
def bullish_day():
    """Gap-up opening bar followed by a valid bullish three-bar pattern (EMA = 100)."""
    return [
        make_bar(9, 30, 102.0, 103.0, 101.0, 102.5),
        make_bar(9, 35, 101.0, 102.5, 101.0, 102.0),
        make_bar(9, 40, 102.0, 106.0, 102.0, 105.0),
        make_bar(9, 45, 105.0, 109.0, 105.0, 108.0),
    ]
