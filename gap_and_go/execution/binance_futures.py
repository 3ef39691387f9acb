"""
Binance USDT-M Futures gateway with retry on rate limits.

Entries are STOP_MARKET orders tagged with a client order id label. Binance
cannot attach SL/TP to a pending order, so brackets requested before the fill
are kept locally and placed as reduce-only STOP_MARKET / TAKE_PROFIT_MARKET
orders once poll() sees the fill. Position events are queued and dispatched
from poll(), never from inside another gateway call.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pandas as pd

from binance.client import Client
from binance.exceptions import BinanceAPIException

from gap_and_go.core.types import Position, SignalSide, Trade
from gap_and_go.execution.base import ExecutionGateway, OrderResult, SymbolInfo
from gap_and_go.utils.exchange_filters import parse_symbol_filters, round_price, round_quantity

logger = logging.getLogger("gap_and_go.execution.binance")

CLOSED_STATUSES = ("CANCELED", "EXPIRED", "REJECTED")


def retry_on_rate_limit(max_retries: int = 3, base_delay: float = 1.0):
    """Decorator: retry on 429 or 418 (rate limit)."""
    def decorator(f):
        def wrapped(*args, **kwargs):
            last_exc = None
            for attempt in range(max_retries):
                try:
                    return f(*args, **kwargs)
                except BinanceAPIException as e:
                    last_exc = e
                    if e.status_code in (429, 418) and attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning("Rate limited, retry in %.1fs (attempt %d)", delay, attempt + 1)
                        time.sleep(delay)
                    else:
                        raise
            raise last_exc
        return wrapped
    return decorator


def _ms_to_utc(ms) -> datetime:
    return datetime.fromtimestamp(int(ms) / 1000.0, tz=timezone.utc)


@dataclass
class _PendingEntry:
    order_id: str
    label: str
    side: SignalSide
    quantity: float
    stop_price: float
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None


@dataclass
class _OpenPosition:
    position_id: str
    label: str
    side: SignalSide
    quantity: float
    entry_price: float
    entry_time: datetime
    order_id: Optional[str] = None
    brackets: Dict[str, str] = field(default_factory=dict)  # order id -> "stop_loss" | "take_profit"


class BinanceFuturesGateway(ExecutionGateway):
    """Binance USDT-M Futures gateway (testnet and live), one symbol."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        symbol: str,
        testnet: bool = True,
        pip_size: Optional[float] = None,
        pip_value: Optional[float] = None,
        client: Optional[Client] = None,
    ):
        super().__init__()
        self.symbol = symbol
        self._client = client or Client(api_key, api_secret, testnet=testnet)
        logger.info("Binance Futures: using %s", "TESTNET" if testnet else "LIVE")
        self._pip_size = pip_size
        self._pip_value = pip_value
        self._symbol_info_cache: Optional[dict] = None
        self._pending: Dict[str, _PendingEntry] = {}
        self._positions: Dict[str, _OpenPosition] = {}
        self._events: List[object] = []

    # ----- market data -----

    @retry_on_rate_limit(max_retries=3, base_delay=1.0)
    def get_klines(self, interval: str, limit: int = 300) -> pd.DataFrame:
        raw = self._client.futures_klines(symbol=self.symbol, interval=interval, limit=limit)
        df = pd.DataFrame(raw, columns=[
            "open_time", "open", "high", "low", "close", "volume",
            "close_time", "quote_av", "num_trades", "tb_base_av", "tb_quote_av", "ignore"
        ])
        df[["open", "high", "low", "close", "volume"]] = df[["open", "high", "low", "close", "volume"]].astype(float)
        df["time"] = pd.to_datetime(df["open_time"], unit="ms", utc=True)
        return df[["time", "open", "high", "low", "close", "volume"]]

    @retry_on_rate_limit(max_retries=2)
    def _exchange_symbol(self) -> Optional[dict]:
        if self._symbol_info_cache is None:
            info = self._client.futures_exchange_info()
            for s in info.get("symbols", []):
                if s.get("symbol") == self.symbol:
                    self._symbol_info_cache = s
                    break
        return self._symbol_info_cache

    def symbol_info(self) -> SymbolInfo:
        filters = parse_symbol_filters(self._exchange_symbol())
        return SymbolInfo(
            name=self.symbol,
            pip_size=self._pip_size or filters.price_tick,
            pip_value=self._pip_value or 1.0,
            min_size=filters.min_qty,
            max_size=filters.max_qty,
        )

    @retry_on_rate_limit(max_retries=2)
    def best_bid_ask(self) -> Tuple[float, float]:
        book = self._client.futures_orderbook_ticker(symbol=self.symbol)
        return float(book["bidPrice"]), float(book["askPrice"])

    def set_leverage(self, leverage: int) -> None:
        try:
            self._client.futures_change_leverage(symbol=self.symbol, leverage=leverage)
            logger.info("Leverage set to %sx for %s", leverage, self.symbol)
        except BinanceAPIException as e:
            logger.warning("Could not set leverage: %s", e)

    # ----- orders -----

    def _quantity(self, size: float) -> float:
        filters = parse_symbol_filters(self._exchange_symbol())
        return round_quantity(size, filters.min_qty, filters.lot_step)

    def _price(self, price: float) -> float:
        return round_price(price, parse_symbol_filters(self._exchange_symbol()).price_tick)

    @retry_on_rate_limit(max_retries=2)
    def _create_order(self, **params) -> dict:
        return self._client.futures_create_order(symbol=self.symbol, **params)

    def place_stop_order(self, side: SignalSide, size: float, price: float, label: str) -> OrderResult:
        qty = self._quantity(size)
        if qty <= 0:
            return OrderResult(success=False, message=f"quantity {size} below exchange minimum")
        try:
            res = self._create_order(
                side=side.value, type="STOP_MARKET", stopPrice=str(self._price(price)),
                quantity=str(qty), newClientOrderId=label,
            )
        except BinanceAPIException as e:
            logger.exception("Binance stop order error: %s", e)
            return OrderResult(success=False, message=str(e))
        order_id = str(res.get("orderId"))
        self._pending[order_id] = _PendingEntry(order_id, label, side, qty, price)
        return OrderResult(success=True, order_id=order_id, quantity=qty)

    def execute_market_order(self, side: SignalSide, size: float, label: str) -> OrderResult:
        qty = self._quantity(size)
        if qty <= 0:
            return OrderResult(success=False, message=f"quantity {size} below exchange minimum")
        try:
            res = self._create_order(
                side=side.value, type="MARKET", quantity=str(qty),
                newClientOrderId=label, newOrderRespType="RESULT",
            )
        except BinanceAPIException as e:
            logger.exception("Binance market order error: %s", e)
            return OrderResult(success=False, message=str(e))
        order_id = str(res.get("orderId"))
        avg = float(res.get("avgPrice") or 0.0) or None
        filled_at = _ms_to_utc(res["updateTime"]) if res.get("updateTime") else datetime.now(timezone.utc)
        self._positions[order_id] = _OpenPosition(
            position_id=order_id, label=label, side=side, quantity=qty,
            entry_price=avg or 0.0, entry_time=filled_at, order_id=order_id,
        )
        return OrderResult(success=True, order_id=order_id, position_id=order_id, avg_price=avg, quantity=qty)

    def modify_stop_loss_take_profit(
        self,
        handle: str,
        stop_loss: Optional[float] = None,
        take_profit: Optional[float] = None,
    ) -> OrderResult:
        if handle in self._pending:
            entry = self._pending[handle]
            entry.stop_loss, entry.take_profit = stop_loss, take_profit
            return OrderResult(success=True, order_id=handle, message="deferred until fill")
        position = self._positions.get(handle)
        if position is None:
            return OrderResult(success=False, message=f"unknown order or position {handle}")
        return self._replace_brackets(position, stop_loss, take_profit)

    def modify_stop_loss_take_profit_pips(
        self,
        handle: str,
        stop_loss_pips: Optional[float] = None,
        take_profit_pips: Optional[float] = None,
    ) -> OrderResult:
        pip = self.symbol_info().pip_size
        if handle in self._pending:
            entry = self._pending[handle]
            base, sign = entry.stop_price, (1.0 if entry.side.is_long else -1.0)
        elif handle in self._positions:
            position = self._positions[handle]
            base, sign = position.entry_price, (1.0 if position.side.is_long else -1.0)
        else:
            return OrderResult(success=False, message=f"unknown order or position {handle}")
        sl = base - sign * stop_loss_pips * pip if stop_loss_pips is not None else None
        tp = base + sign * take_profit_pips * pip if take_profit_pips is not None else None
        return self.modify_stop_loss_take_profit(handle, sl, tp)

    def _replace_brackets(
        self, position: _OpenPosition, stop_loss: Optional[float], take_profit: Optional[float]
    ) -> OrderResult:
        close_side = SignalSide.SHORT if position.side.is_long else SignalSide.LONG
        try:
            for order_id in list(position.brackets):
                self._client.futures_cancel_order(symbol=self.symbol, orderId=order_id)
                del position.brackets[order_id]
            if stop_loss is not None:
                res = self._create_order(
                    side=close_side.value, type="STOP_MARKET", stopPrice=str(self._price(stop_loss)),
                    quantity=str(position.quantity), reduceOnly=True,
                )
                position.brackets[str(res.get("orderId"))] = "stop_loss"
            if take_profit is not None:
                res = self._create_order(
                    side=close_side.value, type="TAKE_PROFIT_MARKET", stopPrice=str(self._price(take_profit)),
                    quantity=str(position.quantity), reduceOnly=True,
                )
                position.brackets[str(res.get("orderId"))] = "take_profit"
        except BinanceAPIException as e:
            logger.exception("Binance bracket error for %s: %s", position.position_id, e)
            return OrderResult(success=False, position_id=position.position_id, message=str(e))
        return OrderResult(success=True, position_id=position.position_id)

    def cancel_order(self, order_id: str) -> OrderResult:
        try:
            self._client.futures_cancel_order(symbol=self.symbol, orderId=order_id)
        except BinanceAPIException as e:
            logger.warning("Cancel %s failed: %s", order_id, e)
            return OrderResult(success=False, order_id=order_id, message=str(e))
        self._pending.pop(order_id, None)
        return OrderResult(success=True, order_id=order_id)

    def close_position(self, position_id: str) -> OrderResult:
        position = self._positions.get(position_id)
        if position is None:
            return OrderResult(success=False, message=f"unknown position {position_id}")
        close_side = SignalSide.SHORT if position.side.is_long else SignalSide.LONG
        try:
            for order_id in list(position.brackets):
                self._client.futures_cancel_order(symbol=self.symbol, orderId=order_id)
            res = self._create_order(
                side=close_side.value, type="MARKET", quantity=str(position.quantity),
                reduceOnly=True, newOrderRespType="RESULT",
            )
        except BinanceAPIException as e:
            logger.exception("Binance close error for %s: %s", position_id, e)
            return OrderResult(success=False, position_id=position_id, message=str(e))
        exit_price = float(res.get("avgPrice") or 0.0) or position.entry_price
        exit_time = _ms_to_utc(res["updateTime"]) if res.get("updateTime") else datetime.now(timezone.utc)
        self._close(position, exit_price, exit_time, "manual", str(res.get("orderId")))
        return OrderResult(success=True, order_id=str(res.get("orderId")), position_id=position_id,
                           avg_price=exit_price, quantity=position.quantity)

    # ----- queries -----

    @retry_on_rate_limit(max_retries=2)
    def _mark_price(self) -> Optional[float]:
        for p in self._client.futures_position_information(symbol=self.symbol):
            if p.get("markPrice") is not None:
                return float(p["markPrice"])
        return None

    def open_positions(self, label_prefix: str = "") -> List[Position]:
        ours = [p for p in self._positions.values() if p.label.startswith(label_prefix)]
        if not ours:
            return []
        mark = self._mark_price()
        out = []
        for p in ours:
            sign = 1.0 if p.side.is_long else -1.0
            unrealized = (mark - p.entry_price) * p.quantity * sign if mark is not None else 0.0
            out.append(Position(
                position_id=p.position_id, symbol=self.symbol, side=p.side, quantity=p.quantity,
                entry_price=p.entry_price, entry_time=p.entry_time, label=p.label,
                unrealized_pnl=unrealized, order_id=p.order_id,
            ))
        return out

    @retry_on_rate_limit(max_retries=2)
    def pending_orders(self, label_prefix: str = "") -> List[str]:
        orders = self._client.futures_get_open_orders(symbol=self.symbol)
        return [str(o["orderId"]) for o in orders if str(o.get("clientOrderId", "")).startswith(label_prefix)]

    def _commission(self, order_id: Optional[str]) -> float:
        if not order_id:
            return 0.0
        try:
            fills = self._client.futures_account_trades(symbol=self.symbol, orderId=order_id)
        except BinanceAPIException as e:
            logger.warning("Commission lookup for %s failed: %s", order_id, e)
            return 0.0
        return sum(float(f.get("commission", 0.0)) for f in fills)

    # ----- event dispatch -----

    def _close(self, position: _OpenPosition, exit_price: float, exit_time: datetime,
               reason: str, exit_order_id: Optional[str]) -> None:
        sign = 1.0 if position.side.is_long else -1.0
        gross = (exit_price - position.entry_price) * position.quantity * sign
        fees = self._commission(position.order_id) + self._commission(exit_order_id)
        self._positions.pop(position.position_id, None)
        self._events.append(Trade(
            position_id=position.position_id, symbol=self.symbol, side=position.side,
            quantity=position.quantity, entry_price=position.entry_price, exit_price=exit_price,
            net_profit=gross - fees, gross_profit=gross, entry_time=position.entry_time,
            exit_time=exit_time, label=position.label, exit_reason=reason,
        ))

    @retry_on_rate_limit(max_retries=2)
    def _order_status(self, order_id: str) -> dict:
        return self._client.futures_get_order(symbol=self.symbol, orderId=order_id)

    def poll(self) -> None:
        """Detect entry fills and bracket exits, then dispatch queued position events."""
        for entry in list(self._pending.values()):
            info = self._order_status(entry.order_id)
            status = info.get("status")
            if status == "FILLED":
                del self._pending[entry.order_id]
                position = _OpenPosition(
                    position_id=entry.order_id, label=entry.label, side=entry.side,
                    quantity=float(info.get("executedQty") or entry.quantity),
                    entry_price=float(info.get("avgPrice") or entry.stop_price),
                    entry_time=_ms_to_utc(info.get("updateTime") or time.time() * 1000),
                    order_id=entry.order_id,
                )
                self._positions[position.position_id] = position
                if entry.stop_loss is not None or entry.take_profit is not None:
                    self._replace_brackets(position, entry.stop_loss, entry.take_profit)
                self._events.append(Position(
                    position_id=position.position_id, symbol=self.symbol, side=position.side,
                    quantity=position.quantity, entry_price=position.entry_price,
                    entry_time=position.entry_time, label=position.label, order_id=entry.order_id,
                ))
            elif status in CLOSED_STATUSES:
                logger.info("Pending order %s is %s", entry.order_id, status)
                del self._pending[entry.order_id]

        for position in list(self._positions.values()):
            for order_id, kind in list(position.brackets.items()):
                info = self._order_status(order_id)
                if info.get("status") != "FILLED":
                    continue
                for other in position.brackets:
                    if other != order_id:
                        try:
                            self._client.futures_cancel_order(symbol=self.symbol, orderId=other)
                        except BinanceAPIException as e:
                            logger.warning("Cancel of sibling bracket %s failed: %s", other, e)
                self._close(position, float(info.get("avgPrice") or info.get("stopPrice")),
                            _ms_to_utc(info.get("updateTime") or time.time() * 1000), kind, order_id)
                break

        events, self._events = self._events, []
        for event in events:
            if isinstance(event, Position):
                self._emit_opened(event)
            else:
                self._emit_closed(event)
