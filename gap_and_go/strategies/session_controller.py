"""
Session controller: the engine's single entry point for market and position events.

Per closed bar: day/year rollover, suspension check, fourth-bar adjudication of
pending orders, session-end liquidation, entry gating (trade cap, entry cutoff,
session window), gap detection, bar buffering and pattern scanning.
All state is owned by one instance; handlers run to completion one at a time.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Optional, Tuple

from gap_and_go.core.clock import SessionClock
from gap_and_go.core.config import Config
from gap_and_go.core.types import (
    AdditionalTradeMode,
    Bar,
    DayPhase,
    GapType,
    PatternOrder,
    Position,
    Trade,
    TradeRecord,
)
from gap_and_go.execution.base import ExecutionGateway, PositionListener, SymbolInfo
from gap_and_go.execution.order_lifecycle import Adjudication, OrderLifecycleManager
from gap_and_go.risk.performance_guard import PerformanceGuard
from gap_and_go.risk.sizer import RiskSizer
from gap_and_go.strategies.bar_buffer import BarBuffer
from gap_and_go.strategies.gap_detector import GapDetector
from gap_and_go.strategies.pattern_matcher import PatternMatcher

logger = logging.getLogger("gap_and_go.session")


@dataclass
class TradingDay:
    """State that lives for one local trading date."""
    day: Optional[date] = None
    phase: DayPhase = DayPhase.AWAITING_GAP
    trades_taken: int = 0
    performance_checked: bool = False
    records: List[TradeRecord] = field(default_factory=list)


@dataclass
class TradingYear:
    year: Optional[int] = None
    records: List[TradeRecord] = field(default_factory=list)


class SessionController(PositionListener):
    """Gap-and-go decision engine for one symbol."""

    def __init__(
        self,
        config: Config,
        gateway: ExecutionGateway,
        clock: Optional[SessionClock] = None,
        symbol_info: Optional[SymbolInfo] = None,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.config = config
        self.gateway = gateway
        self.clock = clock or SessionClock(config.timezone)
        self.symbol_info = symbol_info or gateway.symbol_info()
        self.notify = notify
        self.interval = timedelta(minutes=config.bar_minutes)

        self.bars = BarBuffer()
        self.gap_detector = GapDetector()
        self.matcher = PatternMatcher(self.symbol_info.pip_size, self.interval)
        self.sizer = RiskSizer(config.risk_per_trade_usd, self.symbol_info)
        self.lifecycle = OrderLifecycleManager(gateway, self.symbol_info, self.interval, config.label_prefix)
        self.guard = PerformanceGuard(
            enabled=config.enable_performance_protection,
            min_profit_factor=config.min_profit_factor,
            min_average_trade=config.min_average_trade,
            checkpoint_month=config.checkpoint_month,
            checkpoint_day=config.checkpoint_day,
        )
        self.today = TradingDay()
        self.this_year = TradingYear()
        self._quote: Optional[Tuple[float, float]] = None
        self._registered = False

    # ----- listener registration -----

    def start(self) -> "SessionController":
        if not self._registered:
            self.gateway.add_position_listener(self)
            self._registered = True
        return self

    def stop(self) -> None:
        if self._registered:
            self.gateway.remove_position_listener(self)
            self._registered = False

    def __enter__(self) -> "SessionController":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ----- read-only views -----

    @property
    def gap(self) -> GapType:
        return self.gap_detector.gap

    @property
    def trades_today(self) -> int:
        return self.today.trades_taken

    @property
    def daily_records(self) -> List[TradeRecord]:
        return list(self.today.records)

    @property
    def year_records(self) -> List[TradeRecord]:
        return list(self.this_year.records)

    @property
    def suspended(self) -> bool:
        return self.guard.suspended

    @property
    def pending_orders(self) -> List[PatternOrder]:
        return self.lifecycle.pending

    # ----- events -----

    def on_tick(self, bid: float, ask: float) -> None:
        self._quote = (bid, ask)

    def on_bar_closed(self, bar: Bar, ema_value: Optional[float]) -> None:
        local = bar.open_time_local
        if self.this_year.year != local.year:
            self._start_new_year(local.year)
        if self.today.day != local.date():
            self._start_new_day(local)
        if not self.today.performance_checked:
            self._check_performance(local)
        if self.guard.suspended:
            return

        self._adjudicate(bar)
        self._liquidate_if_session_over(bar)

        tod = local.time()
        if self._trade_cap_reached():
            return
        if tod >= self.config.entry_limit_time:
            return
        if not self.in_session(tod):
            return

        if self.today.phase is DayPhase.AWAITING_GAP:
            if self.gap_detector.update(bar.high, bar.low, ema_value):
                self.today.phase = DayPhase.GAP_RESOLVED
        self.bars.append(bar)
        if self.gap is GapType.NONE or len(self.bars) < 3:
            return
        for setup in self.matcher.scan(self.bars.windows(3), self.gap, self.can_trade):
            size = self.sizer.size(setup.entry_price, setup.stop_loss)
            order = self.lifecycle.place(setup, size, local)
            if order is None:
                continue
            self.today.trades_taken += 1
            self._notify(f"{order.side.value} stop {self.config.symbol} @ {order.entry_price:.5f} "
                         f"size={order.size} SL={order.stop_loss:.5f} TP={order.take_profit:.5f}")
            if order.position_id:
                self._record_open(order.position_id, local, order.is_long, order.intended_entry_price)

    def on_position_opened(self, position: Position) -> None:
        if not self.lifecycle.owns_label(position.label):
            return
        order = self.lifecycle.on_position_opened(position)
        original = order.intended_entry_price if order else position.entry_price
        self._record_open(position.position_id, self.clock.to_local(position.entry_time),
                          position.side.is_long, original)

    def on_position_closed(self, trade: Trade) -> None:
        if not self.lifecycle.owns_label(trade.label):
            return
        self.lifecycle.on_position_closed(trade)
        record = self._find_record(trade.position_id)
        if record is None:
            # opened before this engine instance started
            record = TradeRecord(
                id=trade.position_id,
                entry_time_local=self.clock.to_local(trade.entry_time),
                is_long=trade.side.is_long,
                original_entry_price=trade.entry_price,
            )
            if self.this_year.year is None or record.entry_time_local.year == self.this_year.year:
                self.this_year.records.append(record)
        record.is_closed = True
        record.net_profit = trade.net_profit
        record.gross_profit = trade.gross_profit
        logger.info("Position %s closed: net=%.2f (%s)", trade.position_id, trade.net_profit, trade.exit_reason)

    # ----- policy -----

    def in_session(self, tod: time) -> bool:
        return self.config.session_start <= tod <= self.config.session_end

    def _trade_cap_reached(self) -> bool:
        if self.config.unlimited_trades:
            return False
        return self.today.trades_taken >= self.config.max_trades_per_day

    def additional_trade_allowed(self) -> bool:
        """
        First trade of the day is always allowed. Conservative mode then only adds
        while price has not moved against the last trade's intended entry.
        """
        if not self.today.records:
            return True
        if self.config.additional_trade_mode is AdditionalTradeMode.AGGRESSIVE:
            return True
        last = self.today.records[-1]
        bid, ask = self._current_quote()
        if last.is_long:
            return bid >= last.original_entry_price
        return ask <= last.original_entry_price

    def can_trade(self) -> bool:
        return not self.guard.suspended and not self._trade_cap_reached() and self.additional_trade_allowed()

    def _current_quote(self) -> Tuple[float, float]:
        if self._quote is None:
            self._quote = self.gateway.best_bid_ask()
        return self._quote

    # ----- internals -----

    def _adjudicate(self, bar: Bar) -> None:
        for result in self.lifecycle.adjudicate(bar):
            if result.outcome is Adjudication.INVALIDATED:
                self.today.trades_taken = max(0, self.today.trades_taken - 1)
            elif result.outcome is Adjudication.ESCALATION_FAILED:
                self.today.trades_taken = max(0, self.today.trades_taken - 1)
            elif result.outcome is Adjudication.ESCALATED:
                order = result.order
                self._record_open(order.position_id, bar.open_time_local + self.interval,
                                  order.is_long, order.intended_entry_price)

    def _liquidate_if_session_over(self, bar: Bar) -> None:
        if self.today.phase is DayPhase.SESSION_CLOSED:
            return
        bar_close = (bar.open_time_local + self.interval).time()
        if bar_close < self.config.session_end and bar.open_time_local.time() <= self.config.session_end:
            return
        failed = 0
        try:
            self.lifecycle.cancel_all_pending("session end")
            positions = self.gateway.open_positions(self.config.label_prefix)
            for position in positions:
                result = self.gateway.close_position(position.position_id)
                if not result.success:
                    failed += 1
                    logger.warning("Session-end close of %s failed: %s", position.position_id, result.message)
        except Exception as e:
            logger.exception("Session-end liquidation error, retrying on next bar: %s", e)
            return
        if failed or self.lifecycle.pending:
            logger.warning("Session-end liquidation incomplete, retrying on next bar")
            return
        self.today.phase = DayPhase.SESSION_CLOSED
        logger.info("Session end %s: liquidated %d position(s)", bar.open_time_local.date(), len(positions))

    def _record_open(self, position_id: str, entry_time_local: datetime, is_long: bool,
                     original_entry_price: float) -> None:
        if self._find_record(position_id) is not None:
            return
        record = TradeRecord(
            id=position_id,
            entry_time_local=entry_time_local,
            is_long=is_long,
            original_entry_price=original_entry_price,
        )
        self.today.records.append(record)
        self.this_year.records.append(record)

    def _find_record(self, position_id: str) -> Optional[TradeRecord]:
        for record in reversed(self.this_year.records):
            if record.id == position_id:
                return record
        return None

    def _start_new_year(self, year: int) -> None:
        logger.info("Starting year %d", year)
        self.this_year = TradingYear(year=year)
        self.guard.start_year(year)

    def _start_new_day(self, local: datetime) -> None:
        logger.debug("Starting trading day %s", local.date())
        self.today = TradingDay(day=local.date())
        self.bars.clear()
        self.matcher.reset()
        self.gap_detector.reset()
        self.lifecycle.purge_resolved()
        self._quote = None

    def _mark_to_market(self) -> None:
        """Open records carry current unrealized profit as their net profit."""
        open_ids = {r.id: r for r in self.this_year.records if not r.is_closed}
        if not open_ids:
            return
        for position in self.gateway.open_positions(self.config.label_prefix):
            record = open_ids.get(position.position_id)
            if record is not None:
                record.net_profit = position.unrealized_pnl

    def _check_performance(self, now: datetime) -> None:
        if not self.config.enable_performance_protection or self.guard.suspended:
            self.today.performance_checked = True
            return
        try:
            self._mark_to_market()
        except Exception as e:
            logger.exception("Performance check postponed, open positions unavailable: %s", e)
            return
        self.today.performance_checked = True
        if self.guard.check_and_maybe_suspend(now, self.this_year.records):
            self.lifecycle.cancel_all_pending("performance suspension")
            self._notify(f"Trading suspended for {now.year}: performance below thresholds")

    def _notify(self, text: str) -> None:
        if self.notify is not None:
            self.notify(text)
