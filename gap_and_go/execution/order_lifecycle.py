"""
Pattern order lifecycle: stop-entry placement, fourth-bar adjudication and
post-fill SL/TP assignment.

On the bar exactly one interval after the confirming bar, a still-pending
order is adjudicated:
  - inside bar        -> cancel, re-enter at market, SL/TP moved to keep the
                         original distances (ESCALATED, then FILLED)
  - break against it  -> cancel, no replacement (INVALIDATED)
  - anything else     -> left pending
"""

from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional

from gap_and_go.core.types import Bar, OrderState, PatternOrder, PatternSetup, PatternSignature, Position, Trade
from gap_and_go.execution.base import ExecutionGateway, SymbolInfo

logger = logging.getLogger("gap_and_go.execution.lifecycle")


class Adjudication(str, Enum):
    HOLD = "hold"
    ESCALATED = "escalated"
    INVALIDATED = "invalidated"
    ESCALATION_FAILED = "escalation_failed"


@dataclass
class AdjudicationResult:
    outcome: Adjudication
    order: PatternOrder
    bar: Bar


class OrderLifecycleManager:
    """Owns pattern orders keyed by their pattern signature."""

    def __init__(
        self,
        gateway: ExecutionGateway,
        symbol_info: SymbolInfo,
        interval: timedelta,
        label_prefix: str = "GapGo",
    ):
        self.gateway = gateway
        self.symbol_info = symbol_info
        self.interval = interval
        self.label_prefix = label_prefix
        self._orders: Dict[PatternSignature, PatternOrder] = {}
        self._by_order_id: Dict[str, PatternSignature] = {}
        self._by_position_id: Dict[str, PatternSignature] = {}

    def new_label(self) -> str:
        return f"{self.label_prefix}-{uuid.uuid4().hex[:16]}"

    def owns_label(self, label: str) -> bool:
        return bool(label) and label.startswith(self.label_prefix)

    def get(self, signature: PatternSignature) -> Optional[PatternOrder]:
        return self._orders.get(signature)

    @property
    def orders(self) -> List[PatternOrder]:
        return list(self._orders.values())

    @property
    def pending(self) -> List[PatternOrder]:
        return [o for o in self._orders.values() if o.state.is_pending]

    def _register(self, order: PatternOrder) -> None:
        self._orders[order.signature] = order
        self._by_order_id[order.order_id] = order.signature
        if order.position_id:
            self._by_position_id[order.position_id] = order.signature

    def _to_pips(self, distance: float) -> float:
        return distance / self.symbol_info.pip_size

    def place(self, setup: PatternSetup, size: float, created_at: datetime) -> Optional[PatternOrder]:
        """
        Submit the stop entry for a setup. Returns None if the setup already has an
        order or the gateway rejected it.
        """
        if setup.signature in self._orders:
            logger.debug("Order already exists for %s", setup.signature)
            return None
        label = self.new_label()
        result = self.gateway.place_stop_order(setup.side, size, setup.entry_price, label)
        if not result.success or not result.order_id:
            logger.warning("Stop order rejected (%s @ %.5f x %s): %s",
                           setup.side.value, setup.entry_price, size, result.message)
            return None
        order = PatternOrder(
            signature=setup.signature,
            confirming_bar=setup.confirming_bar,
            order_id=result.order_id,
            entry_price=setup.entry_price,
            stop_loss=setup.stop_loss,
            take_profit=setup.take_profit,
            size=size,
            is_long=setup.is_long,
            created_at=created_at,
        )
        self._register(order)
        logger.info("Placed %s stop %s @ %.5f size=%s SL=%.5f TP=%.5f",
                    order.side.value, order.order_id, order.entry_price, size, order.stop_loss, order.take_profit)

        if result.position_id:
            self._apply_fill(order, result.position_id)
            return order
        mod = self.gateway.modify_stop_loss_take_profit_pips(
            order.order_id, self._to_pips(order.stop_distance), self._to_pips(order.target_distance)
        )
        if not mod.success:
            logger.warning("Could not attach SL/TP pips to order %s: %s", order.order_id, mod.message)
        return order

    def _apply_fill(self, order: PatternOrder, position_id: str) -> None:
        """Pip-based brackets may drift from the intended levels; reassert absolute prices."""
        order.position_id = position_id
        order.state = OrderState.FILLED
        self._by_position_id[position_id] = order.signature
        mod = self.gateway.modify_stop_loss_take_profit(position_id, order.stop_loss, order.take_profit)
        if not mod.success:
            logger.warning("Could not set SL/TP on position %s: %s", position_id, mod.message)

    def on_position_opened(self, position: Position) -> Optional[PatternOrder]:
        """Mark the owning pending order filled. Returns it, or None if not ours or already handled."""
        signature = self._by_order_id.get(position.order_id) if position.order_id else None
        if signature is None:
            signature = self._by_position_id.get(position.position_id)
        if signature is None:
            return None
        order = self._orders[signature]
        if not order.state.is_pending:
            return None
        self._apply_fill(order, position.position_id)
        logger.info("Order %s filled as position %s @ %.5f", order.order_id, position.position_id,
                    position.entry_price)
        return order

    def on_position_closed(self, trade: Trade) -> Optional[PatternOrder]:
        signature = self._by_position_id.get(trade.position_id)
        if signature is None:
            return None
        order = self._orders[signature]
        if order.state is OrderState.CLOSED:
            return None
        order.state = OrderState.CLOSED
        return order

    def adjudicate(self, bar: Bar) -> List[AdjudicationResult]:
        """Apply the fourth-bar rule to every pending order confirmed exactly one interval before `bar`."""
        results: List[AdjudicationResult] = []
        for order in list(self._orders.values()):
            if not order.state.is_pending:
                continue
            if bar.open_time_utc - order.confirming_bar.open_time_utc != self.interval:
                continue
            order.state = OrderState.FOURTH_BAR_PENDING
            conf = order.confirming_bar
            if bar.high < conf.high and bar.low > conf.low:
                results.append(self._escalate(order, bar))
            elif (order.is_long and bar.low < conf.low) or (not order.is_long and bar.high > conf.high):
                results.append(self._invalidate(order, bar))
            else:
                results.append(AdjudicationResult(Adjudication.HOLD, order, bar))
        return results

    def _escalate(self, order: PatternOrder, bar: Bar) -> AdjudicationResult:
        cancel = self.gateway.cancel_order(order.order_id)
        if not cancel.success:
            logger.warning("Inside bar but cancel of %s failed, keeping it: %s", order.order_id, cancel.message)
            return AdjudicationResult(Adjudication.HOLD, order, bar)
        order.state = OrderState.ESCALATED
        result = self.gateway.execute_market_order(order.side, order.size, self.new_label())
        if not result.success or not result.position_id:
            logger.warning("Inside-bar market order failed for %s: %s", order.order_id, result.message)
            order.state = OrderState.CANCELED
            return AdjudicationResult(Adjudication.ESCALATION_FAILED, order, bar)

        fill = result.avg_price if result.avg_price else bar.close
        replacement = order.refilled(fill, result.position_id, result.order_id or result.position_id)
        del self._by_order_id[order.order_id]
        self._register(replacement)
        mod = self.gateway.modify_stop_loss_take_profit(
            replacement.position_id, replacement.stop_loss, replacement.take_profit
        )
        if not mod.success:
            logger.warning("Could not set SL/TP on position %s: %s", replacement.position_id, mod.message)
        logger.info("Inside bar: %s escalated to market @ %.5f SL=%.5f TP=%.5f",
                    order.order_id, fill, replacement.stop_loss, replacement.take_profit)
        return AdjudicationResult(Adjudication.ESCALATED, replacement, bar)

    def _invalidate(self, order: PatternOrder, bar: Bar) -> AdjudicationResult:
        cancel = self.gateway.cancel_order(order.order_id)
        if not cancel.success:
            logger.warning("Break against trade but cancel of %s failed: %s", order.order_id, cancel.message)
            return AdjudicationResult(Adjudication.HOLD, order, bar)
        order.state = OrderState.INVALIDATED
        logger.info("Break against trade: %s canceled", order.order_id)
        return AdjudicationResult(Adjudication.INVALIDATED, order, bar)

    def cancel_all_pending(self, reason: str = "") -> int:
        """Cancel every pending pattern order. Returns how many were canceled."""
        canceled = 0
        for order in self.pending:
            result = self.gateway.cancel_order(order.order_id)
            if result.success:
                order.state = OrderState.CANCELED
                canceled += 1
            else:
                logger.warning("Cancel of %s failed: %s", order.order_id, result.message)
        if canceled:
            logger.info("Canceled %d pending order(s)%s", canceled, f" ({reason})" if reason else "")
        return canceled

    def purge_resolved(self) -> None:
        """Forget orders in a terminal state."""
        terminal = (OrderState.INVALIDATED, OrderState.CANCELED, OrderState.CLOSED)
        for signature, order in list(self._orders.items()):
            if order.state in terminal:
                del self._orders[signature]
                self._by_order_id.pop(order.order_id, None)
                if order.position_id:
                    self._by_position_id.pop(order.position_id, None)
