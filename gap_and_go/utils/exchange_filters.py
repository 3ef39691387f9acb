"""Lot size and price filter helpers from exchange info."""

from __future__ import annotations
import math
from typing import NamedTuple, Optional


class SymbolFilters(NamedTuple):
    min_qty: float
    max_qty: float
    lot_step: float
    price_tick: float


def parse_symbol_filters(symbol_info: Optional[dict]) -> SymbolFilters:
    """
    Extract min/max quantity, step size (lot_step) and tick size from symbol filters.
    Uses defaults if symbol_info is None.
    """
    min_qty = 0.001
    max_qty = 1000.0
    lot_step = 0.001
    price_tick = 0.01
    if not symbol_info:
        return SymbolFilters(min_qty, max_qty, lot_step, price_tick)
    for f in symbol_info.get("filters", []):
        if f.get("filterType") == "LOT_SIZE":
            min_qty = float(f.get("minQty", min_qty))
            max_qty = float(f.get("maxQty", max_qty))
            lot_step = float(f.get("stepSize", lot_step))
        if f.get("filterType") == "PRICE_FILTER":
            price_tick = float(f.get("tickSize", price_tick))
    return SymbolFilters(min_qty, max_qty, lot_step, price_tick)


def round_quantity(qty: float, min_qty: float, step_size: float) -> float:
    """Round down to step size; return 0 if below min_qty."""
    if qty <= 0:
        return 0.0
    rounded = math.floor(qty / step_size + 1e-9) * step_size
    if rounded < min_qty:
        return 0.0
    return round(rounded, 8)


def round_price(price: float, tick_size: float) -> float:
    """Round price to exchange tick."""
    return round(round(price / tick_size) * tick_size, 8)
