"""Execution: gateway abstraction, pattern order lifecycle and Binance Futures gateway."""

from gap_and_go.execution.base import ExecutionGateway, OrderResult, PositionListener, SymbolInfo
from gap_and_go.execution.order_lifecycle import Adjudication, AdjudicationResult, OrderLifecycleManager
from gap_and_go.execution.binance_futures import BinanceFuturesGateway

__all__ = [
    "ExecutionGateway",
    "OrderResult",
    "PositionListener",
    "SymbolInfo",
    "Adjudication",
    "AdjudicationResult",
    "OrderLifecycleManager",
    "BinanceFuturesGateway",
]
