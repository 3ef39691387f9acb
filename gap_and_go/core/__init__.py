"""Core: config, types, clock, logging."""

from gap_and_go.core.config import load_config, Config, ConfigError
from gap_and_go.core.types import (
    AdditionalTradeMode,
    Bar,
    DayPhase,
    GapType,
    OrderState,
    PatternOrder,
    PatternSetup,
    PatternSignature,
    Position,
    SignalSide,
    Trade,
    TradeRecord,
    YearPhase,
)
from gap_and_go.core.clock import SessionClock
from gap_and_go.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "ConfigError",
    "AdditionalTradeMode",
    "Bar",
    "DayPhase",
    "GapType",
    "OrderState",
    "PatternOrder",
    "PatternSetup",
    "PatternSignature",
    "Position",
    "SignalSide",
    "Trade",
    "TradeRecord",
    "YearPhase",
    "SessionClock",
    "setup_logging",
]
