"""Indicators: session-aware EMA."""

from gap_and_go.indicators.session_ema import attach_session_ema, session_ema

__all__ = ["attach_session_ema", "session_ema"]
