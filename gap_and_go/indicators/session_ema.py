"""
Session-aware EMA: the average only advances on bars inside the trading session.
No lookahead; warm-up bars are NaN.
"""

from __future__ import annotations
from datetime import time

import numpy as np
import pandas as pd


def in_session_mask(times_local: pd.Series, session_start: time, session_end: time) -> pd.Series:
    """True for timestamps whose local time-of-day lies in [session_start, session_end]."""
    tod = times_local.dt.time
    return tod.apply(lambda t: session_start <= t <= session_end).astype(bool)


def session_ema(
    df: pd.DataFrame,
    period: int,
    session_start: time,
    session_end: time,
    time_col: str = "time_local",
) -> pd.Series:
    """
    EMA of `close` over in-session bars only (span=period, adjust=False).
    Bars outside the session carry the last in-session value forward.
    The first period-1 in-session bars are NaN.
    """
    if period <= 0:
        raise ValueError(f"period must be > 0, got {period}")
    mask = in_session_mask(df[time_col], session_start, session_end)
    closes = df.loc[mask, "close"].astype(float)
    ema = closes.ewm(span=period, adjust=False, min_periods=period).mean()
    out = pd.Series(np.nan, index=df.index, dtype=float)
    out.loc[ema.index] = ema
    return out.ffill()


def attach_session_ema(
    df: pd.DataFrame,
    period: int,
    session_start: time,
    session_end: time,
    time_col: str = "time_local",
) -> pd.DataFrame:
    """Return a copy of the frame with an `ema` column."""
    df = df.copy()
    df["ema"] = session_ema(df, period, session_start, session_end, time_col)
    return df
