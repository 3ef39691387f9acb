"""Startup bar selection of the live loop."""

from datetime import date

import pandas as pd
from gap_and_go.core.clock import SessionClock
from gap_and_go.core.config import Config
from gap_and_go.indicators.session_ema import attach_session_ema

from main import startup_rows


def _closed(utc_times, config):
    """Kline frame on 2024-03-05 (New York = UTC-5) with a one-bar EMA so every session bar is defined."""
    df = pd.DataFrame({
        "time": pd.to_datetime([f"2024-03-05 {t}" for t in utc_times]),
        "open": 100.0, "high": 101.0, "low": 99.0, "close": 100.5,
    })
    df = SessionClock(config.timezone).localize_frame(df)
    return attach_session_ema(df, 1, config.session_start, config.session_end)


def _local_times(rows):
    return [t.strftime("%H:%M") for t in rows["time_local"]]


def test_mid_session_start_includes_opening_bar():
    config = Config()
    closed = _closed(["14:25", "14:30", "14:35", "15:40"], config)
    rows = startup_rows(closed, config, date(2024, 3, 5))
    assert _local_times(rows) == ["09:30", "10:40"]


def test_start_at_session_open_feeds_single_bar():
    config = Config()
    closed = _closed(["14:20", "14:25", "14:30"], config)
    rows = startup_rows(closed, config, date(2024, 3, 5))
    assert _local_times(rows) == ["09:30"]


def test_start_before_session_feeds_latest_only():
    config = Config()
    closed = _closed(["14:15", "14:20", "14:25"], config)
    assert _local_times(startup_rows(closed, config, date(2024, 3, 5))) == ["09:25"]


def test_opening_bar_must_be_from_today():
    config = Config()
    closed = _closed(["14:30", "14:35", "15:40"], config)
    assert _local_times(startup_rows(closed, config, date(2024, 3, 6))) == ["10:40"]
