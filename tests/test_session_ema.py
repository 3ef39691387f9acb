"""Unit tests for the session-aware EMA and kline localization."""

from datetime import time

import numpy as np
import pandas as pd
import pytest
from gap_and_go.core.clock import SessionClock
from gap_and_go.indicators.session_ema import attach_session_ema, in_session_mask, session_ema

START, END = time(9, 30), time(16, 15)


def _frame(rows):
    """rows: (UTC 'HH:MM' on 2024-03-05, close). New York is UTC-5 on that date."""
    df = pd.DataFrame({
        "time": pd.to_datetime([f"2024-03-05 {t}" for t, _ in rows]),
        "close": [c for _, c in rows],
    })
    return SessionClock("America/New_York").localize_frame(df)


def test_localize_frame_adds_local_times():
    df = _frame([("14:30", 10.0)])
    assert str(df["time"].dt.tz) == "UTC"
    assert df["time_local"].iloc[0].hour == 9
    assert df["time_local"].iloc[0].minute == 30


def test_in_session_mask_is_inclusive():
    df = _frame([("14:25", 1.0), ("14:30", 1.0), ("21:15", 1.0), ("21:20", 1.0)])
    assert in_session_mask(df["time_local"], START, END).tolist() == [False, True, True, False]


def test_warm_up_then_recursive_average():
    df = _frame([("14:30", 10.0), ("14:35", 11.0), ("14:40", 12.0), ("14:45", 13.0)])
    ema = session_ema(df, 3, START, END)
    assert np.isnan(ema.iloc[0]) and np.isnan(ema.iloc[1])
    # alpha = 2 / (3 + 1)
    assert ema.iloc[2] == pytest.approx(11.25)
    assert ema.iloc[3] == pytest.approx(12.125)


def test_out_of_session_bars_carry_value_forward():
    df = _frame([
        ("14:25", 500.0),
        ("14:30", 10.0), ("14:35", 11.0), ("14:40", 12.0),
        ("21:20", 900.0),
    ])
    ema = session_ema(df, 3, START, END)
    assert np.isnan(ema.iloc[0])
    assert ema.iloc[3] == pytest.approx(11.25)
    assert ema.iloc[4] == pytest.approx(11.25)


def test_attach_session_ema_leaves_input_untouched():
    df = _frame([("14:30", 10.0)])
    out = attach_session_ema(df, 1, START, END)
    assert "ema" not in df.columns
    assert out["ema"].iloc[0] == pytest.approx(10.0)


def test_invalid_period():
    with pytest.raises(ValueError):
        session_ema(_frame([("14:30", 10.0)]), 0, START, END)
