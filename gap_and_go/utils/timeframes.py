"""Timeframe and session time-of-day parsing."""

from __future__ import annotations
from datetime import time
from typing import Tuple


def timeframe_minutes(tf: str) -> int:
    """Convert Binance-style timeframe (e.g. '5m', '1h', '1d') to minutes."""
    tf = tf.strip().lower()
    if tf.endswith("m"):
        return int(tf[:-1])
    if tf.endswith("h"):
        return int(tf[:-1]) * 60
    if tf.endswith("d"):
        return int(tf[:-1]) * 60 * 24
    raise ValueError(f"Unsupported timeframe: {tf}")


def parse_time_of_day(text: str) -> time:
    """Parse 'HH:MM' (or 'HH:MM:SS') into a time. Raises ValueError on anything else."""
    parts = text.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time of day: {text!r}")
    values = [int(p) for p in parts]
    try:
        return time(*values)
    except ValueError as e:
        raise ValueError(f"Invalid time of day: {text!r}") from e


def parse_session(text: str) -> Tuple[time, time]:
    """Parse 'HH:MM-HH:MM' into (start, end). Start must be before end."""
    parts = text.split("-")
    if len(parts) != 2:
        raise ValueError(f"Invalid session window: {text!r}")
    start, end = parse_time_of_day(parts[0]), parse_time_of_day(parts[1])
    if start >= end:
        raise ValueError(f"Session start must be before end: {text!r}")
    return start, end
