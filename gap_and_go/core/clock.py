"""UTC to session-local time conversion."""

from __future__ import annotations
from datetime import datetime, timezone

import pandas as pd
import pytz


class SessionClock:
    """Converts UTC timestamps into the trading session's local timezone."""

    def __init__(self, tz_name: str = "America/New_York"):
        self.tz = pytz.timezone(tz_name)

    def to_local(self, utc_dt: datetime) -> datetime:
        """Naive datetimes are treated as UTC."""
        if utc_dt.tzinfo is None:
            utc_dt = utc_dt.replace(tzinfo=timezone.utc)
        return utc_dt.astimezone(self.tz)

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)

    def now_local(self) -> datetime:
        return self.to_local(self.now_utc())

    def localize_frame(self, df: pd.DataFrame, time_col: str = "time") -> pd.DataFrame:
        """Return a copy of a kline frame with a tz-aware `time_local` column added."""
        df = df.copy()
        times = pd.to_datetime(df[time_col])
        if times.dt.tz is None:
            times = times.dt.tz_localize("UTC")
        df[time_col] = times
        df["time_local"] = times.dt.tz_convert(self.tz)
        return df
