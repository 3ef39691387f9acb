"""Utils: Telegram, timeframes and session times, exchange filters."""

from gap_and_go.utils.telegram import send_telegram, TelegramNotifier
from gap_and_go.utils.timeframes import timeframe_minutes, parse_session, parse_time_of_day

__all__ = ["send_telegram", "TelegramNotifier", "timeframe_minutes", "parse_session", "parse_time_of_day"]
