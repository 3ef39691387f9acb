"""Telegram notifications for engine diagnostics. Never log token or chat_id."""

from __future__ import annotations
import logging

import requests

logger = logging.getLogger("gap_and_go.utils.telegram")


def send_telegram(text: str, bot_token: str = "", chat_id: str = "", timeout: float = 10.0) -> bool:
    """Send message to Telegram. Returns True on success; failures are logged, never raised."""
    if not bot_token or not chat_id:
        logger.debug("Telegram not configured, skipping message (len=%d)", len(text))
        return False
    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
    try:
        r = requests.post(url, json={"chat_id": chat_id, "text": text}, timeout=timeout)
    except requests.RequestException as e:
        logger.warning("Telegram error: %s", type(e).__name__)
        return False
    if r.status_code != 200:
        logger.warning("Telegram send failed: %s %s", r.status_code, r.text[:200])
        return False
    return True


class TelegramNotifier:
    """Callable notifier prefixed with the symbol, usable as the engine's notify hook."""

    def __init__(self, bot_token: str = "", chat_id: str = "", prefix: str = ""):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.prefix = prefix

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def __call__(self, text: str) -> None:
        message = f"[{self.prefix}] {text}" if self.prefix else text
        send_telegram(message, self.bot_token, self.chat_id)
