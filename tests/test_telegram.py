"""Telegram notifier: no network, requests.post is patched."""

from unittest.mock import MagicMock

import requests
from gap_and_go.utils import telegram
from gap_and_go.utils.telegram import TelegramNotifier, send_telegram


def test_unconfigured_skips_request(monkeypatch):
    post = MagicMock()
    monkeypatch.setattr(telegram.requests, "post", post)
    assert send_telegram("hi") is False
    post.assert_not_called()
    assert not TelegramNotifier().enabled


def test_notifier_prefixes_symbol(monkeypatch):
    post = MagicMock(return_value=MagicMock(status_code=200))
    monkeypatch.setattr(telegram.requests, "post", post)
    TelegramNotifier("token", "chat", prefix="BTCUSDT")("stop placed")
    assert post.call_args.kwargs["json"] == {"chat_id": "chat", "text": "[BTCUSDT] stop placed"}


def test_http_failure_is_not_raised(monkeypatch):
    monkeypatch.setattr(telegram.requests, "post", MagicMock(return_value=MagicMock(status_code=500, text="oops")))
    assert send_telegram("hi", "token", "chat") is False


def test_network_error_is_not_raised(monkeypatch):
    monkeypatch.setattr(telegram.requests, "post", MagicMock(side_effect=requests.ConnectionError("down")))
    assert send_telegram("hi", "token", "chat") is False
