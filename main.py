#!/usr/bin/env python3
"""
Gap-and-go CLI: live | check-config
Usage:
  python main.py live [--config config.yaml]
  python main.py check-config [--config config.yaml]
"""

from __future__ import annotations
import argparse
import logging
import sys
import time
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from gap_and_go.core.clock import SessionClock
from gap_and_go.core.config import Config, ConfigError, load_config
from gap_and_go.core.logger import setup_logging
from gap_and_go.core.types import Bar
from gap_and_go.execution.binance_futures import BinanceFuturesGateway
from gap_and_go.indicators.session_ema import attach_session_ema, in_session_mask
from gap_and_go.strategies.session_controller import SessionController
from gap_and_go.utils.telegram import TelegramNotifier

KLINE_HISTORY = 1500
POLL_SECONDS = 2.0

logger = logging.getLogger("gap_and_go.main")


def _load(config_path: Optional[Path]) -> Optional[Config]:
    try:
        return load_config(config_path, ROOT)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return None


def _bar_from_row(row: pd.Series) -> Bar:
    return Bar(
        open=float(row["open"]),
        high=float(row["high"]),
        low=float(row["low"]),
        close=float(row["close"]),
        open_time_utc=row["time"].to_pydatetime(),
        open_time_local=row["time_local"].to_pydatetime(),
    )


def startup_rows(closed: pd.DataFrame, config: Config, today: date) -> pd.DataFrame:
    """
    Rows fed on the first loop iteration: the latest closed bar, preceded by
    today's first in-session bar with a defined EMA so the gap is classified
    from the session open after a mid-session start.
    """
    latest = closed.tail(1)
    local = closed["time_local"]
    mask = (
        (local.dt.date == today)
        & in_session_mask(local, config.session_start, config.session_end)
        & closed["ema"].notna()
    )
    opening = closed[mask].head(1)
    if opening.empty or opening.index[0] == latest.index[0]:
        return latest
    logger.info("Mid-session start: classifying today's gap from the %s bar", opening["time_local"].iloc[0])
    return pd.concat([opening, latest])


def run_check_config(config_path: Optional[Path]) -> int:
    """Validate configuration and print the effective trading parameters."""
    config = _load(config_path)
    if config is None:
        return 2
    print("--- Gap-and-go configuration ---")
    print(f"Symbol: {config.symbol} ({config.timeframe}) testnet={config.use_testnet}")
    print(f"Session: {config.session_start}-{config.session_end} {config.timezone}, entries until {config.entry_limit_time}")
    print(f"EMA period: {config.ema_period}")
    max_trades = "unlimited" if config.unlimited_trades else config.max_trades_per_day
    print(f"Max trades/day: {max_trades}, additional trades: {config.additional_trade_mode.value}")
    print(f"Risk per trade: ${config.risk_per_trade_usd:.2f}")
    print(f"Performance protection: {config.enable_performance_protection} "
          f"(PF >= {config.min_profit_factor}, avg trade >= {config.min_average_trade}, "
          f"from {config.checkpoint_month:02d}-{config.checkpoint_day:02d})")
    print(f"API keys: {'SET' if config.binance_api_key and config.binance_api_secret else 'NOT SET'}")
    return 0


def run_live(config_path: Optional[Path]) -> int:
    """Run the live loop: feed closed bars, quotes and position events to the engine."""
    config = _load(config_path)
    if config is None:
        return 2
    setup_logging(config.log_level, config.log_dir, config.log_file)
    if not config.binance_api_key or not config.binance_api_secret:
        logger.error("Missing BINANCE_API_KEY or BINANCE_API_SECRET in .env")
        return 1
    gateway = BinanceFuturesGateway(
        config.binance_api_key,
        config.binance_api_secret,
        config.symbol,
        testnet=config.use_testnet,
        pip_size=config.pip_size,
        pip_value=config.pip_value,
    )
    gateway.set_leverage(config.leverage)
    clock = SessionClock(config.timezone)
    notifier = TelegramNotifier(config.telegram_bot_token, config.telegram_chat_id, prefix=config.symbol)
    engine = SessionController(config, gateway, clock, notify=notifier)
    last_bar_time = None
    notifier(f"Gap-and-go starting | testnet={config.use_testnet} | leverage={config.leverage}x")

    with engine:
        while True:
            try:
                bid, ask = gateway.best_bid_ask()
                engine.on_tick(bid, ask)
                gateway.poll()

                df = gateway.get_klines(config.timeframe, limit=KLINE_HISTORY)
                df = clock.localize_frame(df)
                df = attach_session_ema(df, config.ema_period, config.session_start, config.session_end)
                closed = df.iloc[:-1]  # last kline is still forming
                if last_bar_time is None:
                    fresh = startup_rows(closed, config, clock.now_local().date())
                else:
                    fresh = closed[closed["time"] > last_bar_time]
                for _, row in fresh.iterrows():
                    ema = float(row["ema"]) if not pd.isna(row["ema"]) else None
                    engine.on_bar_closed(_bar_from_row(row), ema)
                    last_bar_time = row["time"]
                time.sleep(POLL_SECONDS)
            except KeyboardInterrupt:
                logger.info("Shutdown by user")
                notifier("Gap-and-go stopped (user request).")
                break
            except Exception as e:
                logger.exception("Live loop error: %s", e)
                time.sleep(5)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Gap-and-go trading engine")
    parser.add_argument("mode", choices=["live", "check-config"], help="Run live or validate config")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    args = parser.parse_args()
    if args.mode == "check-config":
        return run_check_config(args.config)
    return run_live(args.config)


if __name__ == "__main__":
    sys.exit(main())
