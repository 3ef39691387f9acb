"""
Load configuration from config.yaml and .env. API keys only from env.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Optional

import pytz
import yaml
from dotenv import load_dotenv

from gap_and_go.core.types import AdditionalTradeMode
from gap_and_go.utils.timeframes import parse_session, parse_time_of_day, timeframe_minutes


class ConfigError(ValueError):
    """Invalid configuration. Fatal at startup."""


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Raises ConfigError on invalid values."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    elif config_path is not None:
        raise ConfigError(f"Config file not found: {config_path}")

    def env(key: str, default: Any = "") -> str:
        return os.getenv(key, str(default)).strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

    def env_int(key: str, default: int = 0) -> int:
        raw = os.getenv(key)
        if raw is None:
            return int(default)
        try:
            return int(raw)
        except ValueError as e:
            raise ConfigError(f"{key} must be an integer, got {raw!r}") from e

    def env_float(key: str, default: float = 0.0) -> float:
        raw = os.getenv(key)
        if raw is None:
            return float(default)
        try:
            return float(raw)
        except ValueError as e:
            raise ConfigError(f"{key} must be a number, got {raw!r}") from e

    def env_opt_float(key: str, default: Optional[float]) -> Optional[float]:
        raw = os.getenv(key)
        if raw is None:
            return None if default is None else float(default)
        return env_float(key)

    api = data.get("api", {})
    strategy = data.get("strategy", {})
    risk = data.get("risk", {})
    execution = data.get("execution", {})
    telegram = data.get("telegram", {})
    logging_cfg = data.get("logging", {})

    use_testnet = env_bool("USE_TESTNET", api.get("use_testnet", True))
    # Prefer dedicated testnet/mainnet keys so you can keep both in .env and switch with USE_TESTNET
    if use_testnet:
        binance_api_key = env("BINANCE_TESTNET_API_KEY") or env("BINANCE_API_KEY")
        binance_api_secret = env("BINANCE_TESTNET_API_SECRET") or env("BINANCE_API_SECRET")
    else:
        binance_api_key = env("BINANCE_MAINNET_API_KEY") or env("BINANCE_API_KEY")
        binance_api_secret = env("BINANCE_MAINNET_API_SECRET") or env("BINANCE_API_SECRET")

    return Config(
        binance_api_key=binance_api_key,
        binance_api_secret=binance_api_secret,
        use_testnet=use_testnet,
        symbol=env("SYMBOL", strategy.get("symbol", "BTCUSDT")).upper(),
        timeframe=env("TIMEFRAME", strategy.get("timeframe", "5m")),
        leverage=env_int("LEVERAGE", execution.get("leverage", 5)),
        # Strategy
        ema_period=env_int("EMA_PERIOD", strategy.get("ema_period", 20)),
        session=env("SESSION", strategy.get("session", "09:30-16:15")),
        entry_limit=env("ENTRY_LIMIT", strategy.get("entry_limit", "14:30")),
        timezone=env("SESSION_TIMEZONE", strategy.get("timezone", "America/New_York")),
        max_trades_per_day=env_int("MAX_TRADES_PER_DAY", strategy.get("max_trades_per_day", 5)),
        additional_trade_mode=env(
            "ADDITIONAL_TRADE_MODE", strategy.get("additional_trade_mode", "conservative")
        ),
        label_prefix=env("LABEL_PREFIX", strategy.get("label_prefix", "GapGo")),
        # Risk
        risk_per_trade_usd=env_float("RISK_PER_TRADE_USD", risk.get("risk_per_trade_usd", 100.0)),
        enable_performance_protection=env_bool(
            "ENABLE_PERFORMANCE_PROTECTION", risk.get("enable_performance_protection", True)
        ),
        min_profit_factor=env_float("MIN_PROFIT_FACTOR", risk.get("min_profit_factor", 0.8)),
        min_average_trade=env_float("MIN_AVERAGE_TRADE", risk.get("min_average_trade", 0.0)),
        performance_checkpoint=env(
            "PERFORMANCE_CHECKPOINT", risk.get("performance_checkpoint", "04-01")
        ),
        # Execution: symbol metadata overrides, exchange info otherwise
        pip_size=env_opt_float("PIP_SIZE", execution.get("pip_size")),
        pip_value=env_opt_float("PIP_VALUE", execution.get("pip_value")),
        # Telegram
        telegram_bot_token=env("TELEGRAM_BOT_TOKEN", telegram.get("bot_token", "")),
        telegram_chat_id=env("TELEGRAM_CHAT_ID", telegram.get("chat_id", "")),
        # Logging
        log_level=logging_cfg.get("level", "INFO"),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "gap_and_go.log"),
    )


def _parse_checkpoint(text: str) -> tuple[int, int]:
    parts = text.strip().split("-")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ConfigError(f"performance_checkpoint must be MM-DD, got {text!r}")
    month, day = int(parts[0]), int(parts[1])
    if not 1 <= month <= 12 or not 1 <= day <= 28:
        raise ConfigError(f"performance_checkpoint out of range: {text!r}")
    return month, day


class Config:
    """Unified configuration. Validated on construction, immutable after load."""

    __slots__ = (
        "binance_api_key", "binance_api_secret", "use_testnet", "symbol", "timeframe", "leverage",
        "ema_period", "session", "entry_limit", "timezone", "max_trades_per_day",
        "additional_trade_mode", "label_prefix",
        "risk_per_trade_usd", "enable_performance_protection", "min_profit_factor",
        "min_average_trade", "performance_checkpoint",
        "pip_size", "pip_value",
        "telegram_bot_token", "telegram_chat_id",
        "log_level", "log_dir", "log_file",
        "session_start", "session_end", "entry_limit_time", "bar_minutes",
        "checkpoint_month", "checkpoint_day",
    )

    def __init__(
        self,
        binance_api_key: str = "",
        binance_api_secret: str = "",
        use_testnet: bool = True,
        symbol: str = "BTCUSDT",
        timeframe: str = "5m",
        leverage: int = 5,
        ema_period: int = 20,
        session: str = "09:30-16:15",
        entry_limit: str = "14:30",
        timezone: str = "America/New_York",
        max_trades_per_day: int = 5,
        additional_trade_mode: str = "conservative",
        label_prefix: str = "GapGo",
        risk_per_trade_usd: float = 100.0,
        enable_performance_protection: bool = True,
        min_profit_factor: float = 0.8,
        min_average_trade: float = 0.0,
        performance_checkpoint: str = "04-01",
        pip_size: Optional[float] = None,
        pip_value: Optional[float] = None,
        telegram_bot_token: str = "",
        telegram_chat_id: str = "",
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "gap_and_go.log",
    ):
        self.binance_api_key = binance_api_key
        self.binance_api_secret = binance_api_secret
        self.use_testnet = use_testnet
        self.symbol = symbol
        self.timeframe = timeframe
        self.leverage = leverage
        self.ema_period = ema_period
        self.session = session
        self.entry_limit = entry_limit
        self.timezone = timezone
        self.max_trades_per_day = max_trades_per_day
        self.label_prefix = label_prefix
        self.risk_per_trade_usd = risk_per_trade_usd
        self.enable_performance_protection = enable_performance_protection
        self.min_profit_factor = min_profit_factor
        self.min_average_trade = min_average_trade
        self.performance_checkpoint = performance_checkpoint
        self.pip_size = pip_size
        self.pip_value = pip_value
        self.telegram_bot_token = telegram_bot_token
        self.telegram_chat_id = telegram_chat_id
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file

        try:
            self.session_start, self.session_end = parse_session(session)
            self.entry_limit_time = parse_time_of_day(entry_limit)
            self.bar_minutes = timeframe_minutes(timeframe)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        try:
            self.additional_trade_mode = AdditionalTradeMode(str(additional_trade_mode).strip().lower())
        except ValueError as e:
            raise ConfigError(f"Unknown additional_trade_mode: {additional_trade_mode!r}") from e
        if timezone not in pytz.all_timezones_set:
            raise ConfigError(f"Unknown timezone: {timezone!r}")
        if int(ema_period) <= 0:
            raise ConfigError(f"ema_period must be > 0, got {ema_period}")
        if int(max_trades_per_day) < -1:
            raise ConfigError(f"max_trades_per_day must be -1 (unlimited) or >= 0, got {max_trades_per_day}")
        if risk_per_trade_usd <= 0:
            raise ConfigError(f"risk_per_trade_usd must be > 0, got {risk_per_trade_usd}")
        if self.bar_minutes <= 0:
            raise ConfigError(f"timeframe must be positive, got {timeframe!r}")
        self.checkpoint_month, self.checkpoint_day = _parse_checkpoint(performance_checkpoint)

    @property
    def unlimited_trades(self) -> bool:
        return self.max_trades_per_day == -1
