"""Configuration module for the signal bots."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from signalbots.errors import ConfigurationError


DEFAULT_SYMBOLS = ["BTCUSDT", "BNBUSDT", "ETHUSDT", "SOLUSDT"]


@dataclass(frozen=True)
class TradingConfig:
    """Analyzer and risk thresholds.

    Passed explicitly into analyzers, the risk calculator and the pipeline;
    there is no process-wide mode switch. Defaults are the balanced profile.
    """

    min_confidence: int = 75
    high_confidence: int = 80

    # EMA
    ema_fast_period: int = 12
    ema_slow_period: int = 26
    ema_min_separation: float = 0.005
    ema_min_trend_strength: float = 0.01

    # Validation scores used to shape confidence
    min_approval_score: int = 60
    ema_separation_score: int = 20
    volume_low_score: int = 40
    rejected_confidence: int = 50

    # Risk (percent of entry price)
    risk_base_percent: float = 0.25
    risk_max_percent: float = 0.75
    reward_multiplier: float = 2.0

    # Volume
    volume_multiplier: float = 1.5
    volume_window: int = 10

    # Momentum
    momentum_period: int = 5
    momentum_threshold: float = 0.005

    # Support / resistance
    sr_tolerance: float = 0.005
    sr_min_touches: int = 2
    sr_lookback: int = 30
    min_volatility_percent: float = 0.5

    # RSI
    rsi_period: int = 14
    rsi_oversold: float = 25.0
    rsi_overbought: float = 75.0


@dataclass
class Config:
    """Runtime configuration loaded from environment variables."""

    symbols: List[str] = field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    trades_dir: str = "trades"
    logs_dir: str = "logs"

    # Credentials
    binance_api_key: str = ""
    binance_api_secret: str = ""
    deepseek_api_key: str = ""

    # Market data
    chart_timeframe: str = "1h"
    chart_periods: int = 50
    monitor_interval: str = "1m"
    monitor_lookback: int = 30
    exchange_timeout_ms: int = 10_000

    # Trading
    trade_amount_usd: float = 15.0
    max_active_trades: int = 2
    loop_interval_minutes: float = 5.0
    ledger_max_records: Optional[int] = None

    # LLM
    deepseek_model: str = "deepseek-chat"
    deepseek_base_url: str = "https://api.deepseek.com"
    llm_timeout_seconds: float = 60.0
    llm_response_format: str = "json"  # "json" | "text"

    trading: TradingConfig = field(default_factory=TradingConfig)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Config":
        """
        Load configuration from .env and the process environment.

        Credentials are NOT required here; each bot checks the ones it needs
        with ``require_credentials`` before any network call.

        Args:
            env_file: Optional explicit .env path (overrides existing variables)

        Returns:
            Config: Validated configuration object

        Raises:
            ConfigurationError: If a numeric or enum variable is invalid
        """
        if env_file:
            load_dotenv(env_file, override=True)
        else:
            load_dotenv()

        symbols_str = os.getenv("SYMBOLS", ",".join(DEFAULT_SYMBOLS))
        symbols = [s.strip().upper() for s in symbols_str.split(",") if s.strip()]
        if not symbols:
            raise ConfigurationError("SYMBOLS must contain at least one valid symbol")

        response_format = os.getenv("LLM_RESPONSE_FORMAT", "json").strip().lower()
        if response_format not in ("json", "text"):
            raise ConfigurationError("LLM_RESPONSE_FORMAT must be 'json' or 'text'")

        max_records_raw = os.getenv("LEDGER_MAX_RECORDS", "").strip()

        return cls(
            symbols=symbols,
            trades_dir=os.getenv("TRADES_DIR", "trades"),
            logs_dir=os.getenv("LOGS_DIR", "logs"),
            binance_api_key=os.getenv("BINANCE_API_KEY", ""),
            binance_api_secret=os.getenv("BINANCE_API_SECRET", ""),
            deepseek_api_key=os.getenv("DEEPSEEK_API_KEY", ""),
            chart_timeframe=os.getenv("CHART_TIMEFRAME", "1h"),
            chart_periods=_env_int("CHART_PERIODS", 50),
            monitor_interval=os.getenv("MONITOR_INTERVAL", "1m"),
            monitor_lookback=_env_int("MONITOR_LOOKBACK", 30),
            exchange_timeout_ms=_env_int("EXCHANGE_TIMEOUT_MS", 10_000),
            trade_amount_usd=_env_float("TRADE_AMOUNT_USD", 15.0),
            max_active_trades=_env_int("MAX_ACTIVE_TRADES", 2),
            loop_interval_minutes=_env_float("LOOP_INTERVAL_MINUTES", 5.0),
            ledger_max_records=_env_int("LEDGER_MAX_RECORDS", 0) if max_records_raw else None,
            deepseek_model=os.getenv("DEEPSEEK_MODEL", "deepseek-chat"),
            deepseek_base_url=os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com"),
            llm_timeout_seconds=_env_float("LLM_TIMEOUT_SECONDS", 60.0),
            llm_response_format=response_format,
        )

    def require_credentials(self, exchange: bool = False, llm: bool = False) -> None:
        """
        Fail fast when credentials a bot depends on are missing.

        Raises:
            ConfigurationError: Listing every missing variable
        """
        required = {}
        if exchange:
            required["BINANCE_API_KEY"] = self.binance_api_key
            required["BINANCE_API_SECRET"] = self.binance_api_secret
        if llm:
            required["DEEPSEEK_API_KEY"] = self.deepseek_api_key

        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    def ledger_path(self, file_name: str) -> str:
        return os.path.join(self.trades_dir, file_name)


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        raise ConfigurationError(f"{name} must be a valid integer")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        raise ConfigurationError(f"{name} must be a valid float")
