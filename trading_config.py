"""
trading_config.py - Centralized trading configuration

All strategy parameters, risk settings and loop timing in one place.
Configuration hierarchy: defaults → environment variables
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class IndicatorConfig:
    """Technical indicator settings"""
    # RSI guards for entries
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0


@dataclass
class RiskConfig:
    """Risk management parameters"""
    # Reference balance used for sizing (not the live balance)
    account_balance: float = 100.0
    risk_per_trade: float = 0.01  # fraction of balance per entry

    # Bracket distances as fractions of the entry price
    stop_loss_pct: float = 0.01
    take_profit_pct: float = 0.02


@dataclass
class TradingConfig:
    """Master configuration for the trading loop"""
    indicators: IndicatorConfig = field(default_factory=IndicatorConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)

    # Exchange
    exchange_id: str = "bitget"
    paper_mode: bool = True
    request_timeout_ms: int = 30000

    # Symbols and candles
    symbols: List[str] = field(default_factory=lambda: ["ETH/USDT", "BTC/USDT"])
    timeframe: str = "1h"
    candle_limit: int = 300

    # Loop timing
    poll_interval_sec: int = 60
    balance_check_cycles: int = 60  # 0 = startup only

    @classmethod
    def from_env(cls) -> "TradingConfig":
        """
        Load configuration from environment variables.

        Environment variables override defaults:
        - EXCHANGE_ID: ccxt exchange id
        - PAPER_MODE: 0/1
        - SYMBOLS: comma-separated list
        - TIMEFRAME, CANDLE_LIMIT
        - ACCOUNT_BALANCE, RISK_PER_TRADE
        - STOP_LOSS_PCT, TAKE_PROFIT_PCT
        - RSI_OVERBOUGHT, RSI_OVERSOLD
        - POLL_INTERVAL_SEC, REQUEST_TIMEOUT_MS, BALANCE_CHECK_CYCLES
        """
        config = cls()

        config.exchange_id = os.getenv("EXCHANGE_ID", config.exchange_id).strip().lower()
        config.paper_mode = os.getenv("PAPER_MODE", "1").lower() in ("1", "true", "yes", "on")

        symbols_env = os.getenv("SYMBOLS", "")
        if symbols_env:
            config.symbols = [s.strip().upper() for s in symbols_env.split(",") if s.strip()]

        config.timeframe = os.getenv("TIMEFRAME", config.timeframe).strip()
        config.candle_limit = _env_int("CANDLE_LIMIT", config.candle_limit)

        config.risk.account_balance = _env_float("ACCOUNT_BALANCE", config.risk.account_balance)
        config.risk.risk_per_trade = _env_float("RISK_PER_TRADE", config.risk.risk_per_trade)
        config.risk.stop_loss_pct = _env_float("STOP_LOSS_PCT", config.risk.stop_loss_pct)
        config.risk.take_profit_pct = _env_float("TAKE_PROFIT_PCT", config.risk.take_profit_pct)

        config.indicators.rsi_overbought = _env_float("RSI_OVERBOUGHT", config.indicators.rsi_overbought)
        config.indicators.rsi_oversold = _env_float("RSI_OVERSOLD", config.indicators.rsi_oversold)

        config.poll_interval_sec = _env_int("POLL_INTERVAL_SEC", config.poll_interval_sec)
        config.request_timeout_ms = _env_int("REQUEST_TIMEOUT_MS", config.request_timeout_ms)
        config.balance_check_cycles = _env_int("BALANCE_CHECK_CYCLES", config.balance_check_cycles)

        return config

    def validate(self) -> None:
        """Raise ValueError describing the first invalid setting."""
        if not self.symbols:
            raise ValueError("SYMBOLS must contain at least one trading pair")
        if self.risk.account_balance <= 0:
            raise ValueError(f"ACCOUNT_BALANCE must be > 0 (got {self.risk.account_balance})")
        if not 0 < self.risk.risk_per_trade <= 1:
            raise ValueError(f"RISK_PER_TRADE must be in (0, 1] (got {self.risk.risk_per_trade})")
        if not 0 < self.risk.stop_loss_pct < 1:
            raise ValueError(f"STOP_LOSS_PCT must be in (0, 1) (got {self.risk.stop_loss_pct})")
        if not 0 < self.risk.take_profit_pct < 1:
            raise ValueError(f"TAKE_PROFIT_PCT must be in (0, 1) (got {self.risk.take_profit_pct})")
        if not 0 <= self.indicators.rsi_oversold < self.indicators.rsi_overbought <= 100:
            raise ValueError(
                f"RSI guards must satisfy 0 <= oversold < overbought <= 100 "
                f"(got {self.indicators.rsi_oversold}/{self.indicators.rsi_overbought})"
            )
        if self.poll_interval_sec <= 0:
            raise ValueError(f"POLL_INTERVAL_SEC must be > 0 (got {self.poll_interval_sec})")
        if self.candle_limit < 2:
            raise ValueError(f"CANDLE_LIMIT must be >= 2 (got {self.candle_limit})")
        if self.request_timeout_ms <= 0:
            raise ValueError(f"REQUEST_TIMEOUT_MS must be > 0 (got {self.request_timeout_ms})")


def _env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError:
        print(f"[CONFIG-WARN] {name} invalid: '{val}', using default {default}")
        return default


def _env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        # Strip whitespace and currency symbols like "$"
        return float(val.strip().lstrip("$"))
    except ValueError:
        print(f"[CONFIG-WARN] {name} invalid: '{val}', using default {default}")
        return default


_config: Optional[TradingConfig] = None


def get_config() -> TradingConfig:
    """Get global config instance (loads from env on first call)"""
    global _config
    if _config is None:
        _config = TradingConfig.from_env()
    return _config


def get_config_for_logging() -> Dict[str, Any]:
    """Flat snapshot of the active configuration for the startup log line."""
    cfg = get_config()
    return {
        "exchange": cfg.exchange_id,
        "mode": "paper" if cfg.paper_mode else "live",
        "symbols": cfg.symbols,
        "timeframe": cfg.timeframe,
        "candle_limit": cfg.candle_limit,
        "account_balance": cfg.risk.account_balance,
        "risk_per_trade": cfg.risk.risk_per_trade,
        "stop_loss_pct": cfg.risk.stop_loss_pct,
        "take_profit_pct": cfg.risk.take_profit_pct,
        "rsi_overbought": cfg.indicators.rsi_overbought,
        "rsi_oversold": cfg.indicators.rsi_oversold,
        "poll_interval_sec": cfg.poll_interval_sec,
    }
