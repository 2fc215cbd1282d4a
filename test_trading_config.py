#!/usr/bin/env python3
"""
test_trading_config.py - Environment loading and validation

Run with: pytest test_trading_config.py
"""

import pytest

from trading_config import TradingConfig

ENV_VARS = [
    "EXCHANGE_ID", "PAPER_MODE", "SYMBOLS", "TIMEFRAME", "CANDLE_LIMIT",
    "ACCOUNT_BALANCE", "RISK_PER_TRADE", "STOP_LOSS_PCT", "TAKE_PROFIT_PCT",
    "RSI_OVERBOUGHT", "RSI_OVERSOLD", "POLL_INTERVAL_SEC", "REQUEST_TIMEOUT_MS",
    "BALANCE_CHECK_CYCLES",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    config = TradingConfig.from_env()
    assert config.exchange_id == "bitget"
    assert config.paper_mode is True
    assert config.symbols == ["ETH/USDT", "BTC/USDT"]
    assert config.timeframe == "1h"
    assert config.risk.account_balance == 100.0
    assert config.risk.risk_per_trade == 0.01
    assert config.risk.stop_loss_pct == 0.01
    assert config.risk.take_profit_pct == 0.02
    assert config.poll_interval_sec == 60
    config.validate()


def test_env_overrides(clean_env):
    clean_env.setenv("EXCHANGE_ID", " Kraken ")
    clean_env.setenv("PAPER_MODE", "0")
    clean_env.setenv("SYMBOLS", "sol/usdt, ,eth/usdt")
    clean_env.setenv("TIMEFRAME", "15m")
    clean_env.setenv("ACCOUNT_BALANCE", "$250")
    clean_env.setenv("STOP_LOSS_PCT", "0.015")
    clean_env.setenv("POLL_INTERVAL_SEC", "30")

    config = TradingConfig.from_env()

    assert config.exchange_id == "kraken"
    assert config.paper_mode is False
    assert config.symbols == ["SOL/USDT", "ETH/USDT"]
    assert config.timeframe == "15m"
    assert config.risk.account_balance == 250.0
    assert config.risk.stop_loss_pct == 0.015
    assert config.poll_interval_sec == 30


def test_bad_numbers_fall_back_to_defaults(clean_env, capsys):
    clean_env.setenv("CANDLE_LIMIT", "lots")
    clean_env.setenv("RISK_PER_TRADE", "one percent")

    config = TradingConfig.from_env()

    assert config.candle_limit == 300
    assert config.risk.risk_per_trade == 0.01
    assert "[CONFIG-WARN] CANDLE_LIMIT" in capsys.readouterr().out


@pytest.mark.parametrize("mutate", [
    lambda c: setattr(c, "symbols", []),
    lambda c: setattr(c.risk, "account_balance", 0.0),
    lambda c: setattr(c.risk, "risk_per_trade", 1.5),
    lambda c: setattr(c.risk, "stop_loss_pct", 0.0),
    lambda c: setattr(c.risk, "take_profit_pct", 1.0),
    lambda c: setattr(c.indicators, "rsi_oversold", 80.0),
    lambda c: setattr(c, "poll_interval_sec", 0),
    lambda c: setattr(c, "candle_limit", 1),
    lambda c: setattr(c, "request_timeout_ms", 0),
])
def test_validate_rejects(mutate):
    config = TradingConfig()
    mutate(config)
    with pytest.raises(ValueError):
        config.validate()
