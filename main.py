#!/usr/bin/env python3
"""
main.py - Entry point for the trading bot

Startup sequence:
1. Load .env and trading configuration (invalid config → exit 1)
2. Add the rotating log file sink
3. In LIVE mode, require exchange credentials (missing → exit 1)
4. Build the gateway, read the balance once (informational)
5. Enter the scan loop until Ctrl+C

Usage:
    python main.py
"""

import os
import sys
from datetime import datetime, timezone

from loguru import logger

import config
from autopilot import check_account_balance, run_forever
from exchange_manager import make_gateway
from trading_config import TradingConfig, get_config, get_config_for_logging


def setup_logging(log_file: str = config.LOG_FILE) -> None:
    logger.add(log_file, rotation="1 MB", retention=3)


def check_credentials(cfg: TradingConfig) -> bool:
    """LIVE mode needs key, secret and passphrase; PAPER mode needs nothing."""
    if cfg.paper_mode:
        return True
    missing = [name for name, value in (
        ("BITGET_API_KEY", config.API_KEY),
        ("BITGET_SECRET_KEY", config.API_SECRET),
        ("BITGET_PASSWORD", config.API_PASSWORD),
    ) if not value]
    if missing:
        logger.error(f"[STARTUP] Missing credentials for LIVE mode: {', '.join(missing)}")
        return False
    return True


def main() -> int:
    print("=" * 60)
    print("🤖 TRADING BOT - STARTUP")
    print("=" * 60)
    print(f"Time: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}")
    print(f"PID: {os.getpid()}")
    print("=" * 60)

    setup_logging()

    cfg = get_config()
    try:
        cfg.validate()
    except ValueError as e:
        logger.error(f"[STARTUP] Invalid configuration: {e}")
        return 1

    if not check_credentials(cfg):
        logger.error("[STARTUP] Cannot run in LIVE mode without credentials (set PAPER_MODE=1 to paper trade)")
        return 1

    try:
        gateway = make_gateway(cfg, api_key=config.API_KEY, secret=config.API_SECRET, password=config.API_PASSWORD)
    except ValueError as e:
        logger.error(f"[STARTUP] {e}")
        return 1

    logger.info(f"[STARTUP] Config: {get_config_for_logging()}")
    logger.info(f"[STARTUP] Starting bot in {'PAPER' if cfg.paper_mode else 'LIVE'} mode...")
    check_account_balance(gateway)

    try:
        run_forever(cfg, gateway)
    except KeyboardInterrupt:
        logger.info("[MAIN] Shutdown requested via Ctrl+C")
    return 0


if __name__ == "__main__":
    sys.exit(main())
