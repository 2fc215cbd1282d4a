"""
autopilot.py - Scan loop

Once per poll interval, for each configured symbol in order:
fetch candles → compute indicators → evaluate signals over the full
history (entries go through the bracket manager as they fire) →
reconcile the open bracket, if any.

A failure for one symbol is logged and the loop moves on to the next;
the whole symbol set is retried on the next cycle.
"""

import time
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from bracket_order_manager import BracketConfig, BracketOrderManager
from candle_strategy import EMA_PERIODS, compute_indicators, require_history
from errors import GatewayError, InsufficientDataError
from position_tracker import PositionLedger
from signal_engine import SignalEngine, SignalEvent
from trading_config import RiskConfig, TradingConfig


def position_size(risk: RiskConfig, price: float) -> float:
    """balance * risk fraction / price"""
    if price <= 0:
        raise ValueError(f"price must be > 0 (got {price})")
    return risk.account_balance * risk.risk_per_trade / price


def analyze_symbol(
    symbol: str,
    gateway,
    ledger: PositionLedger,
    manager: BracketOrderManager,
    engine: SignalEngine,
    config: TradingConfig,
) -> List[SignalEvent]:
    """
    Run one symbol's turn of the cycle.

    Raises:
        GatewayError: fetching candles or reconciling failed
    """
    logger.info(f"[SCAN] Fetching prices for {symbol}...")
    candles = gateway.fetch_candles(symbol, config.timeframe, config.candle_limit)
    latest = f", latest {candles[-1].iso_time}" if candles else ""
    logger.info(f"[SCAN] Fetched {len(candles)} price points for {symbol}{latest}")

    try:
        require_history(candles, max(EMA_PERIODS))
    except InsufficientDataError as e:
        logger.warning(f"[SCAN] {symbol}: {e} - long-period EMAs stay absent")

    indicators = compute_indicators(candles)
    logger.debug(f"[SCAN] Indicators calculated for {symbol}")

    def enter(event: SignalEvent) -> None:
        size = position_size(config.risk, event.price)
        result = manager.enter_position(symbol, event.side, size, event.price)
        logger.info(f"[SCAN] {symbol} entry → {result}")

    events = engine.evaluate(symbol, candles, indicators, ledger=ledger, on_entry=enter)
    logger.info(f"[SCAN] {symbol}: {len(events)} signal(s) over {max(len(candles) - 1, 0)} candle pair(s)")

    if ledger.is_open(symbol):
        logger.info(f"[RECONCILE] Managing open orders for {symbol}...")
        triggered = manager.reconcile(symbol)
        if triggered is not None:
            logger.info(f"[RECONCILE] {symbol}: position closed by order {triggered.id}")

    return events


def loop_once(
    symbols: List[str],
    gateway,
    ledger: PositionLedger,
    manager: BracketOrderManager,
    engine: SignalEngine,
    config: TradingConfig,
) -> Dict[str, str]:
    """
    Process every symbol once.

    Returns:
        {symbol: "ok" | "error"}
    """
    outcome: Dict[str, str] = {}
    for symbol in symbols:
        try:
            analyze_symbol(symbol, gateway, ledger, manager, engine, config)
            outcome[symbol] = "ok"
        except GatewayError as e:
            logger.error(f"[SCAN-ERR] {symbol}: {e.operation} failed: {e.cause or e}")
            outcome[symbol] = "error"
        except Exception as e:
            logger.exception(f"[SCAN-ERR] {symbol}: unexpected error: {e}")
            outcome[symbol] = "error"
    return outcome


def check_account_balance(gateway) -> Optional[Dict[str, Any]]:
    """Informational balance read; failures are logged and return None."""
    try:
        balance = gateway.fetch_balance()
    except GatewayError as e:
        logger.error(f"[BALANCE] Error fetching account balance: {e}")
        return None
    except Exception as e:
        logger.exception(f"[BALANCE] Unexpected error reading account balance: {e}")
        return None
    total = balance.get("total", balance)
    logger.info(f"[BALANCE] Account balance: {total}")
    return total


def run_forever(
    config: TradingConfig,
    gateway,
    ledger: Optional[PositionLedger] = None,
    sleep: Callable[[float], None] = time.sleep,
    max_cycles: Optional[int] = None,
) -> PositionLedger:
    """
    Drive the scan loop until the process is terminated.

    `max_cycles` stops after that many cycles (tests only).
    """
    ledger = ledger if ledger is not None else PositionLedger()
    manager = BracketOrderManager(gateway, ledger, BracketConfig.from_risk(config.risk))
    engine = SignalEngine(config.indicators)

    logger.info(
        f"[AUTOPILOT] Running on {len(config.symbols)} symbol(s) "
        f"({', '.join(config.symbols)}) every {config.poll_interval_sec}s, timeframe={config.timeframe}"
    )

    cycle = 0
    while True:
        cycle += 1
        started = time.time()
        outcome = loop_once(config.symbols, gateway, ledger, manager, engine, config)
        failed = [s for s, status in outcome.items() if status != "ok"]
        logger.info(
            f"[AUTOPILOT] Cycle {cycle} done in {time.time() - started:.1f}s"
            f"{' - failed: ' + ', '.join(failed) if failed else ''}"
        )
        logger.info(ledger.summary())

        if config.balance_check_cycles > 0 and cycle % config.balance_check_cycles == 0:
            check_account_balance(gateway)

        if max_cycles is not None and cycle >= max_cycles:
            return ledger
        sleep(config.poll_interval_sec)
