"""
signal_engine.py - Entry signal evaluation over a candle history

Walks every adjacent candle pair in chronological order and applies two
independent rules:

1. Engulfing: bullish/bearish engulfing confirmed by EMA34 and RSI14
2. EMA50 cross: close moves across EMA50 between the two candles, RSI-guarded

A signal is only emitted if it would change the current position
(no OpenLong while long, no OpenShort while short). Each emitted signal is
handed to the entry callback immediately and the position is re-read from
the ledger before the next rule or pair, so both rules may fire on one pair.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

from loguru import logger

from candle_strategy import Candle, IndicatorPoint, IndicatorSeries
from errors import InvalidStateError
from pattern_recognition import PatternType, detect_engulfing
from position_tracker import PositionLedger, PositionSide
from trading_config import IndicatorConfig


class Signal(Enum):
    OPEN_LONG = "open_long"
    OPEN_SHORT = "open_short"
    HOLD = "hold"

    @property
    def side(self) -> Optional[PositionSide]:
        if self is Signal.OPEN_LONG:
            return PositionSide.LONG
        if self is Signal.OPEN_SHORT:
            return PositionSide.SHORT
        return None


RULE_ENGULFING = "engulfing"
RULE_EMA50_CROSS = "ema50_cross"


@dataclass(frozen=True)
class SignalEvent:
    """One emitted entry signal"""
    symbol: str
    index: int  # index of the current candle in the evaluated history
    timestamp: int
    signal: Signal
    rule: str
    price: float  # close of the current candle
    pattern: Optional[PatternType] = None

    @property
    def side(self) -> PositionSide:
        side = self.signal.side
        if side is None:
            raise InvalidStateError(f"{self.symbol}: {self.signal.value} event has no position side")
        return side

    def __str__(self) -> str:
        label = "BUY" if self.signal is Signal.OPEN_LONG else "SELL"
        via = " (EMA50 Cross)" if self.rule == RULE_EMA50_CROSS else ""
        return f"{label} Signal at candle {self.index}{via} for {self.symbol} @ {self.price}"


EntryCallback = Callable[[SignalEvent], object]


class SignalEngine:
    """Evaluates the engulfing and EMA50-cross rules over a candle history."""

    def __init__(self, config: Optional[IndicatorConfig] = None):
        self.config = config or IndicatorConfig()

    def _rsi_allows_long(self, point: IndicatorPoint) -> bool:
        return point.rsi14 is not None and point.rsi14 < self.config.rsi_overbought

    def _rsi_allows_short(self, point: IndicatorPoint) -> bool:
        return point.rsi14 is not None and point.rsi14 > self.config.rsi_oversold

    def engulfing_signal(
        self,
        prev: Candle,
        curr: Candle,
        point: IndicatorPoint,
        position: Optional[PositionSide],
    ) -> Signal:
        pattern = detect_engulfing(prev, curr)
        if pattern is None or point.ema34 is None:
            return Signal.HOLD
        if (pattern is PatternType.BULLISH_ENGULFING and curr.close > point.ema34
                and self._rsi_allows_long(point) and position is not PositionSide.LONG):
            return Signal.OPEN_LONG
        if (pattern is PatternType.BEARISH_ENGULFING and curr.close < point.ema34
                and self._rsi_allows_short(point) and position is not PositionSide.SHORT):
            return Signal.OPEN_SHORT
        return Signal.HOLD

    def ema50_cross_signal(
        self,
        prev: Candle,
        curr: Candle,
        prev_point: IndicatorPoint,
        point: IndicatorPoint,
        position: Optional[PositionSide],
    ) -> Signal:
        if prev_point.ema50 is None or point.ema50 is None:
            return Signal.HOLD
        if (prev_point.ema50 < prev.close and point.ema50 > curr.close
                and self._rsi_allows_long(point) and position is not PositionSide.LONG):
            return Signal.OPEN_LONG
        if (prev_point.ema50 > prev.close and point.ema50 < curr.close
                and self._rsi_allows_short(point) and position is not PositionSide.SHORT):
            return Signal.OPEN_SHORT
        return Signal.HOLD

    def evaluate(
        self,
        symbol: str,
        candles: Sequence[Candle],
        indicators: IndicatorSeries,
        ledger: Optional[PositionLedger] = None,
        on_entry: Optional[EntryCallback] = None,
    ) -> List[SignalEvent]:
        """
        Evaluate both rules for every adjacent candle pair.

        Args:
            symbol: Trading pair
            candles: Candle history, oldest first
            indicators: Series aligned to `candles`
            ledger: Source of the current position (None = start flat)
            on_entry: Called with each signal before evaluation continues.
                      Without it the would-be position is tracked locally.

        Returns:
            Emitted signals in evaluation order
        """
        events: List[SignalEvent] = []
        position = ledger.position(symbol) if ledger is not None else None

        def emit(index: int, signal: Signal, rule: str, pattern: Optional[PatternType] = None) -> Optional[PositionSide]:
            curr = candles[index]
            event = SignalEvent(symbol, index, curr.timestamp, signal, rule, curr.close, pattern)
            events.append(event)
            logger.info(f"[SIGNAL] {event} (candle {curr.iso_time})")
            if on_entry is not None:
                on_entry(event)
                if ledger is not None:
                    return ledger.position(symbol)
            return event.side

        for i in range(1, len(candles)):
            prev, curr = candles[i - 1], candles[i]
            prev_point, point = indicators.at(i - 1), indicators.at(i)

            signal = self.engulfing_signal(prev, curr, point, position)
            if signal is not Signal.HOLD:
                pattern = (PatternType.BULLISH_ENGULFING if signal is Signal.OPEN_LONG
                           else PatternType.BEARISH_ENGULFING)
                position = emit(i, signal, RULE_ENGULFING, pattern)

            signal = self.ema50_cross_signal(prev, curr, prev_point, point, position)
            if signal is not Signal.HOLD:
                position = emit(i, signal, RULE_EMA50_CROSS)

        return events
