# pattern_recognition.py - Two-candle engulfing pattern detection
from __future__ import annotations

from enum import Enum
from typing import Optional

from candle_strategy import Candle


class PatternType(Enum):
    """Recognized candlestick patterns."""
    BULLISH_ENGULFING = "bullish_engulfing"
    BEARISH_ENGULFING = "bearish_engulfing"


def is_bullish_engulfing(prev: Candle, curr: Candle) -> bool:
    """
    Bearish candle followed by a bullish candle whose body engulfs it.

    Malformed candles (low/high not bounding open/close) never match.
    """
    if not (prev.is_well_formed() and curr.is_well_formed()):
        return False
    return (
        prev.close < prev.open
        and curr.close > curr.open
        and curr.close > prev.open
        and curr.open < prev.close
    )


def is_bearish_engulfing(prev: Candle, curr: Candle) -> bool:
    """Mirror of is_bullish_engulfing."""
    if not (prev.is_well_formed() and curr.is_well_formed()):
        return False
    return (
        prev.close > prev.open
        and curr.close < curr.open
        and curr.close < prev.open
        and curr.open > prev.close
    )


def detect_engulfing(prev: Candle, curr: Candle) -> Optional[PatternType]:
    if is_bullish_engulfing(prev, curr):
        return PatternType.BULLISH_ENGULFING
    if is_bearish_engulfing(prev, curr):
        return PatternType.BEARISH_ENGULFING
    return None
