#!/usr/bin/env python3
"""
test_pattern_recognition.py - Engulfing detection

Run with: pytest test_pattern_recognition.py
"""

import itertools

from candle_strategy import Candle
from pattern_recognition import (
    PatternType,
    detect_engulfing,
    is_bearish_engulfing,
    is_bullish_engulfing,
)


def test_bullish_engulfing(make_candle):
    prev = make_candle(100, 98)
    curr = make_candle(97, 101, index=1)
    assert is_bullish_engulfing(prev, curr)
    assert not is_bearish_engulfing(prev, curr)
    assert detect_engulfing(prev, curr) is PatternType.BULLISH_ENGULFING


def test_bearish_engulfing(make_candle):
    prev = make_candle(98, 100)
    curr = make_candle(101, 97, index=1)
    assert is_bearish_engulfing(prev, curr)
    assert not is_bullish_engulfing(prev, curr)
    assert detect_engulfing(prev, curr) is PatternType.BEARISH_ENGULFING


def test_body_must_strictly_engulf(make_candle):
    prev = make_candle(100, 98)
    # opens at prev close: not strictly below it
    assert not is_bullish_engulfing(prev, make_candle(98, 101, index=1))
    # closes at prev open: not strictly above it
    assert not is_bullish_engulfing(prev, make_candle(97, 100, index=1))


def test_doji_candles_never_match(make_candle):
    doji = make_candle(100, 100)
    assert detect_engulfing(doji, make_candle(99, 102, index=1)) is None
    assert detect_engulfing(make_candle(100, 98), make_candle(101, 101, index=1)) is None


def test_malformed_candle_never_matches(make_candle):
    prev = make_candle(100, 98)
    # high below close
    bad = Candle(timestamp=1, open=97, high=99, low=96, close=101, volume=1)
    assert not bad.is_well_formed()
    assert not is_bullish_engulfing(prev, bad)
    assert detect_engulfing(prev, bad) is None


def test_bullish_and_bearish_are_exclusive(make_candle):
    levels = [95, 97, 99, 101, 103]
    for po, pc, co, cc in itertools.product(levels, repeat=4):
        prev = make_candle(po, pc)
        curr = make_candle(co, cc, index=1)
        assert not (is_bullish_engulfing(prev, curr) and is_bearish_engulfing(prev, curr))
