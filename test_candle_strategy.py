#!/usr/bin/env python3
"""
test_candle_strategy.py - Indicator calculation and alignment checks

Run with: pytest test_candle_strategy.py
"""

import pytest

from candle_strategy import (
    EMA_PERIODS,
    RSI_PERIOD,
    align_series,
    calculate_ema_series,
    calculate_rsi_series,
    candles_from_ohlcv,
    compute_indicators,
    require_history,
)
from errors import InsufficientDataError


def test_ema_series_seeds_with_sma():
    # seed = (1+2+3)/3 = 2, k = 0.5 → 3, 4
    assert calculate_ema_series([1, 2, 3, 4, 5], 3) == pytest.approx([2.0, 3.0, 4.0])


def test_ema_series_empty_when_history_short():
    assert calculate_ema_series([1, 2], 3) == []


def test_align_series_marks_missing_as_none():
    assert align_series([2.0, 3.0, 4.0], 5, 3) == [None, None, 2.0, 3.0, 4.0]


def test_rsi_wilder_smoothing_values():
    # period 3: seed from 2 changes (+1, -1) → 50; next +1 → avg gain 2/3, avg loss 1/3 → RS 2
    series = calculate_rsi_series([1, 2, 1, 2], period=3)
    assert series == pytest.approx([50.0, 100.0 - 100.0 / 3.0])


def test_rsi_all_gains_is_100_and_flat_is_50():
    assert set(calculate_rsi_series(list(range(1, 31)))) == {100.0}
    assert set(calculate_rsi_series([10.0] * 30)) == {50.0}


def test_rsi_stays_in_range(candles_from_closes):
    closes = [100 + ((-1) ** i) * (i % 7) for i in range(80)]
    values = [v for v in compute_indicators(candles_from_closes(closes)).rsi14 if v is not None]
    assert values
    assert all(0.0 <= v <= 100.0 for v in values)


def test_indicator_presence_follows_period(candles_from_closes):
    n = 160
    candles = candles_from_closes([100 + i * 0.5 for i in range(n)])
    ind = compute_indicators(candles)

    for name, period in [("ema34", 34), ("ema50", 50), ("ema150", 150), ("ema200", 200), ("rsi14", RSI_PERIOD)]:
        series = getattr(ind, name)
        assert len(series) == n
        for i, value in enumerate(series):
            assert (value is not None) == (i >= period - 1), f"{name}[{i}]"


def test_aligned_value_matches_raw_series(candles_from_closes):
    closes = [50 + (i % 11) * 1.5 for i in range(120)]
    ind = compute_indicators(candles_from_closes(closes))
    raw = calculate_ema_series(closes, 50)
    assert ind.ema50[49] == pytest.approx(raw[0])
    assert ind.ema50[119] == pytest.approx(raw[-1])
    assert ind.at(119).ema50 == ind.ema50[119]


def test_short_history_leaves_ema200_absent(candles_from_closes):
    ind = compute_indicators(candles_from_closes([100.0 + i for i in range(199)]))
    assert all(v is None for v in ind.ema200)
    assert ind.ema34[-1] is not None


def test_zero_valued_ema_is_present_not_absent(candles_from_closes):
    ind = compute_indicators(candles_from_closes([0.0] * 40))
    assert ind.ema34[32] is None
    assert ind.ema34[33] == 0.0
    assert ind.at(33).ema34 is not None


def test_empty_input_gives_empty_series():
    ind = compute_indicators([])
    for name in ("ema34", "ema50", "ema150", "ema200", "rsi14"):
        assert getattr(ind, name) == []
    point = ind.at(0)
    assert point.ema34 is None and point.rsi14 is None


def test_candles_from_ohlcv_sorts_and_drops_duplicates():
    rows = [
        [3000, 3, 4, 2, 3.5, 10],
        [1000, 1, 2, 0.5, 1.5, 10],
        [2000, 2, 3, 1, 2.5, 10],
        [2000, 2, 3, 1, 2.75, 12],
        [4000, 4],  # malformed row
    ]
    candles = candles_from_ohlcv(rows)
    assert [c.timestamp for c in candles] == [1000, 2000, 3000]
    assert candles[1].close == 2.75
    assert candles[0].iso_time.startswith("1970-01-01T00:00:01")


def test_require_history_raises_when_short(candles_from_closes):
    candles = candles_from_closes([1.0] * 10)
    with pytest.raises(InsufficientDataError) as err:
        require_history(candles, max(EMA_PERIODS))
    assert err.value.available == 10
    assert err.value.required == 200
    require_history(candles, 10)


def test_candles_from_ohlcv_skips_rows_with_missing_prices():
    rows = [
        [1000, 1, 2, 0.5, 1.5, 10],
        [2000, 2, None, 1, 2.5, 10],
        [3000, 3, 4, 2, None, 10],
        [None, 4, 5, 3, 4.5, 10],
        [4000, 4, 5, 3, 4.5, None],
    ]
    candles = candles_from_ohlcv(rows)
    assert [c.timestamp for c in candles] == [1000, 4000]
    assert candles[1].volume == 0.0
