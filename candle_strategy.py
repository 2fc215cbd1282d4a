"""
candle_strategy.py - Indicator calculations over closed candles

Indicators:
- EMA (Exponential Moving Average) at 34, 50, 150 and 200 periods
- RSI (Relative Strength Index, Wilder smoothing) at 14 periods

Key principles:
- All functions are pure (no side effects)
- Raw series are left-aligned to the first full window; align_series()
  maps them back onto candle indices
- A missing value is None, never 0.0
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from errors import InsufficientDataError


EMA_PERIODS = (34, 50, 150, 200)
RSI_PERIOD = 14


@dataclass(frozen=True)
class Candle:
    """One closed OHLCV candle. timestamp is epoch milliseconds."""
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def iso_time(self) -> str:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc).isoformat()

    def is_well_formed(self) -> bool:
        """low <= open/close <= high, all prices non-negative"""
        if min(self.open, self.high, self.low, self.close, self.volume) < 0:
            return False
        return self.low <= min(self.open, self.close) and max(self.open, self.close) <= self.high


def candles_from_ohlcv(ohlcv: Sequence[Sequence[float]]) -> List[Candle]:
    """
    Convert ccxt OHLCV rows into Candles.

    Args:
        ohlcv: [[timestamp, open, high, low, close, volume], ...]

    Returns:
        Candles sorted by timestamp; a duplicated timestamp keeps the last row.
        Rows that are short or missing a timestamp or price are skipped.
    """
    by_ts = {}
    for row in ohlcv:
        if not row or len(row) < 6:
            continue
        ts, o, h, l, c, v = row[:6]
        if None in (ts, o, h, l, c):
            continue
        by_ts[int(ts)] = Candle(
            timestamp=int(ts),
            open=float(o),
            high=float(h),
            low=float(l),
            close=float(c),
            volume=float(v or 0.0),
        )
    return [by_ts[ts] for ts in sorted(by_ts)]


def extract_closes(candles: Sequence[Candle]) -> List[float]:
    return [c.close for c in candles]


def calculate_ema_series(closes: Sequence[float], period: int) -> List[float]:
    """
    Calculate an EMA series.

    Args:
        closes: Closing prices (oldest first)
        period: EMA period

    Returns:
        len(closes) - period + 1 values (empty if not enough data).
        The first value is the SMA of the first `period` closes; each
        later value is (close - prev) * k + prev with k = 2 / (period + 1).
    """
    if period <= 0:
        raise ValueError(f"EMA period must be > 0 (got {period})")
    if len(closes) < period:
        return []

    k = 2.0 / (period + 1)
    ema = sum(closes[:period]) / period
    series = [ema]
    for close in closes[period:]:
        ema = (close - ema) * k + ema
        series.append(ema)
    return series


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def calculate_rsi_series(closes: Sequence[float], period: int = RSI_PERIOD) -> List[float]:
    """
    Calculate an RSI series with Wilder smoothing.

    Args:
        closes: Closing prices (oldest first)
        period: RSI period (default: 14)

    Returns:
        len(closes) - period + 1 values (empty if not enough data)

    Formula:
        RSI = 100 - (100 / (1 + RS)), RS = average gain / average loss

    Notes:
        - The first value covers the first `period` closes, i.e. the
          period - 1 changes inside that window (simple averages)
        - Later values use Wilder smoothing:
          avg = (avg * (period - 1) + change) / period
    """
    if period < 2:
        raise ValueError(f"RSI period must be >= 2 (got {period})")
    if len(closes) < period:
        return []

    changes = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
    gains = [max(ch, 0.0) for ch in changes]
    losses = [max(-ch, 0.0) for ch in changes]

    seed = period - 1
    avg_gain = sum(gains[:seed]) / seed
    avg_loss = sum(losses[:seed]) / seed
    series = [_rsi_from_averages(avg_gain, avg_loss)]

    for gain, loss in zip(gains[seed:], losses[seed:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        series.append(_rsi_from_averages(avg_gain, avg_loss))
    return series


def align_series(values: Sequence[float], length: int, period: int) -> List[Optional[float]]:
    """
    Right-align a raw indicator series onto `length` candles.

    Index i gets values[i - (period - 1)] when i >= period - 1, else None.
    """
    offset = period - 1
    aligned: List[Optional[float]] = []
    for i in range(length):
        j = i - offset
        aligned.append(values[j] if 0 <= j < len(values) else None)
    return aligned


@dataclass(frozen=True)
class IndicatorPoint:
    """Indicator values for one candle. None means no value yet."""
    ema34: Optional[float] = None
    ema50: Optional[float] = None
    ema150: Optional[float] = None
    ema200: Optional[float] = None
    rsi14: Optional[float] = None


@dataclass
class IndicatorSeries:
    """Aligned indicator series; every list has one entry per candle."""
    ema34: List[Optional[float]] = field(default_factory=list)
    ema50: List[Optional[float]] = field(default_factory=list)
    ema150: List[Optional[float]] = field(default_factory=list)
    ema200: List[Optional[float]] = field(default_factory=list)
    rsi14: List[Optional[float]] = field(default_factory=list)

    def at(self, index: int) -> IndicatorPoint:
        def pick(series: List[Optional[float]]) -> Optional[float]:
            return series[index] if 0 <= index < len(series) else None

        return IndicatorPoint(
            ema34=pick(self.ema34),
            ema50=pick(self.ema50),
            ema150=pick(self.ema150),
            ema200=pick(self.ema200),
            rsi14=pick(self.rsi14),
        )


def compute_indicators(candles: Sequence[Candle]) -> IndicatorSeries:
    """
    Compute every indicator the signal rules use, aligned to `candles`.

    An empty sequence yields empty series; short histories yield None
    for the indices before each window is full.
    """
    closes = extract_closes(candles)
    n = len(closes)
    emas = {p: align_series(calculate_ema_series(closes, p), n, p) for p in EMA_PERIODS}
    return IndicatorSeries(
        ema34=emas[34],
        ema50=emas[50],
        ema150=emas[150],
        ema200=emas[200],
        rsi14=align_series(calculate_rsi_series(closes, RSI_PERIOD), n, RSI_PERIOD),
    )


def require_history(candles: Sequence[Candle], period: int) -> None:
    """Raise InsufficientDataError if fewer than `period` candles are available."""
    if len(candles) < period:
        raise InsufficientDataError(len(candles), period)
