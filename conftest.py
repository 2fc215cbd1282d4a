from typing import Dict, List, Optional, Sequence

import pytest

from candle_strategy import Candle
from errors import GatewayError

HOUR_MS = 3_600_000
T0 = 1_700_000_000_000


def _make_candle(open_: float, close: float, index: int = 0, volume: float = 1.0) -> Candle:
    return Candle(
        timestamp=T0 + index * HOUR_MS,
        open=float(open_),
        high=float(max(open_, close)) + 1.0,
        low=max(float(min(open_, close)) - 1.0, 0.0),
        close=float(close),
        volume=volume,
    )


def _candles_from_closes(closes: Sequence[float]) -> List[Candle]:
    """Each candle opens at the previous close."""
    candles = []
    prev = closes[0] if closes else 0.0
    for i, close in enumerate(closes):
        candles.append(_make_candle(prev, close, index=i))
        prev = close
    return candles


class FakeMarketData:
    """Candle source for the paper gateway; symbols in `failing` raise GatewayError."""

    def __init__(self, candles: Optional[Dict[str, List[Candle]]] = None):
        self.candles: Dict[str, List[Candle]] = candles or {}
        self.failing: set = set()
        self.calls: List[str] = []

    def fetch_candles(self, symbol, timeframe, limit=None):
        self.calls.append(symbol)
        if symbol in self.failing:
            raise GatewayError("fetch_candles", symbol, ConnectionError("exchange unreachable"))
        return list(self.candles.get(symbol, []))


@pytest.fixture
def make_candle():
    return _make_candle


@pytest.fixture
def candles_from_closes():
    return _candles_from_closes


@pytest.fixture
def market_data():
    return FakeMarketData()
