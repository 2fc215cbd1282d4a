"""
paper_exchange_wrapper.py - Paper trading gateway

Reads candles through a wrapped market-data gateway and simulates every
order locally:
- Market orders fill immediately at the reference price (or last seen close)
- Stop / take-profit orders rest as open orders at their trigger price
- A simple quote/base balance tracks the fills

Nothing here touches a real account; state lives only for the process.
"""

import time
import uuid
from typing import Any, Dict, List, Optional

from loguru import logger

from candle_strategy import Candle
from errors import GatewayError
from exchange_manager import CONDITIONAL_KINDS, OpenOrder


class PaperOrder:
    """Represents a paper order (market or conditional)"""
    def __init__(
        self,
        order_id: str,
        symbol: str,
        order_type: str,  # 'market', 'stop', 'take_profit'
        side: str,  # 'buy' or 'sell'
        amount: float,
        price: Optional[float] = None,
        status: str = 'open',
        timestamp: Optional[float] = None
    ):
        self.order_id = order_id
        self.symbol = symbol
        self.order_type = order_type
        self.side = side
        self.amount = amount
        self.price = price
        self.status = status
        self.timestamp = timestamp or time.time()

    def to_ccxt_format(self) -> Dict[str, Any]:
        """Convert to ccxt format for compatibility"""
        return {
            'id': self.order_id,
            'symbol': self.symbol,
            'type': self.order_type,
            'side': self.side,
            'amount': self.amount,
            'price': self.price,
            'triggerPrice': self.price if self.order_type in CONDITIONAL_KINDS else None,
            'status': self.status,
            'filled': self.amount if self.status == 'closed' else 0.0,
            'timestamp': int(self.timestamp * 1000),
        }


class PaperExchangeWrapper:
    """
    Gateway that simulates orders on top of a real market-data source.

    Args:
        market_data: any object with fetch_candles(symbol, timeframe, limit)
        starting_quote: paper quote-currency balance
        quote_currency: currency the balance is held in
    """

    def __init__(self, market_data, starting_quote: float = 100.0, quote_currency: str = "USDT"):
        self._data = market_data
        self.quote_currency = quote_currency
        self._balances: Dict[str, float] = {quote_currency: float(starting_quote)}
        self._open: Dict[str, PaperOrder] = {}
        self._filled: List[PaperOrder] = []
        self._last_close: Dict[str, float] = {}
        logger.info(f"[PAPER] Initialized with {starting_quote:.2f} {quote_currency}")

    def _generate_order_id(self) -> str:
        return f"PAPER-{str(uuid.uuid4())[:8].upper()}"

    def fetch_candles(self, symbol: str, timeframe: str, limit: Optional[int] = None) -> List[Candle]:
        candles = self._data.fetch_candles(symbol, timeframe, limit)
        if candles:
            self._last_close[symbol] = candles[-1].close
        return candles

    def create_market_order(
        self,
        symbol: str,
        side: str,
        size: float,
        price: Optional[float] = None,
    ) -> Dict[str, Any]:
        fill_price = price if price is not None else self._last_close.get(symbol)
        if fill_price is None or fill_price <= 0:
            raise GatewayError("create_market_order", symbol, ValueError("no reference price for paper fill"))
        if size <= 0:
            raise GatewayError("create_market_order", symbol, ValueError(f"invalid size {size}"))

        base = symbol.split("/")[0]
        cost = size * fill_price
        sign = 1.0 if side == "buy" else -1.0
        self._balances[base] = self._balances.get(base, 0.0) + sign * size
        self._balances[self.quote_currency] = self._balances.get(self.quote_currency, 0.0) - sign * cost

        order = PaperOrder(self._generate_order_id(), symbol, "market", side, size, fill_price, status="closed")
        self._filled.append(order)
        logger.info(f"[PAPER] Market {side} {size:.6f} {symbol} filled @ {fill_price:.4f} (id={order.order_id})")
        return order.to_ccxt_format()

    def create_conditional_order(
        self,
        symbol: str,
        kind: str,
        side: str,
        size: float,
        trigger_price: float,
    ) -> Dict[str, Any]:
        if kind not in CONDITIONAL_KINDS:
            raise ValueError(f"Unknown conditional order kind '{kind}'")
        order = PaperOrder(self._generate_order_id(), symbol, kind, side, size, trigger_price)
        self._open[order.order_id] = order
        logger.info(f"[PAPER] {kind} {side} {size:.6f} {symbol} @ {trigger_price:.4f} (id={order.order_id})")
        return order.to_ccxt_format()

    def fetch_open_orders(self, symbol: str) -> List[OpenOrder]:
        return [
            OpenOrder(id=o.order_id, side=o.side, price=o.price)
            for o in self._open.values()
            if o.symbol == symbol
        ]

    def cancel_order(self, order_id: str, symbol: str) -> None:
        order = self._open.get(order_id)
        if order is None or order.symbol != symbol:
            raise GatewayError("cancel_order", symbol, KeyError(f"order {order_id} not open"))
        order.status = "canceled"
        del self._open[order_id]
        logger.info(f"[PAPER] Canceled {order.order_type} {order_id} for {symbol}")

    def fetch_balance(self) -> Dict[str, Any]:
        total = dict(self._balances)
        return {"total": total, "free": dict(total)}

    @property
    def filled_orders(self) -> List[Dict[str, Any]]:
        return [o.to_ccxt_format() for o in self._filled]
