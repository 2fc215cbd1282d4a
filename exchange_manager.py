# exchange_manager.py - ccxt-backed exchange gateway (candles, orders, balance)

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import ccxt
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_random_exponential

from candle_strategy import Candle, candles_from_ohlcv
from errors import GatewayError
from trading_config import TradingConfig


CONDITIONAL_KINDS = ("stop", "take_profit")


def _to_float(x: Any) -> Optional[float]:
    try:
        if x is None:
            return None
        return float(x)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class OpenOrder:
    """Open order as reported by the exchange."""
    id: str
    side: str
    price: Optional[float]

    @classmethod
    def from_ccxt(cls, order: Dict[str, Any]) -> "OpenOrder":
        # Trigger orders often report price=None; fall back to the trigger level
        price = _to_float(order.get("price"))
        if price is None or price <= 0:
            price = _to_float(order.get("triggerPrice")) or _to_float(order.get("stopPrice"))
        return cls(id=str(order.get("id")), side=str(order.get("side", "")).lower(), price=price)


def create_ccxt_exchange(
    exchange_id: str,
    api_key: str = "",
    secret: str = "",
    password: str = "",
    timeout_ms: int = 30000,
) -> ccxt.Exchange:
    """Build a rate-limited ccxt client. Credentials may be empty for public data."""
    exchange_cls = getattr(ccxt, exchange_id, None)
    if exchange_cls is None:
        raise ValueError(f"Unknown ccxt exchange id '{exchange_id}'")

    config: Dict[str, Any] = {
        "enableRateLimit": True,
        "timeout": timeout_ms,
    }
    if api_key:
        config.update({"apiKey": api_key, "secret": secret, "password": password})
    return exchange_cls(config)


class CcxtGateway:
    """
    Exchange gateway over a ccxt client.

    Every ccxt failure is re-raised as GatewayError naming the operation
    and symbol. Read-only informational calls (markets, balance) retry on
    network errors; trading calls are never retried.
    """

    def __init__(self, exchange: ccxt.Exchange, default_limit: Optional[int] = None):
        self.ex = exchange
        self.default_limit = default_limit
        self._markets_loaded = False

    @retry(wait=wait_random_exponential(min=1, max=8),
           stop=stop_after_attempt(3),
           retry=retry_if_exception_type(ccxt.NetworkError),
           reraise=True)
    def _load_markets(self) -> None:
        self.ex.load_markets()

    def _ensure_markets(self, symbol: Optional[str] = None) -> None:
        if self._markets_loaded:
            return
        try:
            self._load_markets()
        except ccxt.BaseError as e:
            raise GatewayError("load_markets", symbol, e) from e
        self._markets_loaded = True

    def _amount(self, symbol: str, size: float) -> float:
        self._ensure_markets(symbol)
        try:
            return float(self.ex.amount_to_precision(symbol, size))
        except ccxt.BaseError as e:
            raise GatewayError("amount_to_precision", symbol, e) from e

    def _price(self, symbol: str, price: float) -> float:
        self._ensure_markets(symbol)
        try:
            return float(self.ex.price_to_precision(symbol, price))
        except ccxt.BaseError as e:
            raise GatewayError("price_to_precision", symbol, e) from e

    def fetch_candles(self, symbol: str, timeframe: str, limit: Optional[int] = None) -> List[Candle]:
        """
        Fetch OHLCV candles.

        Returns:
            Candles ordered ascending by timestamp, without duplicates
        """
        limit = limit or self.default_limit
        try:
            rows = self.ex.fetch_ohlcv(symbol, timeframe=timeframe, limit=limit)
        except ccxt.BaseError as e:
            raise GatewayError("fetch_candles", symbol, e) from e
        return candles_from_ohlcv(rows or [])

    def create_market_order(
        self,
        symbol: str,
        side: str,
        size: float,
        price: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Submit a market order.

        `price` is the reference price; some exchanges (bitget spot buys)
        need it to turn a base amount into a quote cost.
        """
        amount = self._amount(symbol, size)
        if amount <= 0:
            raise GatewayError("create_market_order", symbol, ValueError(f"size {size} rounds to zero"))
        try:
            order = self.ex.create_order(symbol, "market", side, amount, price)
        except ccxt.BaseError as e:
            raise GatewayError("create_market_order", symbol, e) from e
        logger.info(f"[GATEWAY] Market {side} {amount} {symbol} → id={order.get('id')}")
        return order

    def create_conditional_order(
        self,
        symbol: str,
        kind: str,
        side: str,
        size: float,
        trigger_price: float,
    ) -> Dict[str, Any]:
        """
        Submit a stop-loss or take-profit trigger order.

        Args:
            kind: "stop" or "take_profit"
            trigger_price: level at which the exchange releases the order
        """
        if kind not in CONDITIONAL_KINDS:
            raise ValueError(f"Unknown conditional order kind '{kind}'")
        amount = self._amount(symbol, size)
        price = self._price(symbol, trigger_price)
        try:
            order = self.ex.create_order(symbol, "limit", side, amount, price, {"triggerPrice": price})
        except ccxt.BaseError as e:
            raise GatewayError(f"create_conditional_order[{kind}]", symbol, e) from e
        logger.info(f"[GATEWAY] {kind} {side} {amount} {symbol} @ {price} → id={order.get('id')}")
        return order

    def fetch_open_orders(self, symbol: str) -> List[OpenOrder]:
        try:
            orders = self.ex.fetch_open_orders(symbol)
        except ccxt.BaseError as e:
            raise GatewayError("fetch_open_orders", symbol, e) from e
        return [OpenOrder.from_ccxt(o) for o in orders or []]

    def cancel_order(self, order_id: str, symbol: str) -> None:
        try:
            self.ex.cancel_order(order_id, symbol)
        except ccxt.BaseError as e:
            raise GatewayError("cancel_order", symbol, e) from e

    @retry(wait=wait_random_exponential(min=1, max=8),
           stop=stop_after_attempt(3),
           retry=retry_if_exception_type(ccxt.NetworkError),
           reraise=True)
    def _fetch_balance(self) -> Dict[str, Any]:
        b: Any = self.ex.fetch_balance()
        return b if isinstance(b, dict) else dict(b)

    def fetch_balance(self) -> Dict[str, Any]:
        try:
            return self._fetch_balance()
        except ccxt.BaseError as e:
            raise GatewayError("fetch_balance", None, e) from e


def make_gateway(config: TradingConfig, api_key: str = "", secret: str = "", password: str = ""):
    """
    Build the gateway for the configured mode.

    Paper mode reads public market data through ccxt and simulates orders;
    live mode sends orders with the given credentials.
    """
    if config.paper_mode:
        from paper_exchange_wrapper import PaperExchangeWrapper

        public = create_ccxt_exchange(config.exchange_id, timeout_ms=config.request_timeout_ms)
        data = CcxtGateway(public, default_limit=config.candle_limit)
        logger.info(f"[GATEWAY] {config.exchange_id}: PAPER mode (orders simulated)")
        return PaperExchangeWrapper(data, starting_quote=config.risk.account_balance)

    ex = create_ccxt_exchange(
        config.exchange_id,
        api_key=api_key,
        secret=secret,
        password=password,
        timeout_ms=config.request_timeout_ms,
    )
    logger.warning(f"[GATEWAY] {config.exchange_id}: LIVE mode - REAL MONEY")
    return CcxtGateway(ex, default_limit=config.candle_limit)
