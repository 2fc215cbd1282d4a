"""
errors.py - Error taxonomy for the trading loop

GatewayError          exchange/network/auth failure from any gateway call
InsufficientDataError candle history shorter than an indicator period
InvalidStateError     ledger invariant violation (should never surface)
"""

from typing import Optional


class GatewayError(Exception):
    """A gateway call failed. Aborts the current symbol for this cycle only."""

    def __init__(self, operation: str, symbol: Optional[str] = None, cause: Optional[BaseException] = None):
        self.operation = operation
        self.symbol = symbol
        self.cause = cause
        where = f" for {symbol}" if symbol else ""
        reason = f": {type(cause).__name__}: {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed{where}{reason}")


class InsufficientDataError(Exception):
    """Not enough candles for an indicator window. Values stay absent."""

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(f"Insufficient candles: {available} < {required}")


class InvalidStateError(Exception):
    """Position ledger invariant violated."""
