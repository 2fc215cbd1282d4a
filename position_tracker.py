"""
position_tracker.py - In-memory position & bracket ledger

One entry per symbol: the directional position (none/long/short) and the
bracket (entry, stop-loss, take-profit, size, leg order ids) that protects it.

Key Features:
- Position and bracket are stored together, so both are present or both absent
- set_open() refuses to overwrite an open entry
- Mutations are synchronous; no persistence across restarts
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from loguru import logger

from errors import InvalidStateError


class PositionSide(Enum):
    LONG = "long"
    SHORT = "short"

    @property
    def entry_side(self) -> str:
        """Order side that opens this position"""
        return "buy" if self is PositionSide.LONG else "sell"

    @property
    def exit_side(self) -> str:
        """Order side of the protective legs"""
        return "sell" if self is PositionSide.LONG else "buy"


@dataclass
class BracketOrder:
    """Open position with its stop-loss / take-profit levels."""
    symbol: str
    side: PositionSide
    size: float
    entry_price: float
    stop_price: float
    target_price: float
    entry_order_id: Optional[str] = None
    stop_order_id: Optional[str] = None
    target_order_id: Optional[str] = None
    opened_at: float = field(default_factory=time.time)

    @property
    def complete(self) -> bool:
        """Both protective legs were accepted by the exchange"""
        return self.stop_order_id is not None and self.target_order_id is not None

    @property
    def leg_order_ids(self) -> List[str]:
        return [oid for oid in (self.stop_order_id, self.target_order_id) if oid is not None]

    def validate(self) -> None:
        """Raise InvalidStateError unless size > 0 and prices are ordered for the side."""
        if self.size <= 0:
            raise InvalidStateError(f"{self.symbol}: bracket size must be > 0 (got {self.size})")
        if self.side is PositionSide.LONG:
            ordered = self.stop_price < self.entry_price < self.target_price
        else:
            ordered = self.target_price < self.entry_price < self.stop_price
        if not ordered:
            raise InvalidStateError(
                f"{self.symbol}: {self.side.value.upper()} bracket out of order "
                f"(stop={self.stop_price}, entry={self.entry_price}, target={self.target_price})"
            )

    def __str__(self) -> str:
        return (
            f"{self.side.value.upper()} {self.symbol} size={self.size:.6f} "
            f"entry={self.entry_price:.4f} SL={self.stop_price:.4f} TP={self.target_price:.4f}"
            f"{'' if self.complete else ' [INCOMPLETE BRACKET]'}"
        )


@dataclass(frozen=True)
class LedgerEntry:
    """Snapshot of one symbol's state."""
    position: Optional[PositionSide] = None
    bracket: Optional[BracketOrder] = None


class PositionLedger:
    """Per-symbol position and bracket store. Owned by the scan loop."""

    def __init__(self):
        self._brackets: Dict[str, BracketOrder] = {}

    def get(self, symbol: str) -> LedgerEntry:
        bracket = self._brackets.get(symbol)
        if bracket is None:
            return LedgerEntry()
        return LedgerEntry(position=bracket.side, bracket=bracket)

    def position(self, symbol: str) -> Optional[PositionSide]:
        return self.get(symbol).position

    def is_open(self, symbol: str) -> bool:
        return symbol in self._brackets

    def set_open(
        self,
        symbol: str,
        side: PositionSide,
        entry_price: float,
        size: float,
        stop_price: float,
        target_price: float,
        entry_order_id: Optional[str] = None,
        stop_order_id: Optional[str] = None,
        target_order_id: Optional[str] = None,
    ) -> BracketOrder:
        """
        Record a new position with its bracket.

        Raises:
            InvalidStateError: symbol already open, or bracket levels invalid
        """
        if symbol in self._brackets:
            raise InvalidStateError(
                f"{symbol}: cannot open {side.value.upper()}, "
                f"{self._brackets[symbol].side.value.upper()} already open"
            )
        bracket = BracketOrder(
            symbol=symbol,
            side=side,
            size=size,
            entry_price=entry_price,
            stop_price=stop_price,
            target_price=target_price,
            entry_order_id=entry_order_id,
            stop_order_id=stop_order_id,
            target_order_id=target_order_id,
        )
        bracket.validate()
        self._brackets[symbol] = bracket
        logger.info(f"[LEDGER] ✅ Opened {bracket}")
        return bracket

    def clear(self, symbol: str) -> Optional[BracketOrder]:
        """Remove the symbol's entry. Returns the removed bracket, if any."""
        bracket = self._brackets.pop(symbol, None)
        if bracket is not None:
            logger.info(f"[LEDGER] ❌ Cleared {bracket.side.value.upper()} {symbol}")
        return bracket

    def check_invariant(self, symbol: str) -> None:
        """Position and bracket must agree; the stored bracket must be valid."""
        entry = self.get(symbol)
        if (entry.position is None) != (entry.bracket is None):
            raise InvalidStateError(f"{symbol}: position/bracket mismatch ({entry})")
        if entry.bracket is not None:
            if entry.bracket.symbol != symbol:
                raise InvalidStateError(f"{symbol}: ledger holds bracket for {entry.bracket.symbol}")
            entry.bracket.validate()

    def open_symbols(self) -> List[str]:
        return sorted(self._brackets)

    def summary(self) -> str:
        """Human-readable summary of all positions"""
        if not self._brackets:
            return "[LEDGER] No open positions"

        lines = [f"[LEDGER] {len(self._brackets)} open position(s):"]
        for symbol in self.open_symbols():
            bracket = self._brackets[symbol]
            age_minutes = int((time.time() - bracket.opened_at) / 60)
            lines.append(f"  {bracket}, Age={age_minutes}m")
        return "\n".join(lines)
