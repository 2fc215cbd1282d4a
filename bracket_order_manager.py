"""
Bracket Order Manager - market entry + stop-loss + take-profit

Every entry is followed by two protective conditional orders on the
opposing side. If a leg cannot be placed the position is still recorded,
flagged as an incomplete bracket, and an operator alert goes out.

Reconciliation compares the exchange's open orders against the recorded
stop/target levels; when one is triggered both legs are cancelled and the
position is cleared.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from errors import GatewayError
from notify import alert
from position_tracker import BracketOrder, PositionLedger, PositionSide
from trading_config import RiskConfig


@dataclass
class BracketConfig:
    """Configuration for bracket orders."""
    stop_loss_pct: float = 0.01
    take_profit_pct: float = 0.02

    @classmethod
    def from_risk(cls, risk: RiskConfig) -> 'BracketConfig':
        return cls(stop_loss_pct=risk.stop_loss_pct, take_profit_pct=risk.take_profit_pct)


def calculate_bracket_prices(
    side: PositionSide,
    entry_price: float,
    config: BracketConfig,
) -> Tuple[float, float]:
    """
    Calculate (stop_price, target_price) for an entry.

    LONG:  stop = E * (1 - s), target = E * (1 + t)
    SHORT: stop = E * (1 + s), target = E * (1 - t)
    """
    if entry_price <= 0:
        raise ValueError(f"entry_price must be > 0 (got {entry_price})")
    if side is PositionSide.LONG:
        return (entry_price * (1 - config.stop_loss_pct),
                entry_price * (1 + config.take_profit_pct))
    return (entry_price * (1 + config.stop_loss_pct),
            entry_price * (1 - config.take_profit_pct))


class EntryStatus(Enum):
    OPENED = "opened"
    FAILED = "failed"                             # market order rejected, nothing changed
    BRACKET_INCOMPLETE = "bracket_incomplete"     # position open, a protective leg missing


@dataclass
class EntryResult:
    status: EntryStatus
    symbol: str
    side: PositionSide
    bracket: Optional[BracketOrder] = None
    errors: Optional[List[str]] = None

    @property
    def position_opened(self) -> bool:
        return self.status is not EntryStatus.FAILED

    def __str__(self) -> str:
        if self.status is EntryStatus.FAILED:
            return f"FAILED {self.side.value.upper()} {self.symbol}: {'; '.join(self.errors or [])}"
        return f"{self.status.value.upper()}: {self.bracket}"


def _order_id(order: Optional[Dict[str, Any]]) -> Optional[str]:
    if not order or order.get("id") is None:
        return None
    return str(order["id"])


def is_triggered(bracket: BracketOrder, price: float) -> bool:
    """
    LONG:  price <= stop or price >= target
    SHORT: price >= stop or price <= target
    """
    if bracket.side is PositionSide.LONG:
        return price <= bracket.stop_price or price >= bracket.target_price
    return price >= bracket.stop_price or price <= bracket.target_price


class BracketOrderManager:
    """Places entries with brackets and reconciles them against open orders."""

    def __init__(self, gateway, ledger: PositionLedger, config: Optional[BracketConfig] = None):
        self.gateway = gateway
        self.ledger = ledger
        self.config = config or BracketConfig()

    def enter_position(
        self,
        symbol: str,
        side: PositionSide,
        size: float,
        entry_price: float,
    ) -> EntryResult:
        """
        Market entry followed by stop-loss and take-profit legs.

        Returns:
            EntryResult; FAILED leaves the ledger untouched
        """
        if size <= 0:
            return EntryResult(EntryStatus.FAILED, symbol, side, errors=[f"invalid size {size}"])

        try:
            entry_order = self.gateway.create_market_order(symbol, side.entry_side, size, entry_price)
        except GatewayError as e:
            logger.error(f"[BRACKET-FAILED] {symbol}: {side.entry_side} {size:.6f} market order rejected: {e}")
            return EntryResult(EntryStatus.FAILED, symbol, side, errors=[str(e)])

        logger.info(f"[BRACKET] Order placed: {side.entry_side} {size:.6f} {symbol} (id={_order_id(entry_order)})")

        stop_price, target_price = calculate_bracket_prices(side, entry_price, self.config)

        if self.ledger.is_open(symbol):
            self._supersede(symbol)

        errors: List[str] = []
        stop_id = self._place_leg(symbol, "stop", side, size, stop_price, errors)
        target_id = self._place_leg(symbol, "take_profit", side, size, target_price, errors)

        bracket = self.ledger.set_open(
            symbol,
            side,
            entry_price=entry_price,
            size=size,
            stop_price=stop_price,
            target_price=target_price,
            entry_order_id=_order_id(entry_order),
            stop_order_id=stop_id,
            target_order_id=target_id,
        )
        self.ledger.check_invariant(symbol)

        logger.info(f"[BRACKET] {symbol}: Stop Loss at {stop_price:.4f} and Take Profit at {target_price:.4f}")

        if errors:
            msg = (
                f"{symbol}: {side.value.upper()} position open WITHOUT full bracket "
                f"(SL id={stop_id}, TP id={target_id}): {'; '.join(errors)}"
            )
            logger.error(f"[BRACKET-INCOMPLETE] {msg}")
            alert(f"[BRACKET-INCOMPLETE] {msg}")
            return EntryResult(EntryStatus.BRACKET_INCOMPLETE, symbol, side, bracket=bracket, errors=errors)

        return EntryResult(EntryStatus.OPENED, symbol, side, bracket=bracket)

    def _place_leg(
        self,
        symbol: str,
        kind: str,
        side: PositionSide,
        size: float,
        trigger_price: float,
        errors: List[str],
    ) -> Optional[str]:
        try:
            order = self.gateway.create_conditional_order(symbol, kind, side.exit_side, size, trigger_price)
        except GatewayError as e:
            logger.error(f"[BRACKET-ERR] {symbol}: {kind} leg @ {trigger_price:.4f} failed: {e}")
            errors.append(str(e))
            return None
        return _order_id(order)

    def _supersede(self, symbol: str) -> None:
        """Reversal: cancel the old legs and drop the old bracket."""
        old = self.ledger.get(symbol).bracket
        if old is None:
            return
        logger.info(f"[BRACKET] {symbol}: superseding {old.side.value.upper()} bracket")
        self._cancel_legs(symbol, old)
        self.ledger.clear(symbol)

    def _cancel_legs(self, symbol: str, bracket: BracketOrder, skip: Optional[str] = None) -> None:
        """Cancel the bracket's resting legs; failures are logged, not raised."""
        for order_id in bracket.leg_order_ids:
            if order_id == skip:
                continue
            try:
                self.gateway.cancel_order(order_id, symbol)
            except GatewayError as e:
                logger.warning(f"[BRACKET] {symbol}: could not cancel leg {order_id}: {e}")

    def reconcile(self, symbol: str):
        """
        Check open orders against the recorded stop/target levels.

        Returns:
            The triggered OpenOrder (after cancelling it and the other leg,
            and clearing the ledger), or None

        Raises:
            GatewayError: fetching or cancelling failed
        """
        bracket = self.ledger.get(symbol).bracket
        if bracket is None:
            return None

        orders = self.gateway.fetch_open_orders(symbol)
        logger.debug(f"[RECONCILE] {symbol}: {len(orders)} open order(s)")

        for order in orders:
            if order.price is None:
                continue
            if not is_triggered(bracket, order.price):
                continue
            logger.info(f"[RECONCILE] Order {order.side} triggered at {order.price} for {symbol}")
            self.gateway.cancel_order(order.id, symbol)
            logger.info(f"[RECONCILE] Order {order.side} canceled at {order.price} for {symbol}")
            self._cancel_legs(symbol, bracket, skip=order.id)
            self.ledger.clear(symbol)
            self.ledger.check_invariant(symbol)
            return order

        return None
