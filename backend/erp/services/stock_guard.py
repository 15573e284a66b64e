# Overview: Stock availability guard for outbound documents (sales, transfers).

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from flask import current_app

from ..validation import InsufficientStockError, Shortfall
from .document_families import LedgerEffect
from .ledger_service import get_balance, stock_epsilon


def _outbound_by_key(effects: Iterable[LedgerEffect]) -> dict[tuple[int, int], Decimal]:
    totals: dict[tuple[int, int], Decimal] = defaultdict(Decimal)
    for effect in effects:
        if effect.quantity < 0:
            totals[(effect.item_id, effect.warehouse_id)] += -effect.quantity
    return totals


def _net_by_key(effects: Iterable[LedgerEffect]) -> dict[tuple[int, int], Decimal]:
    totals: dict[tuple[int, int], Decimal] = defaultdict(Decimal)
    for effect in effects:
        totals[(effect.item_id, effect.warehouse_id)] += effect.quantity
    return totals


def check_availability(
    effects: Iterable[LedgerEffect],
    *,
    editing_effects: Iterable[LedgerEffect] = (),
) -> list[Shortfall]:
    """
    Compare requested outbound quantities against current balances.

    - Requests for the same (item, warehouse) within one document are summed
      before comparing, so two lines of 60 against a balance of 100 fail.
    - When editing, the old document's effects are virtually undone first:
      available = balance - (net old effect at that item/warehouse).
    - A shortfall is reported when requested > available + epsilon.

    Balances are read without an as-of date (current stock).
    """
    requested = _outbound_by_key(effects)
    old = _net_by_key(editing_effects)
    eps = stock_epsilon()

    shortfalls = []
    for (item_id, warehouse_id), qty in requested.items():
        available = get_balance(item_id, warehouse_id) - old.get((item_id, warehouse_id), Decimal("0"))
        if qty > available + eps:
            shortfalls.append(Shortfall(item_id, warehouse_id, available, qty))
    return shortfalls


def ensure_available(
    effects: Iterable[LedgerEffect],
    *,
    editing_effects: Iterable[LedgerEffect] = (),
    context: str = "document",
) -> None:
    """Raise InsufficientStockError (before any line is written) when stock is short."""
    shortfalls = check_availability(effects, editing_effects=editing_effects)
    if shortfalls:
        current_app.logger.warning(
            "Rejected %s: insufficient stock for %d item(s)", context, len(shortfalls)
        )
        raise InsufficientStockError(shortfalls)
