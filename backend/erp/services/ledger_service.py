# Overview: Service-layer operations for the stock ledger; append-only movements and derived balances.

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from itertools import product as _cartesian

from flask import current_app, has_app_context
from sqlalchemy import func

from ..extensions import db
from ..models import StockLedgerEntry
from ..number_utils import ZERO, dec
from ..validation import ValidationError
"""
Stock Ledger Invariants (authoritative)

- Append-only: entries are inserted, never updated. Mistakes are corrected by
  appending negated entries (reversals), never by editing history.
- Quantity on hand is derived: SUM(quantity) over entries for (item, warehouse)
  with effective_date <= as_of (inclusive). It is never stored.
- Sums within epsilon of zero (STOCK_EPSILON, default 1e-4) are reported as 0.
- effective_date is the business date of the source document; compensating
  entries (reversal, restore, update reversal) reuse the ORIGINAL document's
  business date so as-of balances for past dates stay correct.
- Writes flush but never commit: the caller owns the transaction.
"""


DEFAULT_EPSILON = Decimal("0.0001")


def stock_epsilon() -> Decimal:
    if has_app_context():
        return Decimal(str(current_app.config.get("STOCK_EPSILON", DEFAULT_EPSILON)))
    return DEFAULT_EPSILON


def clamp_epsilon(value, epsilon: Decimal | None = None) -> Decimal:
    eps = stock_epsilon() if epsilon is None else epsilon
    value = dec(value)
    return ZERO if abs(value) < eps else value


# =============================================================================
# REFERENCE TYPES
# =============================================================================

class DocumentFamily(str, enum.Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    PRODUCTION = "PRODUCTION"
    TRANSFER = "TRANSFER"


class LedgerOperation(str, enum.Enum):
    BASE = "BASE"
    UPDATE = "UPDATE"
    UPDATE_REVERSAL = "UPDATE_REVERSAL"
    REVERSAL = "REVERSAL"
    RESTORE = "RESTORE"


# Sub-kinds of entries a single document posts (None = the family's main entry)
FAMILY_COMPONENTS: dict[DocumentFamily, tuple[str | None, ...]] = {
    DocumentFamily.PURCHASE: (None,),
    DocumentFamily.SALE: (None,),
    DocumentFamily.PRODUCTION: (None, "CONSUMPTION", "ADJUSTMENT"),
    DocumentFamily.TRANSFER: ("OUT", "IN"),
}


@dataclass(frozen=True)
class ReferenceType:
    """
    Structured ledger reference type.

    Stored as FAMILY[_COMPONENT][_OPERATION]; BASE is implicit:
        ReferenceType(SALE)                               -> "SALE"
        ReferenceType(SALE, UPDATE_REVERSAL)              -> "SALE_UPDATE_REVERSAL"
        ReferenceType(PRODUCTION, RESTORE, "CONSUMPTION") -> "PRODUCTION_CONSUMPTION_RESTORE"
    """
    family: DocumentFamily
    operation: LedgerOperation = LedgerOperation.BASE
    component: str | None = None

    def __post_init__(self):
        if self.component not in FAMILY_COMPONENTS[self.family]:
            raise ValueError(f"{self.family.value} has no component {self.component!r}")

    def serialize(self) -> str:
        parts = [self.family.value]
        if self.component:
            parts.append(self.component)
        if self.operation is not LedgerOperation.BASE:
            parts.append(self.operation.value)
        return "_".join(parts)

    @classmethod
    def parse(cls, value: str) -> "ReferenceType":
        for family in DocumentFamily:
            if value == family.value or value.startswith(family.value + "_"):
                break
        else:
            raise ValueError(f"unknown reference type: {value!r}")

        rest = value[len(family.value) + 1:]
        component = None
        for candidate in FAMILY_COMPONENTS[family]:
            if candidate and (rest == candidate or rest.startswith(candidate + "_")):
                component = candidate
                rest = rest[len(candidate) + 1:]
                break

        if not rest:
            operation = LedgerOperation.BASE
        else:
            try:
                operation = LedgerOperation(rest)
            except ValueError:
                raise ValueError(f"unknown reference type: {value!r}")
            if operation is LedgerOperation.BASE:
                raise ValueError(f"unknown reference type: {value!r}")
        return cls(family, operation, component)

    def __str__(self) -> str:
        return self.serialize()


def family_reference_types(family: DocumentFamily) -> list[str]:
    """Every serialized reference type a document of this family can produce."""
    return [
        ReferenceType(family, op, component).serialize()
        for component, op in _cartesian(FAMILY_COMPONENTS[family], LedgerOperation)
    ]


# =============================================================================
# WRITES
# =============================================================================

def append_entry(
    *,
    item_id: int,
    warehouse_id: int,
    quantity,
    reference_type: ReferenceType | str,
    reference_id: int,
    effective_date: date,
) -> StockLedgerEntry:
    """
    Append one ledger entry (flush, no commit).

    No business-rule checks here: callers decide whether a movement is allowed.
    """
    if isinstance(reference_type, ReferenceType):
        reference_type = reference_type.serialize()
    entry = StockLedgerEntry(
        item_id=item_id,
        warehouse_id=warehouse_id,
        quantity=dec(quantity),
        reference_type=reference_type,
        reference_id=reference_id,
        effective_date=effective_date,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def delete_entries_for_document(family: DocumentFamily, reference_id: int) -> int:
    """Hard-delete every entry a document produced (purge only)."""
    return (
        db.session.query(StockLedgerEntry)
        .filter(
            StockLedgerEntry.reference_type.in_(family_reference_types(family)),
            StockLedgerEntry.reference_id == reference_id,
        )
        .delete(synchronize_session=False)
    )


# =============================================================================
# READS
# =============================================================================

def get_balance(item_id: int, warehouse_id: int, as_of: date | None = None) -> Decimal:
    """
    Quantity on hand for (item, warehouse), inclusive of as_of.

    Runs inside the caller's session, so uncommitted entries of the current
    unit of work are visible.
    """
    q = db.session.query(
        func.coalesce(func.sum(StockLedgerEntry.quantity), 0)
    ).filter(
        StockLedgerEntry.item_id == item_id,
        StockLedgerEntry.warehouse_id == warehouse_id,
    )
    if as_of is not None:
        q = q.filter(StockLedgerEntry.effective_date <= as_of)

    return clamp_epsilon(q.scalar())


GROUPINGS = {
    "item_warehouse": (StockLedgerEntry.item_id, StockLedgerEntry.warehouse_id),
    "item": (StockLedgerEntry.item_id,),
    "warehouse": (StockLedgerEntry.warehouse_id,),
}


def get_balances(
    *,
    group_by: str = "item_warehouse",
    item_id: int | None = None,
    warehouse_id: int | None = None,
    as_of: date | None = None,
    include_zero: bool = False,
) -> list[dict]:
    """Grouped balances: one dict per group with its keys and quantity."""
    if group_by not in GROUPINGS:
        raise ValidationError(f"group_by must be one of {sorted(GROUPINGS)}")
    columns = GROUPINGS[group_by]

    q = db.session.query(
        *columns, func.coalesce(func.sum(StockLedgerEntry.quantity), 0)
    )
    if item_id is not None:
        q = q.filter(StockLedgerEntry.item_id == item_id)
    if warehouse_id is not None:
        q = q.filter(StockLedgerEntry.warehouse_id == warehouse_id)
    if as_of is not None:
        q = q.filter(StockLedgerEntry.effective_date <= as_of)
    q = q.group_by(*columns).order_by(*columns)

    eps = stock_epsilon()
    rows = []
    for row in q.all():
        quantity = clamp_epsilon(row[-1], eps)
        if quantity == 0 and not include_zero:
            continue
        data = {col.key: value for col, value in zip(columns, row[:-1])}
        data["quantity"] = quantity
        rows.append(data)
    return rows


def list_entries(
    *,
    reference_id: int | None = None,
    family: DocumentFamily | None = None,
    item_id: int | None = None,
    warehouse_id: int | None = None,
    limit: int | None = 200,
) -> list[StockLedgerEntry]:
    q = StockLedgerEntry.query
    if family is not None:
        q = q.filter(StockLedgerEntry.reference_type.in_(family_reference_types(family)))
    if reference_id is not None:
        q = q.filter(StockLedgerEntry.reference_id == reference_id)
    if item_id is not None:
        q = q.filter(StockLedgerEntry.item_id == item_id)
    if warehouse_id is not None:
        q = q.filter(StockLedgerEntry.warehouse_id == warehouse_id)
    return q.order_by(StockLedgerEntry.id.asc()).limit(limit).all()
