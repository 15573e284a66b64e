# Overview: Per-family description of transaction documents (ledger effects, dates, dependencies).

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable

from ..extensions import db
from ..models import (
    ProductionConsumption,
    ProductionRun,
    Purchase,
    Sale,
    SaleLine,
    StockTransfer,
)
from ..number_utils import dec, to_decimal_str
from ..time_utils import to_iso_date, to_utc_z
from ..validation import ValidationError
from .ledger_service import DocumentFamily, LedgerOperation, ReferenceType
"""
Document families

Every transaction document (Purchase, Sale, ProductionRun, StockTransfer)
is described by a FamilySpec. Lifecycle code never branches on the concrete
document class; it asks the spec:

- effects(doc)       -> the BASE ledger movements the document stands for
- business_date(doc) -> the date every compensating entry is backdated to
- find_blocker(doc)  -> an ACTIVE downstream document that consumed this
                        document's stock (soft-delete is refused while it exists)
- outbound           -> whether creation/edit runs the stock availability guard

Sign conventions (BASE entries):
  PURCHASE                 +quantity into purchase warehouse
  SALE                     -quantity from sale warehouse
  PRODUCTION               +output_quantity of output item
  PRODUCTION_CONSUMPTION   -actual_qty per consumption line
  PRODUCTION_ADJUSTMENT    -variance per consumption line with variance != 0
  TRANSFER_OUT             -quantity from source warehouse
  TRANSFER_IN              +quantity into destination (only if one is given)
"""


@dataclass(frozen=True)
class LedgerEffect:
    item_id: int
    warehouse_id: int
    quantity: Decimal
    component: str | None = None

    def reference_type(self, family: DocumentFamily, operation: LedgerOperation) -> ReferenceType:
        return ReferenceType(family, operation, self.component)


@dataclass(frozen=True)
class Blocker:
    """An ACTIVE document that depends on the one being deleted."""
    doc_type: str
    doc_id: int
    doc_date: date


@dataclass(frozen=True)
class FamilySpec:
    family: DocumentFamily
    model: type
    label: str
    date_attr: str
    outbound: bool
    effects: Callable[[object], list[LedgerEffect]]
    trash_entity: Callable[[object], str]
    trash_amount: Callable[[object], Decimal]
    find_blocker: Callable[[object], Blocker | None] = lambda doc: None

    def business_date(self, doc) -> date:
        return getattr(doc, self.date_attr)

    def trash_summary(self, doc) -> dict:
        return {
            "id": doc.id,
            "date": to_iso_date(self.business_date(doc)),
            "entity": self.trash_entity(doc) or "-",
            "amount": to_decimal_str(self.trash_amount(doc)),
            "deleted_at": to_utc_z(doc.deleted_at),
            "type": self.family.value,
        }


# =============================================================================
# EFFECTS
# =============================================================================

def _purchase_effects(doc: Purchase) -> list[LedgerEffect]:
    return [
        LedgerEffect(line.item_id, doc.warehouse_id, dec(line.quantity))
        for line in doc.lines
    ]


def _sale_effects(doc: Sale) -> list[LedgerEffect]:
    return [
        LedgerEffect(line.item_id, doc.warehouse_id, -dec(line.quantity))
        for line in doc.lines
    ]


def _production_effects(doc: ProductionRun) -> list[LedgerEffect]:
    effects = [LedgerEffect(doc.output_item_id, doc.warehouse_id, dec(doc.output_quantity))]
    for c in doc.consumptions:
        effects.append(
            LedgerEffect(c.item_id, doc.warehouse_id, -dec(c.actual_qty), "CONSUMPTION")
        )
    for c in doc.consumptions:
        variance = dec(c.variance)
        if variance != 0:
            effects.append(LedgerEffect(c.item_id, doc.warehouse_id, -variance, "ADJUSTMENT"))
    return effects


def _transfer_effects(doc: StockTransfer) -> list[LedgerEffect]:
    effects = [
        LedgerEffect(line.item_id, doc.from_warehouse_id, -dec(line.quantity), "OUT")
        for line in doc.lines
    ]
    if doc.to_warehouse_id is not None:
        effects.extend(
            LedgerEffect(line.item_id, doc.to_warehouse_id, dec(line.quantity), "IN")
            for line in doc.lines
        )
    return effects


# =============================================================================
# DEPENDENCIES
# =============================================================================

def _purchase_blocker(doc: Purchase) -> Blocker | None:
    """
    A purchase cannot be trashed while an ACTIVE sale (or production run)
    dated on/after it uses any of its items.

    Matching is by item only, not warehouse.
    """
    item_ids = {line.item_id for line in doc.lines}
    if not item_ids:
        return None

    sale = (
        db.session.query(Sale)
        .join(SaleLine, SaleLine.sale_id == Sale.id)
        .filter(
            Sale.is_deleted.is_(False),
            Sale.sale_date >= doc.purchase_date,
            SaleLine.item_id.in_(item_ids),
        )
        .order_by(Sale.sale_date.asc(), Sale.id.asc())
        .first()
    )
    if sale is not None:
        return Blocker("SALE", sale.id, sale.sale_date)

    run = (
        db.session.query(ProductionRun)
        .join(ProductionConsumption, ProductionConsumption.production_run_id == ProductionRun.id)
        .filter(
            ProductionRun.is_deleted.is_(False),
            ProductionRun.production_date >= doc.purchase_date,
            ProductionConsumption.item_id.in_(item_ids),
        )
        .order_by(ProductionRun.production_date.asc(), ProductionRun.id.asc())
        .first()
    )
    if run is not None:
        return Blocker("PRODUCTION", run.id, run.production_date)
    return None


def _production_blocker(doc: ProductionRun) -> Blocker | None:
    sale = (
        db.session.query(Sale)
        .join(SaleLine, SaleLine.sale_id == Sale.id)
        .filter(
            Sale.is_deleted.is_(False),
            Sale.sale_date >= doc.production_date,
            SaleLine.item_id == doc.output_item_id,
        )
        .order_by(Sale.sale_date.asc(), Sale.id.asc())
        .first()
    )
    if sale is not None:
        return Blocker("SALE", sale.id, sale.sale_date)
    return None


# =============================================================================
# REGISTRY
# =============================================================================

PURCHASE_SPEC = FamilySpec(
    family=DocumentFamily.PURCHASE,
    model=Purchase,
    label="Purchase",
    date_attr="purchase_date",
    outbound=False,
    effects=_purchase_effects,
    trash_entity=lambda doc: doc.supplier.name if doc.supplier else None,
    trash_amount=lambda doc: doc.total_amount,
    find_blocker=_purchase_blocker,
)

SALE_SPEC = FamilySpec(
    family=DocumentFamily.SALE,
    model=Sale,
    label="Sale",
    date_attr="sale_date",
    outbound=True,
    effects=_sale_effects,
    trash_entity=lambda doc: doc.customer.name if doc.customer else None,
    trash_amount=lambda doc: doc.total_amount,
)

PRODUCTION_SPEC = FamilySpec(
    family=DocumentFamily.PRODUCTION,
    model=ProductionRun,
    label="Production run",
    date_attr="production_date",
    # Manual production entry is not gated by availability
    outbound=False,
    effects=_production_effects,
    trash_entity=lambda doc: doc.output_item.name if doc.output_item else None,
    trash_amount=lambda doc: doc.output_quantity,
    find_blocker=_production_blocker,
)

TRANSFER_SPEC = FamilySpec(
    family=DocumentFamily.TRANSFER,
    model=StockTransfer,
    label="Stock transfer",
    date_attr="transfer_date",
    outbound=True,
    effects=_transfer_effects,
    trash_entity=lambda doc: doc.from_warehouse.name if doc.from_warehouse else None,
    trash_amount=lambda doc: sum((dec(line.quantity) for line in doc.lines), Decimal("0")),
)

FAMILIES: dict[DocumentFamily, FamilySpec] = {
    spec.family: spec for spec in (PURCHASE_SPEC, SALE_SPEC, PRODUCTION_SPEC, TRANSFER_SPEC)
}


def get_family(value) -> FamilySpec:
    """Resolve a family from a DocumentFamily or a case-insensitive name ("sale", "PURCHASE")."""
    if isinstance(value, DocumentFamily):
        return FAMILIES[value]
    try:
        return FAMILIES[DocumentFamily(str(value).strip().upper())]
    except ValueError:
        raise ValidationError(f"Unknown document type: {value}")
