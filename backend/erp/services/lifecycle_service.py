# Overview: Service-layer operations for document lifecycle; trash, restore and purge across families.

"""
Transaction Document Lifecycle

================================================================================
PURPOSE: Keep the stock ledger consistent while documents move through trash
================================================================================

STATE MACHINE:
    ACTIVE --edit--> ACTIVE
    ACTIVE --delete (no dependency)--> TRASHED
    TRASHED --restore--> ACTIVE
    TRASHED --purge--> GONE

    ACTIVE:  counts toward stock; editable
    TRASHED: is_deleted=True, deleted_at set; its effects are compensated
             by *_REVERSAL entries; cannot be edited
    GONE:    document, lines, linked payments and ALL its ledger entries removed

RULES:
1. Compensating entries are dated with the document's ORIGINAL business date,
   never with "today". Balances as of any past date stay correct.
2. create -> delete -> restore nets to the create-only balances.
3. Purge is trash management: an ACTIVE document cannot be purged.
4. Every operation is one transaction (run_with_retry rolls back on failure).

================================================================================
"""

from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError
from .concurrency import lock_for_update, run_with_retry
from .document_families import FAMILIES, FamilySpec, LedgerEffect, get_family
from .ledger_service import LedgerOperation, append_entry, delete_entries_for_document
from .payment_service import delete_payments_for_document


# Operations whose entries carry the NEGATED base quantity
_NEGATING = {LedgerOperation.REVERSAL, LedgerOperation.UPDATE_REVERSAL}


def post_effects(
    spec: FamilySpec,
    doc_id: int,
    effects: list[LedgerEffect],
    operation: LedgerOperation,
    effective_date: date,
) -> int:
    """Append one ledger entry per effect, tagged with the given operation."""
    sign = -1 if operation in _NEGATING else 1
    for effect in effects:
        append_entry(
            item_id=effect.item_id,
            warehouse_id=effect.warehouse_id,
            quantity=effect.quantity * sign,
            reference_type=effect.reference_type(spec.family, operation),
            reference_id=doc_id,
            effective_date=effective_date,
        )
    return len(effects)


def load_document(spec: FamilySpec, doc_id: int, *, lock: bool = False):
    q = db.session.query(spec.model).filter(spec.model.id == doc_id)
    if lock:
        q = lock_for_update(q)
    doc = q.first()
    if doc is None:
        raise NotFoundError(f"{spec.label} {doc_id} not found")
    return doc


def require_active(spec: FamilySpec, doc) -> None:
    if doc.is_deleted:
        raise ConflictError(f"{spec.label} {doc.id} is in trash; restore it first")


def require_trashed(spec: FamilySpec, doc) -> None:
    if not doc.is_deleted:
        raise ConflictError(f"{spec.label} {doc.id} is not in trash")


# =============================================================================
# SOFT DELETE / RESTORE / PURGE
# =============================================================================

def _soft_delete_inner(spec: FamilySpec, doc) -> None:
    require_active(spec, doc)

    blocker = spec.find_blocker(doc)
    if blocker is not None:
        current_app.logger.info(
            "%s %s delete blocked by %s %s (%s)",
            spec.label, doc.id, blocker.doc_type, blocker.doc_id, blocker.doc_date,
        )
        raise ConflictError(
            f"Cannot delete {spec.label.lower()} {doc.id}: "
            f"{blocker.doc_type} #{blocker.doc_id} dated {blocker.doc_date.isoformat()} depends on its stock",
            blocking_type=blocker.doc_type,
            blocking_id=blocker.doc_id,
            blocking_date=blocker.doc_date,
        )

    post_effects(spec, doc.id, spec.effects(doc), LedgerOperation.REVERSAL, spec.business_date(doc))
    doc.is_deleted = True
    doc.deleted_at = utcnow()
    db.session.flush()


def soft_delete_document(family, doc_id: int):
    """Move an ACTIVE document to trash, compensating all its ledger effects."""
    spec = get_family(family)

    def _op():
        doc = load_document(spec, doc_id, lock=True)
        _soft_delete_inner(spec, doc)
        db.session.commit()
        return doc

    return run_with_retry(_op)


def restore_document(family, doc_id: int):
    """Bring a TRASHED document back: *_RESTORE entries re-apply its effects."""
    spec = get_family(family)

    def _op():
        doc = load_document(spec, doc_id, lock=True)
        require_trashed(spec, doc)
        post_effects(spec, doc.id, spec.effects(doc), LedgerOperation.RESTORE, spec.business_date(doc))
        doc.is_deleted = False
        doc.deleted_at = None
        db.session.commit()
        return doc

    return run_with_retry(_op)


def purge_document(family, doc_id: int) -> dict:
    """
    Permanently remove a TRASHED document.

    Deletes every ledger entry of the family with this reference_id (base,
    reversal, restore, update...), linked payment records, the lines and the
    document row.
    """
    spec = get_family(family)

    def _op():
        doc = load_document(spec, doc_id, lock=True)
        require_trashed(spec, doc)
        entries = delete_entries_for_document(spec.family, doc.id)
        payments = delete_payments_for_document(spec.family, doc.id)
        db.session.delete(doc)
        db.session.commit()
        current_app.logger.info(
            "Purged %s %s (%d ledger entries, %d payments)", spec.label, doc_id, entries, payments
        )
        return {"ledger_entries": entries, "payments": payments}

    return run_with_retry(_op)


def list_trash() -> dict:
    """Trashed documents grouped per family, newest deletion first."""
    keys = {
        "PURCHASE": "purchases",
        "SALE": "sales",
        "PRODUCTION": "production",
        "TRANSFER": "transfers",
    }
    result = {}
    for family, spec in FAMILIES.items():
        docs = (
            spec.model.query
            .filter(spec.model.is_deleted.is_(True))
            .order_by(spec.model.deleted_at.desc(), spec.model.id.desc())
            .all()
        )
        result[keys[family.value]] = [spec.trash_summary(doc) for doc in docs]
    return result
