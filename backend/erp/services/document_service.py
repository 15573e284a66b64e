# Overview: Shared create/edit pipeline for transaction documents; ledger posting and stock guard in one unit of work.

from __future__ import annotations

from typing import Callable

from flask import current_app

from ..extensions import db
from ..validation import NotFoundError
from .concurrency import run_with_retry
from .document_families import FamilySpec, get_family
from .ledger_service import LedgerOperation
from .lifecycle_service import load_document, post_effects, require_active
from .stock_guard import ensure_available


def require_master(model, record_id: int, label: str | None = None):
    """Resolve a master record (item, warehouse, party) or raise NotFoundError."""
    record = db.session.get(model, record_id)
    if record is None:
        raise NotFoundError(f"{label or model.__name__} {record_id} not found")
    return record


def create_document(
    spec: FamilySpec,
    build: Callable[[], object],
    *,
    after_post: Callable[[object], None] | None = None,
):
    """
    Insert a document and post its BASE ledger entries in one transaction.

    - build() returns the unsaved document with its lines attached.
    - Outbound families are checked by the availability guard before
      anything is written; a shortfall rejects the whole document.
    - after_post(doc) runs inside the same transaction (upfront payment).
    """
    def _op():
        doc = build()
        effects = spec.effects(doc)
        if spec.outbound:
            ensure_available(effects, context=f"new {spec.label.lower()}")

        db.session.add(doc)
        db.session.flush()
        post_effects(spec, doc.id, effects, LedgerOperation.BASE, spec.business_date(doc))
        if after_post is not None:
            after_post(doc)

        db.session.commit()
        current_app.logger.info("Created %s %s (%d ledger entries)", spec.label, doc.id, len(effects))
        return doc

    return run_with_retry(_op)


def update_document(
    spec: FamilySpec,
    doc_id: int,
    apply_changes: Callable[[object], None],
    *,
    after_apply: Callable[[object], None] | None = None,
):
    """
    Replace a document's header and lines in one transaction.

    LEDGER:
    - one *_UPDATE_REVERSAL per old effect, negated, dated with the ORIGINAL
      business date (the old state is undone where it happened)
    - one *_UPDATE per new effect, dated with the NEW business date

    Outbound families run the guard with the old effects virtually added
    back, so shrinking or keeping a sale never fails on its own stock.
    """
    def _op():
        doc = load_document(spec, doc_id, lock=True)
        require_active(spec, doc)

        old_effects = spec.effects(doc)
        old_date = spec.business_date(doc)

        apply_changes(doc)
        db.session.flush()
        new_effects = spec.effects(doc)

        if spec.outbound:
            ensure_available(
                new_effects,
                editing_effects=old_effects,
                context=f"edit of {spec.label.lower()} {doc_id}",
            )

        post_effects(spec, doc.id, old_effects, LedgerOperation.UPDATE_REVERSAL, old_date)
        post_effects(spec, doc.id, new_effects, LedgerOperation.UPDATE, spec.business_date(doc))
        if after_apply is not None:
            after_apply(doc)

        db.session.commit()
        current_app.logger.info(
            "Updated %s %s (%d reversed, %d posted)", spec.label, doc_id, len(old_effects), len(new_effects)
        )
        return doc

    return run_with_retry(_op)


def get_document(family, doc_id: int):
    spec = get_family(family)
    return load_document(spec, doc_id)


def list_documents(family, *, include_deleted: bool = False, limit: int = 500):
    spec = get_family(family)
    model = spec.model
    q = model.query
    if not include_deleted:
        q = q.filter(model.is_deleted.is_(False))
    date_col = getattr(model, spec.date_attr)
    return q.order_by(date_col.desc(), model.id.desc()).limit(limit).all()
