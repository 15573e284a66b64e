# Overview: Service-layer operations for replaying the stock ledger from source documents ("rebuild-inventory").

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import StockLedgerEntry
from .concurrency import run_with_retry
from .document_families import FAMILIES
from .ledger_service import LedgerOperation
from .lifecycle_service import post_effects


def rebuild_inventory() -> dict:
    """
    Wipe the ledger and regenerate it from ACTIVE documents.

    Every ACTIVE document posts its BASE entries dated with its business
    date; trashed documents contribute nothing. Afterwards every balance
    equals what the ACTIVE documents imply. One transaction: on failure the
    old ledger stays in place.

    Returns {"deleted": n, "PURCHASE": {"documents": n, "entries": n}, ...}.
    """
    def _op():
        current_app.logger.info("Starting complete inventory ledger rebuild")
        deleted = db.session.query(StockLedgerEntry).delete(synchronize_session=False)
        current_app.logger.info("Removed %d ledger entries", deleted)

        summary = {"deleted": deleted}
        for family, spec in FAMILIES.items():
            docs = (
                spec.model.query
                .filter(spec.model.is_deleted.is_(False))
                .order_by(spec.model.id.asc())
                .all()
            )
            entries = 0
            for doc in docs:
                entries += post_effects(
                    spec, doc.id, spec.effects(doc), LedgerOperation.BASE, spec.business_date(doc)
                )
            summary[family.value] = {"documents": len(docs), "entries": entries}
            current_app.logger.info("Replayed %d %s documents (%d entries)", len(docs), family.value, entries)

        db.session.commit()
        current_app.logger.info("Inventory ledger rebuild complete")
        return summary

    return run_with_retry(_op)
