# Overview: Service-layer operations for maintenance; orphaned ledger entry cleanup ("sync-stock").

from __future__ import annotations

from flask import current_app
from sqlalchemy import select

from ..extensions import db
from ..models import StockLedgerEntry
from .concurrency import run_with_retry
from .document_families import FAMILIES


def purge_orphan_entries() -> dict:
    """
    Delete ledger entries whose source document row no longer exists.

    Matches by family prefix (PURCHASE%, SALE%, PRODUCTION%, TRANSFER%) so
    legacy reference types are covered too. Trashed documents still exist, so
    their entries are kept. Idempotent; one transaction.
    """
    def _op():
        current_app.logger.info("Starting orphaned stock ledger cleanup")
        counts = {}
        for family, spec in FAMILIES.items():
            counts[family.value] = (
                db.session.query(StockLedgerEntry)
                .filter(
                    StockLedgerEntry.reference_type.like(f"{family.value}%"),
                    ~StockLedgerEntry.reference_id.in_(select(spec.model.id)),
                )
                .delete(synchronize_session=False)
            )
        db.session.commit()
        current_app.logger.info("Orphaned stock ledger cleanup complete: %s", counts)
        return counts

    return run_with_retry(_op)
