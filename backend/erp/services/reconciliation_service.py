# Overview: Service-layer operations for payment reconciliation ("sync-balances").

"""
Payment Reconciliation ("sync-balances")

Makes every document's cached paid/received total equal the sum of the
payment records linked to it. Runs for both sides (suppliers/purchases and
customers/sales) in ONE transaction; a failure leaves everything as it was.

PER SIDE, IN ORDER:
1. Drop HEALED records (they are re-derived below).
2. Deduplicate on (linked document, amount, payment date, counterparty),
   keeping the first by id. INITIAL_AT_CREATION records are never dropped.
3. Re-link records that are unlinked or linked to another counterparty's
   document: greedily, in id order, to the oldest ACTIVE document of the
   payment's counterparty that still has (total - linked so far) > epsilon.
   A document already holding a record with the same (amount, date,
   counterparty) is skipped, so step 2 stays a no-op on the next run.
   With no such document a wrong link is cleared. Links to trashed documents
   of the right counterparty are kept and counted.
4. Heal gaps: where the cached total exceeds the linked sum by more than
   epsilon, add a HEALED record for the gap dated with the document date.
5. Write back: cached total := linked sum, for every document.

Running it twice in a row leaves the same totals and the same set of
records, HEALED ones included.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import PaymentOrigin
from ..models.payments import HEALED_REMARK
from ..number_utils import ZERO, dec
from .concurrency import run_with_retry
from .ledger_service import stock_epsilon
from .payment_service import (
    CUSTOMER_SIDE,
    SUPPLIER_SIDE,
    PaymentSide,
    default_owner_id,
    default_payment_method,
)


def _dedupe_key(side: PaymentSide, p, document_id=None) -> tuple:
    if document_id is None:
        document_id = getattr(p, side.link_attr)
    return (document_id, dec(p.amount), p.payment_date, getattr(p, side.party_attr))


def _dedupe(side: PaymentSide, payments: list) -> tuple[list, int]:
    seen = set()
    keep, drop = [], []
    for p in payments:
        key = _dedupe_key(side, p)
        if key in seen and p.origin != PaymentOrigin.INITIAL_AT_CREATION.value:
            drop.append(p)
        else:
            seen.add(key)
            keep.append(p)
    for p in drop:
        db.session.delete(p)
    return keep, len(drop)


def _reconcile_side(side: PaymentSide, *, owner_id: int | None, eps: Decimal) -> dict:
    P = side.payment_model
    D = side.document_model

    healed_removed = (
        db.session.query(P)
        .filter(P.origin == PaymentOrigin.HEALED.value)
        .delete(synchronize_session=False)
    )

    payments, duplicates = _dedupe(side, db.session.query(P).order_by(P.id.asc()).all())
    db.session.flush()

    docs = db.session.query(D).order_by(D.id.asc()).all()
    by_id = {doc.id: doc for doc in docs}
    linked = {doc.id: ZERO for doc in docs}

    def _well_linked(p) -> bool:
        doc = by_id.get(getattr(p, side.link_attr))
        return doc is not None and getattr(doc, side.party_attr) == getattr(p, side.party_attr)

    # a relink must never produce a record the next run would dedupe away
    held = {_dedupe_key(side, p) for p in payments if _well_linked(p)}

    relinked = unlinked = 0
    for p in payments:
        party_id = getattr(p, side.party_attr)
        target_id = getattr(p, side.link_attr)
        target = by_id.get(target_id) if target_id is not None else None

        if target is None or getattr(target, side.party_attr) != party_id:
            candidate = next(
                (
                    doc for doc in docs
                    if not doc.is_deleted
                    and getattr(doc, side.party_attr) == party_id
                    and dec(doc.total_amount) - linked[doc.id] > eps
                    and _dedupe_key(side, p, doc.id) not in held
                ),
                None,
            )
            if candidate is not None:
                target_id = candidate.id
                held.add(_dedupe_key(side, p, target_id))
                relinked += 1
            elif target_id is not None:
                target_id = None
                unlinked += 1
            setattr(p, side.link_attr, target_id)

        if target_id is not None:
            linked[target_id] += dec(p.amount)

    healed = 0
    for doc in docs:
        gap = dec(getattr(doc, side.cached_attr)) - linked[doc.id]
        if gap > eps:
            payment = P(
                payment_date=getattr(doc, side.date_attr),
                amount=gap,
                owner_id=owner_id,
                payment_method=default_payment_method(),
                remarks=HEALED_REMARK,
                origin=PaymentOrigin.HEALED.value,
            )
            setattr(payment, side.party_attr, getattr(doc, side.party_attr))
            setattr(payment, side.link_attr, doc.id)
            db.session.add(payment)
            linked[doc.id] += gap
            healed += 1
            current_app.logger.info("Healing %s #%s: adding back %s", D.__name__, doc.id, gap)

    for doc in docs:
        setattr(doc, side.cached_attr, linked[doc.id])

    db.session.flush()
    return {
        "healed_removed": healed_removed,
        "duplicates_removed": duplicates,
        "relinked": relinked,
        "unlinked": unlinked,
        "healed": healed,
        "documents": len(docs),
    }


def sync_balances() -> dict:
    """Reconcile supplier and customer payments against their documents."""
    def _op():
        current_app.logger.info("Starting payment balance synchronization")
        owner_id = default_owner_id()
        if owner_id is None:
            current_app.logger.warning("sync-balances: no owner found; healed records will have no owner")
        eps = stock_epsilon()

        summary = {
            "supplier": _reconcile_side(SUPPLIER_SIDE, owner_id=owner_id, eps=eps),
            "customer": _reconcile_side(CUSTOMER_SIDE, owner_id=owner_id, eps=eps),
        }
        db.session.commit()
        current_app.logger.info("Payment balance synchronization complete: %s", summary)
        return summary

    return run_with_retry(_op)
