# Overview: Service-layer operations for supplier/customer payments; sentinel upfront payments and allocation.

"""
Payment Records Service

Payments are separate rows linked to a document (Purchase or Sale), many-to-one.
Each document also caches the linked total (Purchase.paying_amount,
Sale.received_amount) for list screens; sync-balances repairs that cache.

ORIGINS:
- INITIAL_AT_CREATION: the upfront amount entered on the invoice. At most one
  per document; kept in step with the invoice when it is edited.
- USER_ENTERED: recorded from the payments screen. When no document is
  given it is allocated to the counterparty's oldest outstanding document.
- HEALED: synthesized by sync-balances. Deleted and re-derived on every run.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import (
    Customer,
    CustomerPayment,
    Owner,
    PaymentOrigin,
    Purchase,
    Sale,
    Supplier,
    SupplierPayment,
)
from ..models.payments import INITIAL_PURCHASE_REMARK, INITIAL_SALE_REMARK
from ..number_utils import ZERO, dec
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    optional_date,
    optional_int,
    require_date,
    require_int,
    to_decimal,
)
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import DocumentFamily, stock_epsilon


# =============================================================================
# PAYMENT SIDES
# =============================================================================

@dataclass(frozen=True)
class PaymentSide:
    """Column mapping for one side of the books (paying suppliers or receiving from customers)."""
    name: str
    family: DocumentFamily
    payment_model: type
    document_model: type
    party_model: type
    link_attr: str
    party_attr: str
    cached_attr: str
    date_attr: str
    initial_remark: str

    @property
    def link_column(self):
        return getattr(self.payment_model, self.link_attr)

    @property
    def party_column(self):
        return getattr(self.payment_model, self.party_attr)


SUPPLIER_SIDE = PaymentSide(
    name="supplier",
    family=DocumentFamily.PURCHASE,
    payment_model=SupplierPayment,
    document_model=Purchase,
    party_model=Supplier,
    link_attr="purchase_id",
    party_attr="supplier_id",
    cached_attr="paying_amount",
    date_attr="purchase_date",
    initial_remark=INITIAL_PURCHASE_REMARK,
)

CUSTOMER_SIDE = PaymentSide(
    name="customer",
    family=DocumentFamily.SALE,
    payment_model=CustomerPayment,
    document_model=Sale,
    party_model=Customer,
    link_attr="sale_id",
    party_attr="customer_id",
    cached_attr="received_amount",
    date_attr="sale_date",
    initial_remark=INITIAL_SALE_REMARK,
)

SIDES = {side.name: side for side in (SUPPLIER_SIDE, CUSTOMER_SIDE)}
SIDES_BY_FAMILY = {side.family: side for side in (SUPPLIER_SIDE, CUSTOMER_SIDE)}


def get_side(name: str) -> PaymentSide:
    try:
        return SIDES[name]
    except KeyError:
        raise ValidationError(f"Unknown payment side: {name}")


def default_owner_id() -> int | None:
    """Synthetic payments are attributed to the first owner (if any)."""
    owner = db.session.query(Owner).order_by(Owner.id.asc()).first()
    return owner.id if owner else None


def default_payment_method() -> str:
    return current_app.config.get("DEFAULT_PAYMENT_METHOD", "Cash")


# =============================================================================
# SENTINEL (UPFRONT) PAYMENTS
# =============================================================================

def find_initial_payment(side: PaymentSide, doc_id: int):
    return (
        db.session.query(side.payment_model)
        .filter(
            side.link_column == doc_id,
            side.payment_model.origin == PaymentOrigin.INITIAL_AT_CREATION.value,
        )
        .order_by(side.payment_model.id.asc())
        .first()
    )


def create_initial_payment(side: PaymentSide, doc, amount: Decimal):
    """Record the upfront amount typed on a new invoice (flush, no commit)."""
    setattr(doc, side.cached_attr, amount)
    if amount <= 0:
        return None
    payment = side.payment_model(
        payment_date=getattr(doc, side.date_attr),
        amount=amount,
        owner_id=default_owner_id(),
        payment_method=default_payment_method(),
        remarks=side.initial_remark,
        origin=PaymentOrigin.INITIAL_AT_CREATION.value,
    )
    setattr(payment, side.link_attr, doc.id)
    setattr(payment, side.party_attr, getattr(doc, side.party_attr))
    db.session.add(payment)
    db.session.flush()
    return payment


def sync_initial_payment(side: PaymentSide, doc, amount: Decimal | None) -> None:
    """
    Keep the document's INITIAL_AT_CREATION record in step with an edit.

    - amount None: upfront amount not part of the edit; only the sentinel's
      counterparty/date follow the document.
    - amount > 0: update the sentinel in place, or create it if missing.
    - amount == 0: delete the sentinel.

    The cached total moves by the sentinel delta so user payments still count:
        cached = cached - old_sentinel_amount + new_amount
    """
    sentinel = find_initial_payment(side, doc.id)

    if amount is None:
        if sentinel is not None:
            setattr(sentinel, side.party_attr, getattr(doc, side.party_attr))
            sentinel.payment_date = getattr(doc, side.date_attr)
        return

    old_amount = dec(sentinel.amount) if sentinel is not None else ZERO
    cached = dec(getattr(doc, side.cached_attr)) - old_amount + amount
    setattr(doc, side.cached_attr, max(cached, ZERO))

    if amount > 0:
        if sentinel is None:
            sentinel = side.payment_model(
                owner_id=default_owner_id(),
                payment_method=default_payment_method(),
                remarks=side.initial_remark,
                origin=PaymentOrigin.INITIAL_AT_CREATION.value,
            )
            setattr(sentinel, side.link_attr, doc.id)
            db.session.add(sentinel)
        sentinel.amount = amount
        setattr(sentinel, side.party_attr, getattr(doc, side.party_attr))
        sentinel.payment_date = getattr(doc, side.date_attr)
    elif sentinel is not None:
        db.session.delete(sentinel)
    db.session.flush()


def delete_payments_for_document(family: DocumentFamily, doc_id: int) -> int:
    """Remove every payment linked to a document being purged."""
    side = SIDES_BY_FAMILY.get(family)
    if side is None:
        return 0
    return (
        db.session.query(side.payment_model)
        .filter(side.link_column == doc_id)
        .delete(synchronize_session=False)
    )


# =============================================================================
# USER PAYMENTS
# =============================================================================

def _oldest_outstanding(side: PaymentSide, party_id: int):
    """Oldest (by id) ACTIVE document of the counterparty with total > cached paid."""
    model = side.document_model
    cached = getattr(model, side.cached_attr)
    return (
        db.session.query(model)
        .filter(
            getattr(model, side.party_attr) == party_id,
            model.is_deleted.is_(False),
            model.total_amount - cached > stock_epsilon(),
        )
        .order_by(model.id.asc())
        .first()
    )


def _resolve_target(side: PaymentSide, party_id: int, doc_id: int | None):
    if doc_id is None:
        return _oldest_outstanding(side, party_id)
    doc = lock_for_update(db.session.query(side.document_model).filter_by(id=doc_id)).first()
    if doc is None:
        raise NotFoundError(f"{side.document_model.__name__} {doc_id} not found")
    if getattr(doc, side.party_attr) != party_id:
        raise ValidationError(
            f"{side.document_model.__name__} {doc_id} does not belong to {side.name} {party_id}"
        )
    if doc.is_deleted:
        raise ConflictError(f"{side.document_model.__name__} {doc_id} is in trash")
    return doc


def _adjust_cached(side: PaymentSide, doc_id: int | None, delta: Decimal) -> None:
    if doc_id is None:
        return
    doc = db.session.get(side.document_model, doc_id)
    if doc is None:
        return
    setattr(doc, side.cached_attr, dec(getattr(doc, side.cached_attr)) + delta)


def _parse_payment_payload(side: PaymentSide, payload: dict) -> dict:
    party_id = require_int(payload.get(side.party_attr), side.party_attr)
    if db.session.get(side.party_model, party_id) is None:
        raise NotFoundError(f"{side.party_model.__name__} {party_id} not found")

    owner_id = optional_int(payload.get("owner_id"), "owner_id")
    if owner_id is not None and db.session.get(Owner, owner_id) is None:
        raise NotFoundError(f"Owner {owner_id} not found")

    return {
        "party_id": party_id,
        "doc_id": optional_int(payload.get(side.link_attr), side.link_attr),
        "owner_id": owner_id if owner_id is not None else default_owner_id(),
        "amount": to_decimal(payload.get("amount"), "amount", positive=True),
        "payment_date": require_date(payload.get("payment_date"), "payment_date"),
        "payment_method": payload.get("payment_method") or default_payment_method(),
        "remarks": payload.get("remarks"),
        "next_due_date": optional_date(payload.get("next_due_date"), "next_due_date"),
    }


def _apply_fields(side: PaymentSide, payment, data: dict, target) -> None:
    setattr(payment, side.party_attr, data["party_id"])
    setattr(payment, side.link_attr, target.id if target is not None else None)
    payment.owner_id = data["owner_id"]
    payment.amount = data["amount"]
    payment.payment_date = data["payment_date"]
    payment.payment_method = data["payment_method"]
    payment.remarks = data["remarks"]
    payment.next_due_date = data["next_due_date"]


def create_payment(side_name: str, payload: dict):
    """
    Record a user payment.

    Without an explicit document link the payment goes to the counterparty's
    oldest outstanding ACTIVE document; the document's cached total grows
    by the amount.
    """
    side = get_side(side_name)
    data = _parse_payment_payload(side, payload)

    def _op():
        target = _resolve_target(side, data["party_id"], data["doc_id"])
        payment = side.payment_model(origin=PaymentOrigin.USER_ENTERED.value)
        _apply_fields(side, payment, data, target)
        db.session.add(payment)
        if target is not None:
            _adjust_cached(side, target.id, data["amount"])
        db.session.commit()
        return payment

    return run_with_retry(_op)


def update_payment(side_name: str, payment_id: int, payload: dict):
    """Edit a payment: revert its old amount from the old document, apply to the new one."""
    side = get_side(side_name)
    data = _parse_payment_payload(side, payload)

    def _op():
        payment = get_payment(side_name, payment_id, lock=True)
        old_doc_id = getattr(payment, side.link_attr)
        _adjust_cached(side, old_doc_id, -dec(payment.amount))
        db.session.flush()

        target = _resolve_target(side, data["party_id"], data["doc_id"])
        _apply_fields(side, payment, data, target)
        if target is not None:
            _adjust_cached(side, target.id, data["amount"])
        db.session.commit()
        return payment

    return run_with_retry(_op)


def delete_payment(side_name: str, payment_id: int) -> None:
    side = get_side(side_name)

    def _op():
        payment = get_payment(side_name, payment_id, lock=True)
        _adjust_cached(side, getattr(payment, side.link_attr), -dec(payment.amount))
        db.session.delete(payment)
        db.session.commit()

    run_with_retry(_op)


def get_payment(side_name: str, payment_id: int, *, lock: bool = False):
    side = get_side(side_name)
    q = db.session.query(side.payment_model).filter(side.payment_model.id == payment_id)
    if lock:
        q = lock_for_update(q)
    payment = q.first()
    if payment is None:
        raise NotFoundError(f"{side.name.capitalize()} payment {payment_id} not found")
    return payment


def list_payments(side_name: str, *, party_id: int | None = None, doc_id: int | None = None):
    side = get_side(side_name)
    q = db.session.query(side.payment_model)
    if party_id is not None:
        q = q.filter(side.party_column == party_id)
    if doc_id is not None:
        q = q.filter(side.link_column == doc_id)
    return q.order_by(side.payment_model.payment_date.desc(), side.payment_model.id.desc()).all()
