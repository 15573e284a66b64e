# Overview: Service-layer operations for purchases; inbound stock and the upfront supplier payment.

"""
Purchase Service

LEDGER:      PURCHASE +quantity per line into the purchase warehouse.
PAYMENTS:    paying_amount > 0 on create inserts one INITIAL_AT_CREATION
             SupplierPayment linked to the purchase.
DEPENDENCY:  trashing is refused while an ACTIVE sale (or production run)
             dated on/after the purchase uses any of its items.
"""

from __future__ import annotations

from ..models import Item, Purchase, PurchaseLine, Supplier, Warehouse
from ..number_utils import ZERO
from ..validation import (
    optional_date,
    require_date,
    require_int,
    require_lines,
    to_decimal,
)
from .document_families import PURCHASE_SPEC
from .document_service import create_document, require_master, update_document
from .lifecycle_service import soft_delete_document
from .payment_service import SUPPLIER_SIDE, create_initial_payment, sync_initial_payment


def _parse_lines(raw_lines) -> list[dict]:
    lines = []
    for idx, raw in enumerate(require_lines(raw_lines), start=1):
        item_id = require_int(raw.get("item_id"), f"line {idx} item_id")
        require_master(Item, item_id)
        quantity = to_decimal(raw.get("quantity"), f"line {idx} quantity", positive=True)
        rate = to_decimal(raw.get("rate"), f"line {idx} rate", positive=True)
        amount = to_decimal(raw.get("amount"), f"line {idx} amount", non_negative=True, default=quantity * rate)
        lines.append({
            "item_id": item_id,
            "quantity": quantity,
            "rate": rate,
            "amount": amount,
            "gst_rate": to_decimal(raw.get("gst_rate"), f"line {idx} gst_rate", non_negative=True, default=ZERO),
            "gst_amount": to_decimal(raw.get("gst_amount"), f"line {idx} gst_amount", non_negative=True, default=ZERO),
        })
    return lines


def _parse_payload(payload: dict) -> dict:
    supplier_id = require_int(payload.get("supplier_id"), "supplier_id")
    require_master(Supplier, supplier_id)
    warehouse_id = require_int(payload.get("warehouse_id"), "warehouse_id")
    require_master(Warehouse, warehouse_id)

    lines = _parse_lines(payload.get("lines"))
    paying = payload.get("paying_amount")
    return {
        "supplier_id": supplier_id,
        "warehouse_id": warehouse_id,
        "purchase_date": require_date(payload.get("purchase_date"), "purchase_date"),
        "due_date": optional_date(payload.get("due_date"), "due_date"),
        "invoice_number": payload.get("invoice_number"),
        "remarks": payload.get("remarks"),
        "lines": lines,
        "total_amount": sum((line["amount"] for line in lines), ZERO),
        "paying_amount": None if paying is None else to_decimal(paying, "paying_amount", non_negative=True),
    }


def _apply(doc: Purchase, data: dict) -> None:
    doc.supplier_id = data["supplier_id"]
    doc.warehouse_id = data["warehouse_id"]
    doc.purchase_date = data["purchase_date"]
    doc.due_date = data["due_date"]
    doc.invoice_number = data["invoice_number"]
    doc.remarks = data["remarks"]
    doc.total_amount = data["total_amount"]
    doc.lines = [PurchaseLine(**line) for line in data["lines"]]


def create_purchase(payload: dict) -> Purchase:
    data = _parse_payload(payload)
    paying = data["paying_amount"] or ZERO

    def _build():
        doc = Purchase(paying_amount=ZERO, is_deleted=False)
        _apply(doc, data)
        return doc

    return create_document(
        PURCHASE_SPEC,
        _build,
        after_post=lambda doc: create_initial_payment(SUPPLIER_SIDE, doc, paying),
    )


def update_purchase(purchase_id: int, payload: dict) -> Purchase:
    """
    Replace header and lines.

    paying_amount, when present, re-syncs the upfront payment record; when
    absent the payments are left alone.
    """
    data = _parse_payload(payload)
    return update_document(
        PURCHASE_SPEC,
        purchase_id,
        lambda doc: _apply(doc, data),
        after_apply=lambda doc: sync_initial_payment(SUPPLIER_SIDE, doc, data["paying_amount"]),
    )


def delete_purchase(purchase_id: int) -> Purchase:
    return soft_delete_document(PURCHASE_SPEC.family, purchase_id)
