# Overview: Service-layer operations for sales; outbound stock gated by availability.

"""
Sales Service

LEDGER:   SALE -quantity per line from the sale warehouse.
GUARD:    requested quantities (summed per item) must be on hand; on edit the
          sale's own old quantities count as available.
TOTAL:    sum(line.amount) + cgst + sgst + igst
PAYMENTS: received_amount > 0 on create inserts one INITIAL_AT_CREATION
          CustomerPayment linked to the sale.
"""

from __future__ import annotations

from ..models import Customer, Item, Sale, SaleLine, Warehouse
from ..number_utils import ZERO
from ..validation import (
    optional_date,
    require_date,
    require_int,
    require_lines,
    to_decimal,
)
from .document_families import SALE_SPEC
from .document_service import create_document, require_master, update_document
from .lifecycle_service import soft_delete_document
from .payment_service import CUSTOMER_SIDE, create_initial_payment, sync_initial_payment


TAX_FIELDS = ("cgst_amount", "sgst_amount", "igst_amount")
EWAY_FIELDS = ("eway_bill_number", "vehicle_number", "transporter_name")


def _parse_lines(raw_lines) -> list[dict]:
    lines = []
    for idx, raw in enumerate(require_lines(raw_lines), start=1):
        item_id = require_int(raw.get("item_id"), f"line {idx} item_id")
        require_master(Item, item_id)
        quantity = to_decimal(raw.get("quantity"), f"line {idx} quantity", positive=True)
        rate = to_decimal(raw.get("rate"), f"line {idx} rate", positive=True)
        amount = to_decimal(raw.get("amount"), f"line {idx} amount", non_negative=True, default=quantity * rate)
        lines.append({"item_id": item_id, "quantity": quantity, "rate": rate, "amount": amount})
    return lines


def _parse_payload(payload: dict) -> dict:
    customer_id = require_int(payload.get("customer_id"), "customer_id")
    require_master(Customer, customer_id)
    warehouse_id = require_int(payload.get("warehouse_id"), "warehouse_id")
    require_master(Warehouse, warehouse_id)

    lines = _parse_lines(payload.get("lines"))
    taxes = {
        field: to_decimal(payload.get(field), field, non_negative=True, default=ZERO)
        for field in TAX_FIELDS
    }
    received = payload.get("received_amount")
    data = {
        "customer_id": customer_id,
        "warehouse_id": warehouse_id,
        "sale_date": require_date(payload.get("sale_date"), "sale_date"),
        "due_date": optional_date(payload.get("due_date"), "due_date"),
        "invoice_number": payload.get("invoice_number"),
        "remarks": payload.get("remarks"),
        "lines": lines,
        "total_amount": sum((line["amount"] for line in lines), ZERO) + sum(taxes.values(), ZERO),
        "received_amount": None if received is None else to_decimal(received, "received_amount", non_negative=True),
        **taxes,
    }
    for field in EWAY_FIELDS:
        data[field] = payload.get(field)
    return data


def _apply(doc: Sale, data: dict) -> None:
    for field in ("customer_id", "warehouse_id", "sale_date", "due_date", "invoice_number",
                  "remarks", "total_amount", *TAX_FIELDS, *EWAY_FIELDS):
        setattr(doc, field, data[field])
    doc.lines = [SaleLine(**line) for line in data["lines"]]


def create_sale(payload: dict) -> Sale:
    data = _parse_payload(payload)
    received = data["received_amount"] or ZERO

    def _build():
        doc = Sale(received_amount=ZERO, is_deleted=False)
        _apply(doc, data)
        return doc

    return create_document(
        SALE_SPEC,
        _build,
        after_post=lambda doc: create_initial_payment(CUSTOMER_SIDE, doc, received),
    )


def update_sale(sale_id: int, payload: dict) -> Sale:
    data = _parse_payload(payload)
    return update_document(
        SALE_SPEC,
        sale_id,
        lambda doc: _apply(doc, data),
        after_apply=lambda doc: sync_initial_payment(CUSTOMER_SIDE, doc, data["received_amount"]),
    )


def delete_sale(sale_id: int) -> Sale:
    return soft_delete_document(SALE_SPEC.family, sale_id)
