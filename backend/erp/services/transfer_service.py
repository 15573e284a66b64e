# Overview: Service-layer operations for stock transfers between warehouses.

"""
Stock Transfer Service

LEDGER:
- TRANSFER_OUT -quantity per line from the source warehouse
- TRANSFER_IN  +quantity per line into the destination, only when one is set

A transfer without a destination is a write-off to an external location.
The source side is gated by the availability guard.
"""

from __future__ import annotations

from ..models import Item, StockTransfer, StockTransferLine, Warehouse
from ..validation import (
    ValidationError,
    optional_int,
    require_date,
    require_int,
    require_lines,
    to_decimal,
)
from .document_families import TRANSFER_SPEC
from .document_service import create_document, require_master, update_document
from .lifecycle_service import soft_delete_document


def _parse_payload(payload: dict) -> dict:
    from_id = require_int(payload.get("from_warehouse_id"), "from_warehouse_id")
    require_master(Warehouse, from_id)
    to_id = optional_int(payload.get("to_warehouse_id"), "to_warehouse_id")
    if to_id is not None:
        require_master(Warehouse, to_id)
        if to_id == from_id:
            raise ValidationError("Cannot transfer to the same warehouse")

    lines = []
    for idx, raw in enumerate(require_lines(payload.get("lines")), start=1):
        item_id = require_int(raw.get("item_id"), f"line {idx} item_id")
        require_master(Item, item_id)
        lines.append({
            "item_id": item_id,
            "quantity": to_decimal(raw.get("quantity"), f"line {idx} quantity", positive=True),
        })

    return {
        "transfer_date": require_date(payload.get("transfer_date"), "transfer_date"),
        "from_warehouse_id": from_id,
        "to_warehouse_id": to_id,
        "remarks": payload.get("remarks"),
        "lines": lines,
    }


def _apply(doc: StockTransfer, data: dict) -> None:
    doc.transfer_date = data["transfer_date"]
    doc.from_warehouse_id = data["from_warehouse_id"]
    doc.to_warehouse_id = data["to_warehouse_id"]
    doc.remarks = data["remarks"]
    doc.lines = [StockTransferLine(**line) for line in data["lines"]]


def create_transfer(payload: dict) -> StockTransfer:
    data = _parse_payload(payload)

    def _build():
        doc = StockTransfer(is_deleted=False)
        _apply(doc, data)
        return doc

    return create_document(TRANSFER_SPEC, _build)


def update_transfer(transfer_id: int, payload: dict) -> StockTransfer:
    data = _parse_payload(payload)
    return update_document(TRANSFER_SPEC, transfer_id, lambda doc: _apply(doc, data))


def delete_transfer(transfer_id: int) -> StockTransfer:
    return soft_delete_document(TRANSFER_SPEC.family, transfer_id)
