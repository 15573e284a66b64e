# Overview: Service-layer operations for production runs; output, consumption and variance adjustments.

"""
Production Service

A production run records what already happened on the shop floor, so it
is NOT gated by the availability guard (consumption may go negative until
the matching purchase is entered).

LEDGER:
- PRODUCTION              +output_quantity (output item, run warehouse)
- PRODUCTION_CONSUMPTION  -actual_qty per consumption line
- PRODUCTION_ADJUSTMENT   -variance per line with a non-zero variance

DEPENDENCY: trashing is refused while an ACTIVE sale dated on/after the
run sells its output item.
"""

from __future__ import annotations

from ..models import Item, ProductionConsumption, ProductionRun, Warehouse
from ..number_utils import ZERO
from ..validation import (
    ValidationError,
    optional_int,
    require_date,
    require_int,
    require_lines,
    to_decimal,
)
from .document_families import PRODUCTION_SPEC
from .document_service import create_document, require_master, update_document
from .lifecycle_service import soft_delete_document


def _parse_consumptions(raw_lines) -> list[dict]:
    lines = []
    for idx, raw in enumerate(require_lines(raw_lines), start=1):
        item_id = require_int(raw.get("item_id"), f"line {idx} item_id")
        require_master(Item, item_id)
        actual = to_decimal(raw.get("actual_qty"), f"line {idx} actual_qty", positive=True)
        opening = raw.get("opening_stock")
        lines.append({
            "item_id": item_id,
            "actual_qty": actual,
            "standard_qty": to_decimal(raw.get("standard_qty"), f"line {idx} standard_qty", non_negative=True, default=actual),
            "opening_stock": None if opening is None else to_decimal(opening, f"line {idx} opening_stock"),
            "variance": to_decimal(raw.get("variance"), f"line {idx} variance", default=ZERO),
            "remarks": raw.get("remarks"),
        })
    return lines


def _parse_payload(payload: dict) -> dict:
    output_item_id = require_int(payload.get("output_item_id"), "output_item_id")
    require_master(Item, output_item_id)
    warehouse_id = require_int(payload.get("warehouse_id"), "warehouse_id")
    require_master(Warehouse, warehouse_id)

    batch_count = optional_int(payload.get("batch_count"), "batch_count")
    if batch_count is not None and batch_count < 1:
        raise ValidationError("batch_count must be at least 1")

    return {
        "production_date": require_date(payload.get("production_date"), "production_date"),
        "output_item_id": output_item_id,
        "output_quantity": to_decimal(payload.get("output_quantity"), "output_quantity", positive=True),
        "warehouse_id": warehouse_id,
        "batch_count": batch_count or 1,
        "remarks": payload.get("remarks"),
        "consumptions": _parse_consumptions(payload.get("consumptions")),
    }


def _apply(doc: ProductionRun, data: dict) -> None:
    for field in ("production_date", "output_item_id", "output_quantity", "warehouse_id",
                  "batch_count", "remarks"):
        setattr(doc, field, data[field])
    doc.consumptions = [ProductionConsumption(**line) for line in data["consumptions"]]


def create_production_run(payload: dict) -> ProductionRun:
    data = _parse_payload(payload)

    def _build():
        doc = ProductionRun(is_deleted=False)
        _apply(doc, data)
        return doc

    return create_document(PRODUCTION_SPEC, _build)


def update_production_run(run_id: int, payload: dict) -> ProductionRun:
    data = _parse_payload(payload)
    return update_document(PRODUCTION_SPEC, run_id, lambda doc: _apply(doc, data))


def delete_production_run(run_id: int) -> ProductionRun:
    return soft_delete_document(PRODUCTION_SPEC.family, run_id)
