# Overview: Service-layer operations for reporting; stock levels and valuation from the ledger.

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import Item, Purchase, PurchaseLine, Sale, SaleLine, Warehouse
from ..number_utils import ZERO, dec, to_decimal_str
from .ledger_service import get_balances


# Valuation fallback for items never purchased (e.g. finished goods)
SALE_RATE_VALUATION_FACTOR = Decimal("0.7")


def _valuation_rates() -> dict[int, Decimal]:
    """
    Per-item valuation rate.

    - weighted average purchase rate: sum(amount) / sum(quantity) over lines
      of ACTIVE purchases
    - otherwise 70% of the item's average sale rate over ACTIVE sales
    """
    rates: dict[int, Decimal] = {}

    purchase_rows = (
        db.session.query(
            PurchaseLine.item_id,
            func.coalesce(func.sum(PurchaseLine.amount), 0),
            func.coalesce(func.sum(PurchaseLine.quantity), 0),
        )
        .join(Purchase, Purchase.id == PurchaseLine.purchase_id)
        .filter(Purchase.is_deleted.is_(False))
        .group_by(PurchaseLine.item_id)
        .all()
    )
    for item_id, amount, qty in purchase_rows:
        if dec(qty) > 0:
            rates[item_id] = dec(amount) / dec(qty)

    sale_rows = (
        db.session.query(SaleLine.item_id, func.avg(SaleLine.rate))
        .join(Sale, Sale.id == SaleLine.sale_id)
        .filter(Sale.is_deleted.is_(False))
        .group_by(SaleLine.item_id)
        .all()
    )
    for item_id, avg_rate in sale_rows:
        if item_id not in rates:
            rates[item_id] = dec(avg_rate) * SALE_RATE_VALUATION_FACTOR

    return rates


def stock_report(*, warehouse_id: int | None = None, as_of: date | None = None) -> list[dict]:
    """One row per (item, warehouse) that has ledger history."""
    balances = get_balances(
        group_by="item_warehouse", warehouse_id=warehouse_id, as_of=as_of, include_zero=True
    )
    items = {item.id: item for item in Item.query.all()}
    warehouses = {wh.id: wh for wh in Warehouse.query.all()}
    rates = _valuation_rates()

    rows = []
    for row in balances:
        item = items.get(row["item_id"])
        warehouse = warehouses.get(row["warehouse_id"])
        quantity = row["quantity"]
        reorder_level = dec(item.reorder_level) if item else ZERO
        avg_rate = rates.get(row["item_id"], ZERO)
        rows.append({
            "item_id": row["item_id"],
            "item_name": item.name if item else "Unknown",
            "warehouse_id": row["warehouse_id"],
            "warehouse_name": warehouse.name if warehouse else "Unknown",
            "quantity": to_decimal_str(quantity),
            "reorder_level": to_decimal_str(reorder_level),
            "below_reorder": quantity < reorder_level,
            "avg_rate": to_decimal_str(avg_rate.quantize(Decimal("0.0001"))),
            "value": to_decimal_str((quantity * avg_rate).quantize(Decimal("0.01"))),
        })
    return rows


def balance_report(
    *,
    group_by: str = "item_warehouse",
    warehouse_id: int | None = None,
    item_id: int | None = None,
    as_of: date | None = None,
) -> list[dict]:
    rows = get_balances(group_by=group_by, warehouse_id=warehouse_id, item_id=item_id, as_of=as_of)
    for row in rows:
        row["quantity"] = to_decimal_str(row["quantity"])
    return rows
