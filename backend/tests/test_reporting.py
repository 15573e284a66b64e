from datetime import date
from decimal import Decimal

import pytest

from erp.services import purchase_service, reporting_service
from erp.validation import ValidationError


def test_stock_report_values_at_weighted_purchase_rate(db_session, make_purchase, make_sale, item, warehouse):
    make_purchase("100", rate="10", date="2024-01-01")
    make_purchase("100", rate="12", date="2024-01-02")
    make_sale("185", date="2024-01-05")

    [row] = reporting_service.stock_report()

    assert row["item_id"] == item.id
    assert row["item_name"] == "Cotton Yarn"
    assert row["warehouse_name"] == "Main Warehouse"
    assert row["quantity"] == "15"
    assert row["reorder_level"] == "20"
    assert row["below_reorder"] is True
    assert row["avg_rate"] == "11"
    assert row["value"] == "165"


def test_stock_report_falls_back_to_sale_rate(db_session, make_production, make_sale, finished_item, warehouse):
    make_production(output="40", consumed="50")
    make_sale("10", rate="100", lines=[{"item_id": finished_item.id, "quantity": "10", "rate": "100"}])

    rows = {r["item_id"]: r for r in reporting_service.stock_report(warehouse_id=warehouse.id)}

    assert rows[finished_item.id]["quantity"] == "30"
    assert rows[finished_item.id]["avg_rate"] == "70"
    assert rows[finished_item.id]["value"] == "2100"


def test_stock_report_as_of(db_session, make_purchase, make_sale):
    make_purchase("100", date="2024-01-01")
    make_sale("30", date="2024-01-05")

    [row] = reporting_service.stock_report(as_of=date(2024, 1, 4))
    assert row["quantity"] == "100"


def test_balance_report_groups(db_session, make_purchase, make_transfer, item, warehouse, warehouse_b):
    make_purchase("100")
    make_transfer("25")

    by_item = reporting_service.balance_report(group_by="item")
    assert by_item == [{"item_id": item.id, "quantity": "100"}]

    by_wh = reporting_service.balance_report(group_by="warehouse")
    assert {r["warehouse_id"]: r["quantity"] for r in by_wh} == {warehouse.id: "75", warehouse_b.id: "25"}

    with pytest.raises(ValidationError):
        reporting_service.balance_report(group_by="owner")


def test_valuation_ignores_trashed_purchases(db_session, make_purchase, item):
    make_purchase("100", rate="10")
    trashed = make_purchase("100", rate="50")
    purchase_service.delete_purchase(trashed.id)

    [row] = reporting_service.stock_report()
    assert row["avg_rate"] == "10"
    assert Decimal(row["value"]) == Decimal("1000")
