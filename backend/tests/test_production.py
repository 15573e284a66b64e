from datetime import date
from decimal import Decimal

import pytest

from erp.models import ProductionRun
from erp.services import ledger_service, production_service, sales_service
from erp.services.ledger_service import DocumentFamily
from erp.validation import ConflictError, ValidationError


def _entries(run_id):
    return [
        (e.reference_type, e.item_id, e.quantity)
        for e in ledger_service.list_entries(reference_id=run_id, family=DocumentFamily.PRODUCTION)
    ]


def test_run_posts_output_and_consumption(db_session, make_purchase, make_production, item, finished_item, warehouse):
    make_purchase("100")
    run = make_production(output="40", consumed="50")

    assert _entries(run.id) == [
        ("PRODUCTION", finished_item.id, Decimal("40")),
        ("PRODUCTION_CONSUMPTION", item.id, Decimal("-50")),
    ]
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("50")
    assert ledger_service.get_balance(finished_item.id, warehouse.id) == Decimal("40")


def test_variance_posts_adjustment(db_session, make_purchase, make_production, item, warehouse):
    make_purchase("100")
    run = make_production(output="40", consumed="50", variance="2.5")

    assert ("PRODUCTION_ADJUSTMENT", item.id, Decimal("-2.5")) in _entries(run.id)
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("47.5")


def test_run_is_not_gated_by_availability(db_session, make_production, item, warehouse):
    make_production(output="10", consumed="30")
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("-30")


def test_edit_reverses_every_component(db_session, make_purchase, make_production, item, finished_item, warehouse):
    make_purchase("100")
    run = make_production(output="40", consumed="50", variance="1")

    production_service.update_production_run(run.id, {
        "production_date": "2024-01-03",
        "output_item_id": finished_item.id,
        "output_quantity": "30",
        "warehouse_id": warehouse.id,
        "consumptions": [{"item_id": item.id, "actual_qty": "35"}],
    })

    types = [t for t, _, _ in _entries(run.id)]
    assert types == [
        "PRODUCTION",
        "PRODUCTION_CONSUMPTION",
        "PRODUCTION_ADJUSTMENT",
        "PRODUCTION_UPDATE_REVERSAL",
        "PRODUCTION_CONSUMPTION_UPDATE_REVERSAL",
        "PRODUCTION_ADJUSTMENT_UPDATE_REVERSAL",
        "PRODUCTION_UPDATE",
        "PRODUCTION_CONSUMPTION_UPDATE",
    ]
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("65")
    assert ledger_service.get_balance(finished_item.id, warehouse.id) == Decimal("30")


def test_delete_blocked_by_sale_of_output(db_session, make_purchase, make_production, make_sale, finished_item):
    make_purchase("100")
    run = make_production(output="40", consumed="50", date="2024-01-03")
    sale = make_sale("10", date="2024-01-04", lines=[{"item_id": finished_item.id, "quantity": "10", "rate": "50"}])

    with pytest.raises(ConflictError) as exc_info:
        production_service.delete_production_run(run.id)
    assert exc_info.value.blocking_type == "SALE"
    assert exc_info.value.blocking_id == sale.id

    sales_service.delete_sale(sale.id)
    production_service.delete_production_run(run.id)
    assert db_session.get(ProductionRun, run.id).is_deleted is True


def test_delete_and_restore_compensate_all_components(
    db_session, make_purchase, make_production, item, finished_item, warehouse
):
    from erp.services import lifecycle_service

    make_purchase("100")
    run = make_production(output="40", consumed="50", variance="2")

    production_service.delete_production_run(run.id)
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("100")
    assert ledger_service.get_balance(finished_item.id, warehouse.id) == Decimal("0")

    lifecycle_service.restore_document("production", run.id)
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("48")
    assert ledger_service.get_balance(finished_item.id, warehouse.id, as_of=date(2024, 1, 3)) == Decimal("40")


@pytest.mark.parametrize("overrides, message", [
    ({"consumptions": []}, "No line items provided"),
    ({"output_quantity": "0"}, "output_quantity"),
    ({"batch_count": 0}, "batch_count"),
])
def test_invalid_runs_are_rejected(db_session, make_production, overrides, message):
    with pytest.raises(ValidationError, match=message):
        make_production(**overrides)
    assert ProductionRun.query.count() == 0
