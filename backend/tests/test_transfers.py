from decimal import Decimal

import pytest

from erp.models import StockTransfer
from erp.services import ledger_service, transfer_service
from erp.services.ledger_service import DocumentFamily
from erp.validation import InsufficientStockError, ValidationError


def test_transfer_moves_stock_between_warehouses(db_session, make_purchase, make_transfer, item, warehouse, warehouse_b):
    make_purchase("100")
    transfer = make_transfer("25")

    entries = ledger_service.list_entries(reference_id=transfer.id, family=DocumentFamily.TRANSFER)
    assert [(e.reference_type, e.warehouse_id, e.quantity) for e in entries] == [
        ("TRANSFER_OUT", warehouse.id, Decimal("-25")),
        ("TRANSFER_IN", warehouse_b.id, Decimal("25")),
    ]
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("75")
    assert ledger_service.get_balance(item.id, warehouse_b.id) == Decimal("25")


def test_transfer_without_destination_only_removes_stock(db_session, make_purchase, make_transfer, item, warehouse):
    make_purchase("100")
    transfer = make_transfer("10", to_warehouse_id=None)

    entries = ledger_service.list_entries(reference_id=transfer.id, family=DocumentFamily.TRANSFER)
    assert [e.reference_type for e in entries] == ["TRANSFER_OUT"]
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("90")


def test_transfer_is_gated_by_source_stock(db_session, make_purchase, make_transfer, item, warehouse_b):
    make_purchase("20")

    with pytest.raises(InsufficientStockError):
        make_transfer("25")
    assert StockTransfer.query.count() == 0
    assert ledger_service.get_balance(item.id, warehouse_b.id) == Decimal("0")


def test_same_warehouse_is_rejected(db_session, make_purchase, make_transfer, warehouse):
    make_purchase("100")
    with pytest.raises(ValidationError, match="same warehouse"):
        make_transfer("5", to_warehouse_id=warehouse.id)


def test_delete_reverses_both_sides(db_session, make_purchase, make_transfer, item, warehouse, warehouse_b):
    make_purchase("100")
    transfer = make_transfer("25")

    transfer_service.delete_transfer(transfer.id)

    types = [
        e.reference_type
        for e in ledger_service.list_entries(reference_id=transfer.id, family=DocumentFamily.TRANSFER)
    ]
    assert types == ["TRANSFER_OUT", "TRANSFER_IN", "TRANSFER_OUT_REVERSAL", "TRANSFER_IN_REVERSAL"]
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("100")
    assert ledger_service.get_balance(item.id, warehouse_b.id) == Decimal("0")


def test_edit_to_larger_quantity_counts_own_old_outflow(
    db_session, make_purchase, make_transfer, item, warehouse, warehouse_b
):
    make_purchase("100")
    transfer = make_transfer("60")

    transfer_service.update_transfer(transfer.id, {
        "transfer_date": "2024-01-04",
        "from_warehouse_id": warehouse.id,
        "to_warehouse_id": warehouse_b.id,
        "lines": [{"item_id": item.id, "quantity": "100"}],
    })
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("0")
    assert ledger_service.get_balance(item.id, warehouse_b.id) == Decimal("100")
