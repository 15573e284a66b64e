"""
Trash lifecycle: restore nets out, purge removes every trace.
"""

from datetime import date
from decimal import Decimal

import pytest

from erp.models import CustomerPayment, Purchase, Sale, SaleLine, StockLedgerEntry, SupplierPayment
from erp.services import lifecycle_service, ledger_service, purchase_service, sales_service
from erp.validation import ConflictError, NotFoundError, ValidationError


def test_delete_then_restore_nets_to_create_only(db_session, make_purchase, make_sale, item, warehouse):
    make_purchase("100")
    sale = make_sale("30")
    before = ledger_service.get_balance(item.id, warehouse.id)

    sales_service.delete_sale(sale.id)
    lifecycle_service.restore_document("SALE", sale.id)

    assert ledger_service.get_balance(item.id, warehouse.id) == before == Decimal("70")
    types = [
        e.reference_type
        for e in StockLedgerEntry.query.filter_by(reference_id=sale.id).order_by(StockLedgerEntry.id).all()
        if e.reference_type.startswith("SALE")
    ]
    assert types == ["SALE", "SALE_REVERSAL", "SALE_RESTORE"]

    restored = db_session.get(Sale, sale.id)
    assert restored.is_deleted is False
    assert restored.deleted_at is None


def test_restore_requires_trashed_document(db_session, make_purchase):
    purchase = make_purchase("100")
    with pytest.raises(ConflictError, match="not in trash"):
        lifecycle_service.restore_document("purchase", purchase.id)


def test_list_trash_groups_by_family(db_session, make_purchase, make_sale, make_transfer, supplier):
    make_purchase("100")
    sale = make_sale("30")
    transfer = make_transfer("10")
    sales_service.delete_sale(sale.id)
    lifecycle_service.soft_delete_document("TRANSFER", transfer.id)

    trash = lifecycle_service.list_trash()

    assert set(trash) == {"purchases", "sales", "production", "transfers"}
    assert trash["purchases"] == []
    assert trash["production"] == []
    [sale_row] = trash["sales"]
    assert sale_row["id"] == sale.id
    assert sale_row["type"] == "SALE"
    assert sale_row["date"] == "2024-01-05"
    assert sale_row["entity"] == "Retail Co"
    assert sale_row["amount"] == "450"
    assert sale_row["deleted_at"].endswith("Z")
    assert trash["transfers"][0]["amount"] == "10"


def test_purge_removes_document_lines_entries_and_payments(db_session, owner, make_purchase, make_sale, item, warehouse):
    make_purchase("100")
    sale = make_sale("30", received_amount="100")
    sale_id = sale.id
    sales_service.delete_sale(sale_id)

    removed = lifecycle_service.purge_document("sale", sale_id)

    assert removed == {"ledger_entries": 2, "payments": 1}
    assert db_session.get(Sale, sale_id) is None
    assert SaleLine.query.filter_by(sale_id=sale_id).count() == 0
    assert CustomerPayment.query.filter_by(sale_id=sale_id).count() == 0
    assert StockLedgerEntry.query.filter(
        StockLedgerEntry.reference_id == sale_id,
        StockLedgerEntry.reference_type.like("SALE%"),
    ).count() == 0
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("100")
    assert ledger_service.get_balance(item.id, warehouse.id, as_of=date(2024, 1, 5)) == Decimal("100")


def test_purge_keeps_other_families_with_same_id(db_session, make_purchase, make_sale, item, warehouse):
    make_purchase("100")
    sale_id = make_sale("30").id
    # ids are per table, so a purchase can share the sale's reference_id
    ledger_service.append_entry(
        item_id=item.id,
        warehouse_id=warehouse.id,
        quantity=Decimal("5"),
        reference_type="PURCHASE",
        reference_id=sale_id,
        effective_date=date(2024, 1, 2),
    )
    db_session.commit()

    sales_service.delete_sale(sale_id)
    lifecycle_service.purge_document("SALE", sale_id)

    assert StockLedgerEntry.query.filter_by(
        reference_type="PURCHASE", reference_id=sale_id, effective_date=date(2024, 1, 2)
    ).count() == 1
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("105")


def test_purge_of_purchase_with_edit_history(db_session, owner, make_purchase, supplier, warehouse, item):
    purchase_id = make_purchase("100", paying_amount="300").id
    purchase_service.update_purchase(purchase_id, {
        "supplier_id": supplier.id,
        "warehouse_id": warehouse.id,
        "purchase_date": "2024-01-01",
        "lines": [{"item_id": item.id, "quantity": "80", "rate": "10"}],
    })
    purchase_service.delete_purchase(purchase_id)

    removed = lifecycle_service.purge_document("PURCHASE", purchase_id)

    # base, update reversal, update, reversal
    assert removed["ledger_entries"] == 4
    assert removed["payments"] == 1
    assert db_session.get(Purchase, purchase_id) is None
    assert SupplierPayment.query.count() == 0
    assert StockLedgerEntry.query.count() == 0


def test_purge_requires_trashed_document(db_session, make_purchase):
    purchase = make_purchase("100")
    with pytest.raises(ConflictError):
        lifecycle_service.purge_document("PURCHASE", purchase.id)
    assert db_session.get(Purchase, purchase.id) is not None


def test_unknown_type_and_id(db_session):
    with pytest.raises(ValidationError, match="Unknown document type"):
        lifecycle_service.restore_document("INVOICE", 1)
    with pytest.raises(NotFoundError):
        lifecycle_service.purge_document("SALE", 42)
