"""
Ledger maintenance: full rebuild from ACTIVE documents and orphan cleanup.
"""

from datetime import date
from decimal import Decimal

from erp.extensions import db
from erp.models import Sale, StockLedgerEntry
from erp.services import ledger_service, sales_service
from erp.services.maintenance_service import purge_orphan_entries
from erp.services.rebuild_service import rebuild_inventory


def _balances():
    return {
        (r["item_id"], r["warehouse_id"]): r["quantity"]
        for r in ledger_service.get_balances(include_zero=True)
        if r["quantity"] != 0
    }


def test_rebuild_reproduces_balances_of_active_documents(
    db_session, make_purchase, make_sale, make_production, make_transfer, customer, item, warehouse
):
    make_purchase("100", date="2024-01-01")
    sale = make_sale("30", date="2024-01-05")
    make_production(output="20", consumed="10", variance="1", date="2024-01-03")
    make_transfer("15", date="2024-01-04")
    trashed = make_sale("5", date="2024-01-06")
    sales_service.update_sale(sale.id, {
        "customer_id": customer.id,
        "warehouse_id": warehouse.id,
        "sale_date": "2024-01-07",
        "lines": [{"item_id": item.id, "quantity": "35", "rate": "15"}],
    })
    sales_service.delete_sale(trashed.id)

    before = _balances()
    before_jan_4 = ledger_service.get_balance(item.id, warehouse.id, as_of=date(2024, 1, 4))

    summary = rebuild_inventory()

    assert _balances() == before
    assert ledger_service.get_balance(item.id, warehouse.id, as_of=date(2024, 1, 4)) == before_jan_4
    assert summary["SALE"] == {"documents": 1, "entries": 1}
    assert summary["PURCHASE"] == {"documents": 1, "entries": 1}
    assert summary["PRODUCTION"] == {"documents": 1, "entries": 3}
    assert summary["TRANSFER"] == {"documents": 1, "entries": 2}
    assert summary["deleted"] > 7

    # only BASE entries remain, dated with business dates
    types = {e.reference_type for e in StockLedgerEntry.query.all()}
    assert types == {"PURCHASE", "SALE", "PRODUCTION", "PRODUCTION_CONSUMPTION",
                     "PRODUCTION_ADJUSTMENT", "TRANSFER_OUT", "TRANSFER_IN"}
    sale_entry = StockLedgerEntry.query.filter_by(reference_type="SALE").one()
    assert sale_entry.effective_date == date(2024, 1, 7)
    assert sale_entry.quantity == Decimal("-35")


def test_rebuild_of_empty_ledger(db_session):
    summary = rebuild_inventory()
    assert summary["deleted"] == 0
    assert all(summary[f] == {"documents": 0, "entries": 0} for f in ("PURCHASE", "SALE", "PRODUCTION", "TRANSFER"))


def test_orphan_entries_are_purged(db_session, make_purchase, make_sale, item, warehouse):
    make_purchase("100")
    sale = make_sale("30")
    trashed = make_sale("10")
    sales_service.delete_sale(trashed.id)

    # simulate a sale row removed behind the ledger's back
    doc = db.session.get(Sale, sale.id)
    db.session.delete(doc)
    db_session.commit()
    ledger_service.append_entry(
        item_id=item.id,
        warehouse_id=warehouse.id,
        quantity=Decimal("-1"),
        reference_type="SALE_LEGACY",
        reference_id=987654,
        effective_date=date(2024, 1, 1),
    )
    db_session.commit()

    removed = purge_orphan_entries()

    assert removed == {"PURCHASE": 0, "SALE": 2, "PRODUCTION": 0, "TRANSFER": 0}
    # trashed sale still exists, so its entries stay
    assert StockLedgerEntry.query.filter_by(reference_id=trashed.id, reference_type="SALE_REVERSAL").count() == 1
    assert ledger_service.get_balance(item.id, warehouse.id) == Decimal("100")

    assert purge_orphan_entries() == {"PURCHASE": 0, "SALE": 0, "PRODUCTION": 0, "TRANSFER": 0}
