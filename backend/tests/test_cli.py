from datetime import date
from decimal import Decimal

from erp.models import Owner, Warehouse
from erp.services import ledger_service, sales_service


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['system', 'init', '--owner', 'Proprietor'])
    assert result.exit_code == 0
    assert 'Created owner: Proprietor' in result.output

    result = runner.invoke(args=['system', 'init'])
    assert result.exit_code == 0
    assert 'Using existing owner' in result.output
    assert Owner.query.count() == 1
    assert Warehouse.query.count() == 1


def test_ledger_commands(app, db_session, make_purchase, item, warehouse):
    purchase = make_purchase("100")
    runner = app.test_cli_runner()

    result = runner.invoke(args=['ledger', 'balance', '--item', str(item.id), '--warehouse', str(warehouse.id)])
    assert result.exit_code == 0
    assert f'Item {item.id} @ warehouse {warehouse.id}: 100' in result.output

    result = runner.invoke(args=['ledger', 'entries', '--reference-id', str(purchase.id), '--family', 'purchase'])
    assert result.exit_code == 0
    assert f'PURCHASE:{purchase.id}' in result.output

    result = runner.invoke(args=['ledger', 'rebuild'])
    assert result.exit_code == 0
    assert 'PURCHASE: 1 documents, 1 entries' in result.output

    result = runner.invoke(args=['ledger', 'balance', '--item', '1', '--warehouse', '1', '--as-of', 'later'])
    assert result.exit_code != 0


def test_payments_sync_balances_command(app, db_session):
    result = app.test_cli_runner().invoke(args=['payments', 'sync-balances'])
    assert result.exit_code == 0
    assert 'supplier: healed_removed=0' in result.output


def test_ledger_entries_filters_by_operation(app, db_session, make_purchase, make_sale, item, warehouse):
    make_purchase("100")
    sale = make_sale("30")
    sales_service.delete_sale(sale.id)
    ledger_service.append_entry(
        item_id=item.id,
        warehouse_id=warehouse.id,
        quantity=Decimal("-1"),
        reference_type="SALE_LEGACY",
        reference_id=sale.id,
        effective_date=date(2024, 1, 1),
    )
    db_session.commit()
    runner = app.test_cli_runner()

    result = runner.invoke(args=['ledger', 'entries', '--operation', 'reversal'])
    assert result.exit_code == 0
    lines = result.output.strip().splitlines()
    assert len(lines) == 1
    assert f'SALE_REVERSAL:{sale.id} [REVERSAL]' in lines[0]

    result = runner.invoke(args=['ledger', 'entries', '--family', 'sale'])
    assert 'SALE_LEGACY' not in result.output

    result = runner.invoke(args=['ledger', 'entries', '--reference-id', str(sale.id)])
    assert f'SALE_LEGACY:{sale.id} [UNRECOGNIZED]' in result.output
    assert f'SALE:{sale.id} [BASE]' in result.output
