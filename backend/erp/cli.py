# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/erp/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--owner "Owner Name"] [--warehouse "Main Warehouse"]
#   Idempotent bootstrap: creates a default owner and warehouse when none exist.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock ledger:
# - python -m flask ledger balance --item 1 --warehouse 1 [--as-of 2024-01-31]
#   Print the derived quantity on hand.
# - python -m flask ledger entries --reference-id 5 --family SALE [--operation REVERSAL]
#   List ledger entries for audit.
# - python -m flask ledger rebuild
#   Wipe the ledger and replay it from ACTIVE documents.
# - python -m flask ledger sync-stock
#   Purge entries whose source document no longer exists.
#
# Payments:
# - python -m flask payments sync-balances
#   Reconcile payment records against cached paid/received totals.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Owner, Warehouse
from .services import maintenance_service, rebuild_service, reconciliation_service
from .services.ledger_service import DocumentFamily, LedgerOperation, ReferenceType, get_balance, list_entries
from .validation import ValidationError, require_date


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--owner', 'owner_name', default='Owner', help='Default owner name')
@click.option('--warehouse', 'warehouse_name', default='Main Warehouse', help='Default warehouse name')
@with_appcontext
def init_system(owner_name, warehouse_name):
    """Create the default owner and warehouse (skipped when they already exist)."""
    owner = db.session.query(Owner).first()
    if owner is None:
        owner = Owner(name=owner_name)
        db.session.add(owner)
        db.session.commit()
        click.echo(f"PASS Created owner: {owner.name} (ID: {owner.id})")
    else:
        click.echo(f"PASS Using existing owner: {owner.name} (ID: {owner.id})")

    warehouse = db.session.query(Warehouse).first()
    if warehouse is None:
        warehouse = Warehouse(name=warehouse_name)
        db.session.add(warehouse)
        db.session.commit()
        click.echo(f"PASS Created warehouse: {warehouse.name} (ID: {warehouse.id})")
    else:
        click.echo(f"PASS Using existing warehouse: {warehouse.name} (ID: {warehouse.id})")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete")


@click.group('ledger')
def ledger_group():
    """Stock ledger inspection and maintenance."""


@ledger_group.command('balance')
@click.option('--item', 'item_id', required=True, type=int, help='Item ID')
@click.option('--warehouse', 'warehouse_id', required=True, type=int, help='Warehouse ID')
@click.option('--as-of', 'as_of', default=None, help='Business date (YYYY-MM-DD), inclusive')
@with_appcontext
def ledger_balance(item_id, warehouse_id, as_of):
    """Print quantity on hand for an item in a warehouse."""
    try:
        as_of_date = require_date(as_of, "as-of") if as_of else None
    except ValidationError as e:
        raise click.BadParameter(str(e))
    qty = get_balance(item_id, warehouse_id, as_of=as_of_date)
    suffix = f" as of {as_of_date.isoformat()}" if as_of_date else ""
    click.echo(f"Item {item_id} @ warehouse {warehouse_id}: {qty}{suffix}")


@ledger_group.command('entries')
@click.option('--reference-id', type=int, default=None, help='Document ID')
@click.option('--family', type=click.Choice([f.value for f in DocumentFamily], case_sensitive=False), default=None)
@click.option('--item', 'item_id', type=int, default=None, help='Item ID')
@click.option('--operation', type=click.Choice([o.value for o in LedgerOperation], case_sensitive=False), default=None)
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def ledger_entries(reference_id, family, item_id, operation, limit):
    """List ledger entries (oldest first). Unrecognized reference types are flagged."""
    entries = list_entries(
        reference_id=reference_id,
        family=DocumentFamily(family.upper()) if family else None,
        item_id=item_id,
        limit=None if operation else limit,
    )
    rows = []
    for e in entries:
        try:
            op = ReferenceType.parse(e.reference_type).operation.value
        except ValueError:
            op = None
        if operation and op != operation.upper():
            continue
        rows.append((e, op))
    rows = rows[:limit]

    if not rows:
        click.echo("No ledger entries found")
        return
    for e, op in rows:
        click.echo(
            f"#{e.id} {e.effective_date.isoformat()} item={e.item_id} wh={e.warehouse_id} "
            f"qty={e.quantity} {e.reference_type}:{e.reference_id} [{op or 'UNRECOGNIZED'}]"
        )


@ledger_group.command('rebuild')
@with_appcontext
def ledger_rebuild():
    """Wipe and replay the stock ledger from ACTIVE documents."""
    summary = rebuild_service.rebuild_inventory()
    click.echo(f"DELETE  Removed {summary['deleted']} ledger entries")
    for family in DocumentFamily:
        counts = summary[family.value]
        click.echo(f"PASS {family.value}: {counts['documents']} documents, {counts['entries']} entries")


@ledger_group.command('sync-stock')
@with_appcontext
def ledger_sync_stock():
    """Purge ledger entries pointing at documents that no longer exist."""
    removed = maintenance_service.purge_orphan_entries()
    for family, count in removed.items():
        click.echo(f"PASS {family}: removed {count} orphaned entries")


@click.group('payments')
def payments_group():
    """Payment reconciliation."""


@payments_group.command('sync-balances')
@with_appcontext
def payments_sync_balances():
    """Reconcile payment records with cached paid/received totals."""
    summary = reconciliation_service.sync_balances()
    for side, counts in summary.items():
        details = ", ".join(f"{k}={v}" for k, v in counts.items())
        click.echo(f"PASS {side}: {details}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(payments_group)
