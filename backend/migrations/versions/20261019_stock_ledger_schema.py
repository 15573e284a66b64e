"""Stock ledger, transaction documents and payment records

Revision ID: 20261019_stock_ledger
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_stock_ledger"
down_revision = None
branch_labels = None
depends_on = None


def _money(name, nullable=False, default="0"):
    if default is None:
        return sa.Column(name, sa.Numeric(18, 4), nullable=nullable)
    return sa.Column(name, sa.Numeric(18, 4), nullable=nullable, server_default=sa.text(default))


def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False)


def _soft_delete():
    return [
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    # ------------------------------------------------------------------ masters
    op.create_table(
        "warehouses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_warehouses_name"),
        sqlite_autoincrement=True,
    )
    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("unit", sa.String(32), nullable=True),
        _money("reorder_level"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_items_name"),
        sqlite_autoincrement=True,
    )
    for table in ("suppliers", "customers"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("phone", sa.String(32), nullable=True),
            sa.Column("gstin", sa.String(32), nullable=True),
            _created_at(),
            sa.PrimaryKeyConstraint("id"),
            sqlite_autoincrement=True,
        )
    op.create_table(
        "owners",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    # ---------------------------------------------------------------- documents
    op.create_table(
        "purchases",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("supplier_id", sa.Integer(), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("purchase_date", sa.Date(), nullable=False),
        sa.Column("invoice_number", sa.String(64), nullable=True),
        _money("total_amount"),
        _money("paying_amount"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        *_soft_delete(),
        _created_at(),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("purchases", schema=None) as batch_op:
        batch_op.create_index("ix_purchases_supplier_id", ["supplier_id"], unique=False)
        batch_op.create_index("ix_purchases_warehouse_id", ["warehouse_id"], unique=False)
        batch_op.create_index("ix_purchases_purchase_date", ["purchase_date"], unique=False)
        batch_op.create_index("ix_purchases_is_deleted", ["is_deleted"], unique=False)
        batch_op.create_index("ix_purchases_supplier_deleted", ["supplier_id", "is_deleted"], unique=False)

    op.create_table(
        "purchase_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("purchase_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        _money("quantity", default=None),
        _money("rate"),
        _money("amount"),
        _money("gst_rate", nullable=True, default=None),
        _money("gst_amount", nullable=True, default=None),
        sa.ForeignKeyConstraint(["purchase_id"], ["purchases.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("purchase_lines", schema=None) as batch_op:
        batch_op.create_index("ix_purchase_lines_purchase_id", ["purchase_id"], unique=False)
        batch_op.create_index("ix_purchase_lines_item_id", ["item_id"], unique=False)

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("invoice_number", sa.String(64), nullable=True),
        _money("total_amount"),
        _money("received_amount"),
        sa.Column("due_date", sa.Date(), nullable=True),
        _money("cgst_amount"),
        _money("sgst_amount"),
        _money("igst_amount"),
        sa.Column("eway_bill_number", sa.String(64), nullable=True),
        sa.Column("vehicle_number", sa.String(32), nullable=True),
        sa.Column("transporter_name", sa.String(255), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        *_soft_delete(),
        _created_at(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sales", schema=None) as batch_op:
        batch_op.create_index("ix_sales_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_sales_warehouse_id", ["warehouse_id"], unique=False)
        batch_op.create_index("ix_sales_sale_date", ["sale_date"], unique=False)
        batch_op.create_index("ix_sales_is_deleted", ["is_deleted"], unique=False)
        batch_op.create_index("ix_sales_customer_deleted", ["customer_id", "is_deleted"], unique=False)

    op.create_table(
        "sale_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        _money("quantity", default=None),
        _money("rate"),
        _money("amount"),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("sale_lines", schema=None) as batch_op:
        batch_op.create_index("ix_sale_lines_sale_id", ["sale_id"], unique=False)
        batch_op.create_index("ix_sale_lines_item_id", ["item_id"], unique=False)

    op.create_table(
        "production_runs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("production_date", sa.Date(), nullable=False),
        sa.Column("output_item_id", sa.Integer(), nullable=False),
        _money("output_quantity", default=None),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("batch_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("remarks", sa.Text(), nullable=True),
        *_soft_delete(),
        _created_at(),
        sa.ForeignKeyConstraint(["output_item_id"], ["items.id"]),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("production_runs", schema=None) as batch_op:
        batch_op.create_index("ix_production_runs_production_date", ["production_date"], unique=False)
        batch_op.create_index("ix_production_runs_output_item_id", ["output_item_id"], unique=False)
        batch_op.create_index("ix_production_runs_warehouse_id", ["warehouse_id"], unique=False)
        batch_op.create_index("ix_production_runs_is_deleted", ["is_deleted"], unique=False)

    op.create_table(
        "production_consumptions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("production_run_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        _money("standard_qty"),
        _money("actual_qty", default=None),
        _money("opening_stock", nullable=True, default=None),
        _money("variance"),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["production_run_id"], ["production_runs.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("production_consumptions", schema=None) as batch_op:
        batch_op.create_index("ix_production_consumptions_production_run_id", ["production_run_id"], unique=False)
        batch_op.create_index("ix_production_consumptions_item_id", ["item_id"], unique=False)

    op.create_table(
        "stock_transfers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transfer_date", sa.Date(), nullable=False),
        sa.Column("from_warehouse_id", sa.Integer(), nullable=False),
        sa.Column("to_warehouse_id", sa.Integer(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        *_soft_delete(),
        _created_at(),
        sa.ForeignKeyConstraint(["from_warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["to_warehouse_id"], ["warehouses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("stock_transfers", schema=None) as batch_op:
        batch_op.create_index("ix_stock_transfers_transfer_date", ["transfer_date"], unique=False)
        batch_op.create_index("ix_stock_transfers_from_warehouse_id", ["from_warehouse_id"], unique=False)
        batch_op.create_index("ix_stock_transfers_to_warehouse_id", ["to_warehouse_id"], unique=False)
        batch_op.create_index("ix_stock_transfers_is_deleted", ["is_deleted"], unique=False)

    op.create_table(
        "stock_transfer_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transfer_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        _money("quantity", default=None),
        sa.ForeignKeyConstraint(["transfer_id"], ["stock_transfers.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("stock_transfer_lines", schema=None) as batch_op:
        batch_op.create_index("ix_stock_transfer_lines_transfer_id", ["transfer_id"], unique=False)
        batch_op.create_index("ix_stock_transfer_lines_item_id", ["item_id"], unique=False)

    # ------------------------------------------------------------------- ledger
    op.create_table(
        "stock_ledger",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        _money("quantity", default=None),
        sa.Column("reference_type", sa.String(64), nullable=False),
        sa.Column("reference_id", sa.Integer(), nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("stock_ledger", schema=None) as batch_op:
        batch_op.create_index("ix_stock_ledger_item_id", ["item_id"], unique=False)
        batch_op.create_index("ix_stock_ledger_warehouse_id", ["warehouse_id"], unique=False)
        batch_op.create_index("ix_stock_ledger_effective_date", ["effective_date"], unique=False)
        batch_op.create_index("ix_stock_ledger_item_wh_date", ["item_id", "warehouse_id", "effective_date"], unique=False)
        batch_op.create_index("ix_stock_ledger_reference", ["reference_type", "reference_id"], unique=False)

    # ----------------------------------------------------------------- payments
    for table, party_table, party_col, doc_table, doc_col in (
        ("supplier_payments", "suppliers", "supplier_id", "purchases", "purchase_id"),
        ("customer_payments", "customers", "customer_id", "sales", "sale_id"),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column(party_col, sa.Integer(), nullable=False),
            sa.Column(doc_col, sa.Integer(), nullable=True),
            sa.Column("owner_id", sa.Integer(), nullable=True),
            sa.Column("payment_date", sa.Date(), nullable=False),
            _money("amount", default=None),
            sa.Column("payment_method", sa.String(32), nullable=False, server_default="Cash"),
            sa.Column("remarks", sa.Text(), nullable=True),
            sa.Column("next_due_date", sa.Date(), nullable=True),
            sa.Column("origin", sa.String(32), nullable=False, server_default="USER_ENTERED"),
            _created_at(),
            sa.ForeignKeyConstraint([party_col], [f"{party_table}.id"]),
            sa.ForeignKeyConstraint([doc_col], [f"{doc_table}.id"]),
            sa.ForeignKeyConstraint(["owner_id"], ["owners.id"]),
            sa.PrimaryKeyConstraint("id"),
            sqlite_autoincrement=True,
        )
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.create_index(f"ix_{table}_{party_col}", [party_col], unique=False)
            batch_op.create_index(f"ix_{table}_{doc_col}", [doc_col], unique=False)
            batch_op.create_index(f"ix_{table}_owner_id", ["owner_id"], unique=False)
            batch_op.create_index(f"ix_{table}_payment_date", ["payment_date"], unique=False)
            batch_op.create_index(f"ix_{table}_origin", ["origin"], unique=False)
            batch_op.create_index(
                "ix_supplier_payments_purchase_origin" if table == "supplier_payments"
                else "ix_customer_payments_sale_origin",
                [doc_col, "origin"],
                unique=False,
            )


def downgrade():
    for table in (
        "customer_payments",
        "supplier_payments",
        "stock_ledger",
        "stock_transfer_lines",
        "stock_transfers",
        "production_consumptions",
        "production_runs",
        "sale_lines",
        "sales",
        "purchase_lines",
        "purchases",
        "owners",
        "customers",
        "suppliers",
        "items",
        "warehouses",
    ):
        op.drop_table(table)
