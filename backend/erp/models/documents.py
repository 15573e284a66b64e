from __future__ import annotations

from ..extensions import db
from erp.number_utils import to_decimal_str
from erp.time_utils import to_iso_date, to_utc_z


# Every transaction document is soft-deletable:
#   ACTIVE  (is_deleted=False)
#   TRASHED (is_deleted=True, deleted_at set)
# Hard removal (purge) is only allowed from TRASHED.


class Purchase(db.Model):
    """
    Inbound stock from a supplier.

    LEDGER: each line posts +quantity into the purchase warehouse.
    paying_amount is a cached total; sync-balances makes it equal the sum of
    linked SupplierPayment rows.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_supplier_deleted", "supplier_id", "is_deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    purchase_date = db.Column(db.Date, nullable=False, index=True)
    invoice_number = db.Column(db.String(64), nullable=True)

    total_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    paying_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    due_date = db.Column(db.Date, nullable=True)
    remarks = db.Column(db.Text, nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier")
    warehouse = db.relationship("Warehouse")
    lines = db.relationship(
        "PurchaseLine",
        backref="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseLine.id",
    )

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} date={self.purchase_date} deleted={self.is_deleted}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "warehouse_id": self.warehouse_id,
            "purchase_date": to_iso_date(self.purchase_date),
            "invoice_number": self.invoice_number,
            "total_amount": to_decimal_str(self.total_amount),
            "paying_amount": to_decimal_str(self.paying_amount),
            "due_date": to_iso_date(self.due_date),
            "remarks": self.remarks,
            "is_deleted": self.is_deleted,
            "deleted_at": to_utc_z(self.deleted_at),
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseLine(db.Model):
    __tablename__ = "purchase_lines"

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(18, 4), nullable=False)
    rate = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    gst_rate = db.Column(db.Numeric(18, 4), nullable=True)
    gst_amount = db.Column(db.Numeric(18, 4), nullable=True)

    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "quantity": to_decimal_str(self.quantity),
            "rate": to_decimal_str(self.rate),
            "amount": to_decimal_str(self.amount),
            "gst_rate": to_decimal_str(self.gst_rate),
            "gst_amount": to_decimal_str(self.gst_amount),
        }


class Sale(db.Model):
    """
    Outbound stock to a customer.

    LEDGER: each line posts -quantity from the sale warehouse.
    total_amount = sum(line.amount) + cgst + sgst + igst.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_customer_deleted", "customer_id", "is_deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    sale_date = db.Column(db.Date, nullable=False, index=True)
    invoice_number = db.Column(db.String(64), nullable=True)

    total_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    received_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    due_date = db.Column(db.Date, nullable=True)

    cgst_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    sgst_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    igst_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)

    # E-way bill (transport document) fields
    eway_bill_number = db.Column(db.String(64), nullable=True)
    vehicle_number = db.Column(db.String(32), nullable=True)
    transporter_name = db.Column(db.String(255), nullable=True)

    remarks = db.Column(db.Text, nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer")
    warehouse = db.relationship("Warehouse")
    lines = db.relationship(
        "SaleLine",
        backref="sale",
        cascade="all, delete-orphan",
        order_by="SaleLine.id",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} date={self.sale_date} deleted={self.is_deleted}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "warehouse_id": self.warehouse_id,
            "sale_date": to_iso_date(self.sale_date),
            "invoice_number": self.invoice_number,
            "total_amount": to_decimal_str(self.total_amount),
            "received_amount": to_decimal_str(self.received_amount),
            "due_date": to_iso_date(self.due_date),
            "cgst_amount": to_decimal_str(self.cgst_amount),
            "sgst_amount": to_decimal_str(self.sgst_amount),
            "igst_amount": to_decimal_str(self.igst_amount),
            "eway_bill_number": self.eway_bill_number,
            "vehicle_number": self.vehicle_number,
            "transporter_name": self.transporter_name,
            "remarks": self.remarks,
            "is_deleted": self.is_deleted,
            "deleted_at": to_utc_z(self.deleted_at),
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    __tablename__ = "sale_lines"

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(18, 4), nullable=False)
    rate = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)

    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "quantity": to_decimal_str(self.quantity),
            "rate": to_decimal_str(self.rate),
            "amount": to_decimal_str(self.amount),
        }


class ProductionRun(db.Model):
    """
    Manufacturing batch: consumes raw materials, produces one output item.

    LEDGER:
    - PRODUCTION              +output_quantity of output_item
    - PRODUCTION_CONSUMPTION  -actual_qty per consumption line
    - PRODUCTION_ADJUSTMENT   -variance per line where variance != 0

    Production entry is a manual record of what already happened on the
    floor, so it is NOT gated by the stock availability guard.
    """
    __tablename__ = "production_runs"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    production_date = db.Column(db.Date, nullable=False, index=True)
    output_item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    output_quantity = db.Column(db.Numeric(18, 4), nullable=False)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    batch_count = db.Column(db.Integer, nullable=False, default=1)
    remarks = db.Column(db.Text, nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    output_item = db.relationship("Item")
    warehouse = db.relationship("Warehouse")
    consumptions = db.relationship(
        "ProductionConsumption",
        backref="production_run",
        cascade="all, delete-orphan",
        order_by="ProductionConsumption.id",
    )

    def __repr__(self) -> str:
        return f"<ProductionRun id={self.id} date={self.production_date} deleted={self.is_deleted}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "production_date": to_iso_date(self.production_date),
            "output_item_id": self.output_item_id,
            "output_item_name": self.output_item.name if self.output_item else None,
            "output_quantity": to_decimal_str(self.output_quantity),
            "warehouse_id": self.warehouse_id,
            "batch_count": self.batch_count,
            "remarks": self.remarks,
            "is_deleted": self.is_deleted,
            "deleted_at": to_utc_z(self.deleted_at),
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["consumptions"] = [c.to_dict() for c in self.consumptions]
        return data


class ProductionConsumption(db.Model):
    __tablename__ = "production_consumptions"

    id = db.Column(db.Integer, primary_key=True)
    production_run_id = db.Column(db.Integer, db.ForeignKey("production_runs.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    standard_qty = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    actual_qty = db.Column(db.Numeric(18, 4), nullable=False)
    opening_stock = db.Column(db.Numeric(18, 4), nullable=True)
    # Stock-count variance observed while producing (positive = shortage)
    variance = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    remarks = db.Column(db.Text, nullable=True)

    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "standard_qty": to_decimal_str(self.standard_qty),
            "actual_qty": to_decimal_str(self.actual_qty),
            "opening_stock": to_decimal_str(self.opening_stock),
            "variance": to_decimal_str(self.variance),
            "remarks": self.remarks,
        }


class StockTransfer(db.Model):
    """
    Movement between warehouses.

    The destination is optional: a transfer without to_warehouse_id only
    removes stock from the source (write-off to an external location).
    """
    __tablename__ = "stock_transfers"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    transfer_date = db.Column(db.Date, nullable=False, index=True)
    from_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    to_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True, index=True)
    remarks = db.Column(db.Text, nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    from_warehouse = db.relationship("Warehouse", foreign_keys=[from_warehouse_id])
    to_warehouse = db.relationship("Warehouse", foreign_keys=[to_warehouse_id])
    lines = db.relationship(
        "StockTransferLine",
        backref="transfer",
        cascade="all, delete-orphan",
        order_by="StockTransferLine.id",
    )

    def __repr__(self) -> str:
        return f"<StockTransfer id={self.id} date={self.transfer_date} deleted={self.is_deleted}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "transfer_date": to_iso_date(self.transfer_date),
            "from_warehouse_id": self.from_warehouse_id,
            "to_warehouse_id": self.to_warehouse_id,
            "remarks": self.remarks,
            "is_deleted": self.is_deleted,
            "deleted_at": to_utc_z(self.deleted_at),
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class StockTransferLine(db.Model):
    __tablename__ = "stock_transfer_lines"

    id = db.Column(db.Integer, primary_key=True)
    transfer_id = db.Column(db.Integer, db.ForeignKey("stock_transfers.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(18, 4), nullable=False)

    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "quantity": to_decimal_str(self.quantity),
        }
