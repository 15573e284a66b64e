from __future__ import annotations

import enum

from ..extensions import db
from erp.number_utils import to_decimal_str
from erp.time_utils import to_iso_date, to_utc_z


class PaymentOrigin(str, enum.Enum):
    """
    Where a payment record came from.

    USER_ENTERED         recorded by a person (payments screen)
    INITIAL_AT_CREATION  the upfront amount typed on the invoice itself
    HEALED               synthesized by sync-balances to close a balance gap
    """
    USER_ENTERED = "USER_ENTERED"
    INITIAL_AT_CREATION = "INITIAL_AT_CREATION"
    HEALED = "HEALED"


# Display remarks written alongside the origin (legacy screens show these)
INITIAL_PURCHASE_REMARK = "Initial payment at purchase time"
INITIAL_SALE_REMARK = "Initial receipt at sale time"
HEALED_REMARK = "Healed by sync-balances (balance gap fix)"


class SupplierPayment(db.Model):
    __tablename__ = "supplier_payments"
    __table_args__ = (
        db.Index("ix_supplier_payments_purchase_origin", "purchase_id", "origin"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=True, index=True)
    # Payer; null only when no owner exists yet
    owner_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=True, index=True)

    payment_date = db.Column(db.Date, nullable=False, index=True)
    amount = db.Column(db.Numeric(18, 4), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="Cash")
    remarks = db.Column(db.Text, nullable=True)
    next_due_date = db.Column(db.Date, nullable=True)
    origin = db.Column(db.String(32), nullable=False, default=PaymentOrigin.USER_ENTERED.value, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier")
    purchase = db.relationship("Purchase")
    owner = db.relationship("Owner")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "purchase_id": self.purchase_id,
            "owner_id": self.owner_id,
            "payment_date": to_iso_date(self.payment_date),
            "amount": to_decimal_str(self.amount),
            "payment_method": self.payment_method,
            "remarks": self.remarks,
            "next_due_date": to_iso_date(self.next_due_date),
            "origin": self.origin,
            "created_at": to_utc_z(self.created_at),
        }


class CustomerPayment(db.Model):
    __tablename__ = "customer_payments"
    __table_args__ = (
        db.Index("ix_customer_payments_sale_origin", "sale_id", "origin"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    # Receiver; null only when no owner exists yet
    owner_id = db.Column(db.Integer, db.ForeignKey("owners.id"), nullable=True, index=True)

    payment_date = db.Column(db.Date, nullable=False, index=True)
    amount = db.Column(db.Numeric(18, 4), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="Cash")
    remarks = db.Column(db.Text, nullable=True)
    next_due_date = db.Column(db.Date, nullable=True)
    origin = db.Column(db.String(32), nullable=False, default=PaymentOrigin.USER_ENTERED.value, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer")
    sale = db.relationship("Sale")
    owner = db.relationship("Owner")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "sale_id": self.sale_id,
            "owner_id": self.owner_id,
            "payment_date": to_iso_date(self.payment_date),
            "amount": to_decimal_str(self.amount),
            "payment_method": self.payment_method,
            "remarks": self.remarks,
            "next_due_date": to_iso_date(self.next_due_date),
            "origin": self.origin,
            "created_at": to_utc_z(self.created_at),
        }
