from __future__ import annotations

from ..extensions import db
from erp.number_utils import to_decimal_str
from erp.time_utils import to_iso_date, to_utc_z


class StockLedgerEntry(db.Model):
    """
    Append-only stock movement (the single source of truth for quantities).

    INVARIANTS:
    - Rows are never updated. Corrections are new, negated rows.
    - Balance(item, warehouse, as_of) = SUM(quantity) WHERE effective_date <= as_of
    - effective_date is the BUSINESS date of the source document; created_at
      is the wall-clock time of the write. Compensating entries reuse the
      original document's business date so past balances stay correct.
    - Rows are deleted only by: purge of a trashed document, orphan purge
      (sync-stock) and the rebuild wipe.

    reference_type is the serialized ReferenceType, e.g. "SALE_UPDATE_REVERSAL".
    """
    __tablename__ = "stock_ledger"
    __table_args__ = (
        db.Index("ix_stock_ledger_item_wh_date", "item_id", "warehouse_id", "effective_date"),
        db.Index("ix_stock_ledger_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    # Signed: positive = stock in, negative = stock out
    quantity = db.Column(db.Numeric(18, 4), nullable=False)

    reference_type = db.Column(db.String(64), nullable=False)
    # Not a foreign key: points into whichever table reference_type names
    reference_id = db.Column(db.Integer, nullable=False)

    effective_date = db.Column(db.Date, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("Item")
    warehouse = db.relationship("Warehouse")

    def __repr__(self) -> str:
        return (
            f"<StockLedgerEntry id={self.id} item={self.item_id} wh={self.warehouse_id} "
            f"qty={self.quantity} ref={self.reference_type}:{self.reference_id}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "warehouse_id": self.warehouse_id,
            "quantity": to_decimal_str(self.quantity),
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "effective_date": to_iso_date(self.effective_date),
            "created_at": to_utc_z(self.created_at),
        }
