from .masters import Item, Warehouse, Supplier, Customer, Owner
from .documents import (
    Purchase, PurchaseLine,
    Sale, SaleLine,
    ProductionRun, ProductionConsumption,
    StockTransfer, StockTransferLine,
)
from .ledger import StockLedgerEntry
from .payments import SupplierPayment, CustomerPayment, PaymentOrigin

__all__ = [
    'Item', 'Warehouse', 'Supplier', 'Customer', 'Owner',
    'Purchase', 'PurchaseLine', 'Sale', 'SaleLine',
    'ProductionRun', 'ProductionConsumption',
    'StockTransfer', 'StockTransferLine',
    'StockLedgerEntry',
    'SupplierPayment', 'CustomerPayment', 'PaymentOrigin',
]
