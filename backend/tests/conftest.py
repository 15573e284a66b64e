"""
Pytest fixtures for the stock ledger backend tests.

Provides test database setup, master data fixtures, document factories, and
the test client.
"""

from decimal import Decimal

import pytest

from erp import create_app
from erp.extensions import db
from erp.models import Customer, Item, Owner, Supplier, Warehouse
from erp.services import production_service, purchase_service, sales_service, transfer_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def warehouse(db_session):
    wh = Warehouse(name="Main Warehouse", location="Unit 1")
    db_session.add(wh)
    db_session.commit()
    return wh


@pytest.fixture(scope='function')
def warehouse_b(db_session):
    wh = Warehouse(name="Overflow Warehouse", location="Unit 2")
    db_session.add(wh)
    db_session.commit()
    return wh


@pytest.fixture(scope='function')
def item(db_session):
    """Raw material."""
    it = Item(name="Cotton Yarn", unit="kg", reorder_level=Decimal("20"))
    db_session.add(it)
    db_session.commit()
    return it


@pytest.fixture(scope='function')
def finished_item(db_session):
    it = Item(name="Woven Fabric", unit="m", reorder_level=Decimal("0"))
    db_session.add(it)
    db_session.commit()
    return it


@pytest.fixture(scope='function')
def supplier(db_session):
    s = Supplier(name="Acme Mills", phone="555-0100")
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def supplier_b(db_session):
    s = Supplier(name="Beta Traders")
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="Retail Co", phone="555-0200")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def customer_b(db_session):
    c = Customer(name="Wholesale Ltd")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def owner(db_session):
    o = Owner(name="Proprietor")
    db_session.add(o)
    db_session.commit()
    return o


@pytest.fixture(scope='function')
def make_purchase(supplier, warehouse, item):
    """Factory: purchase of `quantity` of the default item unless overridden."""
    def _make(quantity="100", *, date="2024-01-01", rate="10", **overrides):
        payload = {
            "supplier_id": supplier.id,
            "warehouse_id": warehouse.id,
            "purchase_date": date,
            "lines": [{"item_id": item.id, "quantity": quantity, "rate": rate}],
        }
        payload.update(overrides)
        return purchase_service.create_purchase(payload)
    return _make


@pytest.fixture(scope='function')
def make_sale(customer, warehouse, item):
    """Factory: sale of `quantity` of the default item unless overridden."""
    def _make(quantity="30", *, date="2024-01-05", rate="15", **overrides):
        payload = {
            "customer_id": customer.id,
            "warehouse_id": warehouse.id,
            "sale_date": date,
            "lines": [{"item_id": item.id, "quantity": quantity, "rate": rate}],
        }
        payload.update(overrides)
        return sales_service.create_sale(payload)
    return _make


@pytest.fixture(scope='function')
def make_production(warehouse, item, finished_item):
    """Factory: run consuming the default item into the finished item."""
    def _make(output="40", consumed="50", *, date="2024-01-03", variance="0", **overrides):
        payload = {
            "production_date": date,
            "output_item_id": finished_item.id,
            "output_quantity": output,
            "warehouse_id": warehouse.id,
            "consumptions": [{"item_id": item.id, "actual_qty": consumed, "variance": variance}],
        }
        payload.update(overrides)
        return production_service.create_production_run(payload)
    return _make


@pytest.fixture(scope='function')
def make_transfer(warehouse, warehouse_b, item):
    def _make(quantity="25", *, date="2024-01-04", **overrides):
        payload = {
            "transfer_date": date,
            "from_warehouse_id": warehouse.id,
            "to_warehouse_id": warehouse_b.id,
            "lines": [{"item_id": item.id, "quantity": quantity}],
        }
        payload.update(overrides)
        return transfer_service.create_transfer(payload)
    return _make
