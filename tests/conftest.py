"""Shared test fixtures."""
import threading

import pytest

from core.db_init import connect_sqlite
from core.errors import PersistenceError
from core.gateway import DataGateway
from core.job_cards import JobCardWorkflow
from core.models import Car, Customer, JobCard, JobCardPart
from core.schema import init_schema
from core.storage import LocalObjectStorage


class FlakyGateway(DataGateway):
    """Gateway that fails selected writes, for failure injection."""

    def __init__(self, conn):
        super().__init__(conn)
        self.fail_updates = set()   # (table, id)
        self.fail_inserts = set()   # table names
        self.fail_reads = set()     # (table, id)
        self.select_calls = 0
        self.rows_returned = 0
        self._count_lock = threading.Lock()

    def select(self, table, filters=None, *args, **kwargs):
        with self._count_lock:
            self.select_calls += 1
        if filters and (table, filters.get("id")) in self.fail_reads:
            raise PersistenceError("read", table, "injected")
        rows = super().select(table, filters, *args, **kwargs)
        with self._count_lock:
            self.rows_returned += len(rows)
        return rows

    def insert(self, table, row):
        if table in self.fail_inserts:
            raise PersistenceError("insert", table, "injected")
        return super().insert(table, row)

    def update(self, table, values, filters):
        if (table, filters.get("id")) in self.fail_updates:
            raise PersistenceError("update", table, "injected")
        return super().update(table, values, filters)


@pytest.fixture
def conn(tmp_path):
    """Provide an initialized SQLite connection."""
    conn = connect_sqlite(tmp_path / "test.db")
    init_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def gateway(conn):
    return FlakyGateway(conn)


@pytest.fixture
def garage_id(gateway):
    return gateway.insert("garages", {"name": "Main Street Motors"})["id"]


@pytest.fixture
def other_garage_id(gateway):
    return gateway.insert("garages", {"name": "Rival Garage"})["id"]


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(tmp_path / "storage")


@pytest.fixture
def workflow(gateway, storage):
    return JobCardWorkflow(gateway, storage)


@pytest.fixture
def make_item(gateway, garage_id):
    """Insert an inventory row and return its id."""
    def _make(name="Oil Filter", quantity=10, unit_price=150.0, garage=None,
              min_stock_level=2):
        return gateway.insert(
            "inventory",
            {
                "item_name": name,
                "quantity": quantity,
                "unit_price": unit_price,
                "min_stock_level": min_stock_level,
                "supplier": "Bosch",
                "garage_id": garage or garage_id,
            },
        )["id"]
    return _make


@pytest.fixture
def job_card():
    """A job card with every required field filled in."""
    return JobCard(
        customer=Customer(name="Asha Rao", phone="9876543210"),
        car=Car(make="Maruti", model="Swift", plate="KA01AB1234"),
        description="Oil change and brake inspection",
        status="In Progress",
        assigned_staff="Ravi",
        manual_labor_cost=500,
        parts=[JobCardPart(name="Brake pad", quantity=2, unit_price=150)],
    )
