"""
Shared fixtures for the POS tests.

Every test gets a fresh in-memory store for one restaurant, a small menu,
two tables and a signed-in waiter.
"""
import pytest
from fastapi.testclient import TestClient

import menu_service
import table_service
from config import get_settings
from database import InMemoryDataStore
from errors import StoreError
from schemas import MenuItem, StaffMember, Table


class FailingStore(InMemoryDataStore):
    """In-memory store whose writes to selected collections fail like a network error."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.failing = set()

    def create(self, collection, data):
        if collection in self.failing:
            raise StoreError(f"Error adding document to {collection}")
        return super().create(collection, data)

    def update(self, collection, id_str, update_data):
        if collection in self.failing:
            raise StoreError(f"Error updating document in {collection}")
        return super().update(collection, id_str, update_data)


@pytest.fixture(autouse=True)
def fresh_settings():
    """Each test reads its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store():
    return FailingStore("test_restaurant")


@pytest.fixture
def staff():
    return StaffMember(id="staff-1", name="Ravi", role="waiter")


@pytest.fixture
def menu(store):
    """Menu items keyed by a short name."""
    items = {
        "paneer": MenuItem(name="Paneer Tikka", price=100, gst_rate=5),
        "lassi": MenuItem(name="Sweet Lassi", price=50, gst_rate=18),
        "thali": MenuItem(name="Veg Thali", price=250, gst_rate=12),
        "soup": MenuItem(name="Tomato Soup", price=80, gst_rate=5, is_available=False),
    }
    for item in items.values():
        item.id = menu_service.create_menu_item(store, item)
    return items


@pytest.fixture
def table(store):
    table_id = table_service.create_table(store, Table(table_number=1, capacity=4, section="Hall"))
    return table_service.get_table(store, table_id)


@pytest.fixture
def second_table(store):
    table_id = table_service.create_table(store, Table(table_number=2, capacity=2))
    return table_service.get_table(store, table_id)


@pytest.fixture
def client(store):
    from database import get_store
    from main import app

    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def staff_headers():
    return {"X-Staff-Id": "staff-1", "X-Staff-Name": "Ravi", "X-Staff-Role": "waiter"}


@pytest.fixture
def admin_headers():
    return {"X-Staff-Id": "staff-0", "X-Staff-Name": "Anita", "X-Staff-Role": "admin"}


@pytest.fixture
def kitchen_headers():
    return {"X-Staff-Id": "staff-2", "X-Staff-Name": "Suresh", "X-Staff-Role": "kitchen"}
