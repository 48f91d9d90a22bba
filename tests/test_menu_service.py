import pytest

import menu_service
from errors import NotFoundError
from schemas import MenuCategory, MenuItem


@pytest.fixture
def starters(store):
    category_id = menu_service.create_category(store, MenuCategory(name="Starters", order=1))
    menu_service.create_category(store, MenuCategory(name="Mains", order=2))
    return category_id


def test_delete_menu_item(store, menu):
    menu_service.delete_menu_item(store, menu["lassi"].id)

    with pytest.raises(NotFoundError):
        menu_service.get_menu_item(store, menu["lassi"].id)
    assert "Sweet Lassi" not in [item.name for item in menu_service.list_menu(store)]


def test_delete_unknown_menu_item(store):
    with pytest.raises(NotFoundError):
        menu_service.delete_menu_item(store, "64b000000000000000000000")


def test_update_category(store, starters):
    menu_service.update_category(store, starters, {"name": "Small Plates", "order": 3, "is_active": None})

    categories = menu_service.list_categories(store)
    assert [c.name for c in categories] == ["Mains", "Small Plates"]
    assert categories[1].is_active is True


def test_delete_category_keeps_its_items(store, starters):
    item_id = menu_service.create_menu_item(store, MenuItem(name="Hara Kebab", price=120, category_id=starters))

    menu_service.delete_category(store, starters)

    assert [c.name for c in menu_service.list_categories(store)] == ["Mains"]
    assert menu_service.get_menu_item(store, item_id).category_id is None
    assert menu_service.list_menu(store, category_id=starters) == []


def test_delete_unknown_category(store):
    with pytest.raises(NotFoundError):
        menu_service.delete_category(store, "64b000000000000000000000")
