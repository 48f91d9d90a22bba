"""Menu items and categories (admin configuration, read-only to orders)."""
from typing import List, Optional

from errors import NotFoundError
from schemas import MENU_CATEGORIES, MENU_ITEMS, MenuCategory, MenuItem


def get_menu_item(store, item_id: str) -> MenuItem:
    doc = store.get_by_id(MENU_ITEMS, item_id)
    if not doc:
        raise NotFoundError("Menu item not found")
    return MenuItem(**doc)


def list_menu(store, category_id: Optional[str] = None, available_only: bool = True) -> List[MenuItem]:
    filt = {}
    if available_only:
        filt["is_available"] = True
    if category_id:
        filt["category_id"] = category_id
    return [MenuItem(**doc) for doc in store.get_all(MENU_ITEMS, filt, sort=[("name", 1)])]


def create_menu_item(store, item: MenuItem) -> str:
    return store.create(MENU_ITEMS, item)


def update_menu_item(store, item_id: str, changes: dict) -> None:
    store.update(MENU_ITEMS, item_id, {k: v for k, v in changes.items() if v is not None})


def delete_menu_item(store, item_id: str) -> None:
    # open orders keep their own copy of name and price
    store.delete(MENU_ITEMS, item_id)


def create_category(store, category: MenuCategory) -> str:
    return store.create(MENU_CATEGORIES, category)


def list_categories(store) -> List[MenuCategory]:
    docs = store.get_all(MENU_CATEGORIES, sort=[("order", 1), ("name", 1)])
    return [MenuCategory(**doc) for doc in docs]


def update_category(store, category_id: str, changes: dict) -> None:
    store.update(MENU_CATEGORIES, category_id, {k: v for k, v in changes.items() if v is not None})


def delete_category(store, category_id: str) -> None:
    """Remove a category; its items stay on the menu without a category."""
    store.delete(MENU_CATEGORIES, category_id)
    for doc in store.get_all(MENU_ITEMS, {"category_id": category_id}):
        store.update(MENU_ITEMS, doc["id"], {"category_id": None})
