"""
Kitchen inventory: stock levels per ingredient and restock alerts.

An item is low on stock once current_stock drops to or below minimum_stock.
"""
import logging
from typing import List

from database import utcnow
from errors import NotFoundError
from schemas import INVENTORY, InventoryItem

logger = logging.getLogger(__name__)


def get_item(store, item_id: str) -> InventoryItem:
    doc = store.get_by_id(INVENTORY, item_id)
    if not doc:
        raise NotFoundError("Inventory item not found")
    return InventoryItem(**doc)


def list_items(store) -> List[InventoryItem]:
    return [InventoryItem(**doc) for doc in store.get_all(INVENTORY, sort=[("name", 1)])]


def create_item(store, item: InventoryItem) -> str:
    data = item.model_dump(exclude={"id"})
    data["last_purchase_date"] = data["last_purchase_date"] or utcnow()
    item_id = store.create(INVENTORY, data)
    logger.info("Inventory item %s (%s) added", item_id, item.name)
    return item_id


def update_item(store, item_id: str, changes: dict) -> None:
    """Edit an item; saving it counts as a purchase entry and stamps the purchase date."""
    changes = {k: v for k, v in changes.items() if v is not None}
    changes["last_purchase_date"] = utcnow()
    store.update(INVENTORY, item_id, changes)


def delete_item(store, item_id: str) -> None:
    store.delete(INVENTORY, item_id)
    logger.info("Inventory item %s deleted", item_id)


def is_low_stock(item: InventoryItem) -> bool:
    return item.current_stock <= item.minimum_stock


def low_stock_items(store) -> List[InventoryItem]:
    low = [item for item in list_items(store) if is_low_stock(item)]
    if low:
        logger.warning("%d inventory items need restocking", len(low))
    return low
