"""
Table occupancy.

Staff may move a table between available, occupied and reserved freely.
Orders drive two automatic moves: a dine-in order occupies its table and
billing releases it. current_order_id is only ever set while occupied.
"""
import logging
from typing import List, Optional

from errors import BusinessRuleError, NotFoundError, ValidationError
from schemas import TABLE_STATUSES, TABLES, Table

logger = logging.getLogger(__name__)


def get_table(store, table_id: str) -> Table:
    doc = store.get_by_id(TABLES, table_id)
    if not doc:
        raise NotFoundError("Table not found")
    return Table(**doc)


def list_tables(store, status: Optional[str] = None) -> List[Table]:
    filt = {"status": status} if status else {}
    return [Table(**doc) for doc in store.get_all(TABLES, filt, sort=[("table_number", 1)])]


def _check_number_free(store, table_number: int, table_id: Optional[str] = None) -> None:
    for doc in store.get_all(TABLES, {"table_number": table_number}):
        if doc["id"] != table_id:
            raise ValidationError(f"Table {table_number} already exists")


def create_table(store, table: Table) -> str:
    _check_number_free(store, table.table_number)
    data = table.model_dump(exclude={"id"})
    data.update(status="available", current_order_id=None)
    return store.create(TABLES, data)


def update_table(store, table_id: str, changes: dict) -> None:
    changes = {k: v for k, v in changes.items() if v is not None}
    get_table(store, table_id)
    if "table_number" in changes:
        _check_number_free(store, changes["table_number"], table_id)
    # status has its own operation
    changes.pop("status", None)
    changes.pop("current_order_id", None)
    store.update(TABLES, table_id, changes)


def delete_table(store, table_id: str) -> None:
    table = get_table(store, table_id)
    if table.status == "occupied":
        raise BusinessRuleError(f"Table {table.table_number} is occupied")
    store.delete(TABLES, table_id)
    logger.info("Table %s deleted", table_id)


def set_table_status(store, table_id: str, status: str) -> None:
    """Manual status change by staff."""
    if status not in TABLE_STATUSES:
        raise ValidationError(f"Unknown table status {status!r}")
    get_table(store, table_id)
    changes = {"status": status}
    if status != "occupied":
        changes["current_order_id"] = None
    store.update(TABLES, table_id, changes)
    logger.info("Table %s marked %s", table_id, status)


def occupy_table(store, table_id: str, order_id: str) -> None:
    store.update(TABLES, table_id, {"status": "occupied", "current_order_id": order_id})


def release_table(store, table_id: str) -> None:
    try:
        store.update(TABLES, table_id, {"status": "available", "current_order_id": None})
    except NotFoundError:
        logger.warning("Table %s no longer exists, nothing to release", table_id)
        return
    logger.info("Table %s released", table_id)
