"""
Database Helper Functions

Tenant-scoped document store used by every service. Two interchangeable
backends share one interface:

- MongoDataStore: MongoDB through pymongo (production)
- InMemoryDataStore: process memory (tests and local runs without MongoDB)

Every document carries a `restaurant_id` tag and every query is filtered by it,
so one store instance can never see another restaurant's records.
"""
import copy
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

from config import get_settings
from errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)

TENANT_FIELD = "restaurant_id"

SnapshotCallback = Callable[[List[Dict[str, Any]]], None]
SortSpec = Optional[List[Tuple[str, int]]]

# ------------- Utilities -------------

def to_object_id(id_str: str) -> Optional[ObjectId]:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def to_document(data: Union[BaseModel, dict]) -> Dict[str, Any]:
    # Convert Pydantic model to dict if needed
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    data_dict.pop("id", None)
    data_dict.pop("_id", None)
    return data_dict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _store_failure(action: str, collection: str, exc: Exception) -> StoreError:
    logger.error("Error %s %s: %s", action, collection, exc)
    return StoreError(f"Error {action} {collection}")


class Subscription:
    """Handle returned by subscribe(); call unsubscribe() to stop receiving snapshots."""

    def __init__(self, on_cancel: Callable[[], None]):
        self._on_cancel = on_cancel
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._on_cancel()


# ------------- MongoDB backend -------------

class MongoDataStore:
    def __init__(self, database, restaurant_id: str):
        self.db = database
        self.restaurant_id = restaurant_id

    def for_tenant(self, restaurant_id: str) -> "MongoDataStore":
        return MongoDataStore(self.db, restaurant_id)

    def _scoped(self, filters: Optional[dict] = None) -> dict:
        scoped = dict(filters or {})
        scoped[TENANT_FIELD] = self.restaurant_id
        return scoped

    def get_by_id(self, collection: str, id_str: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(id_str)
        if oid is None:
            return None
        try:
            doc = self.db[collection].find_one(self._scoped({"_id": oid}))
        except PyMongoError as exc:
            raise _store_failure("getting document from", collection, exc) from exc
        return serialize_doc(doc) if doc else None

    def get_all(self, collection: str, filters: Optional[dict] = None, sort: SortSpec = None,
                limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Get documents from collection"""
        try:
            cursor = self.db[collection].find(self._scoped(filters))
            if sort:
                cursor = cursor.sort(sort)
            if limit:
                cursor = cursor.limit(limit)
            return [serialize_doc(d) for d in list(cursor)]
        except PyMongoError as exc:
            raise _store_failure("getting documents from", collection, exc) from exc

    def create(self, collection: str, data: Union[BaseModel, dict]) -> str:
        """Insert a single document with tenant tag and timestamps"""
        data_dict = to_document(data)
        now = utcnow()
        data_dict.setdefault("created_at", now)
        data_dict["updated_at"] = now
        data_dict[TENANT_FIELD] = self.restaurant_id
        try:
            result = self.db[collection].insert_one(data_dict)
        except PyMongoError as exc:
            raise _store_failure("adding document to", collection, exc) from exc
        return str(result.inserted_id)

    def update(self, collection: str, id_str: str, update_data: dict) -> None:
        oid = to_object_id(id_str)
        if oid is None:
            raise NotFoundError(f"{collection} record {id_str} not found")
        update_data = to_document(update_data)
        update_data.pop(TENANT_FIELD, None)
        update_data["updated_at"] = utcnow()
        try:
            result = self.db[collection].update_one(self._scoped({"_id": oid}), {"$set": update_data})
        except PyMongoError as exc:
            raise _store_failure("updating document in", collection, exc) from exc
        if result.matched_count == 0:
            raise NotFoundError(f"{collection} record {id_str} not found")

    def delete(self, collection: str, id_str: str) -> None:
        oid = to_object_id(id_str)
        if oid is None:
            raise NotFoundError(f"{collection} record {id_str} not found")
        try:
            result = self.db[collection].delete_one(self._scoped({"_id": oid}))
        except PyMongoError as exc:
            raise _store_failure("deleting document from", collection, exc) from exc
        if result.deleted_count == 0:
            raise NotFoundError(f"{collection} record {id_str} not found")

    def subscribe(self, collection: str, on_change: SnapshotCallback, filters: Optional[dict] = None,
                  sort: SortSpec = None) -> Subscription:
        """
        Push the full result set to on_change now and after every change.

        Requires a replica set (MongoDB change streams). Runs on a daemon thread;
        a failure is logged and ends this subscription only.
        """
        stop = threading.Event()
        pipeline = [{"$match": {"$or": [
            {"fullDocument." + TENANT_FIELD: self.restaurant_id},
            {"operationType": "delete"},
        ]}}]

        def run():
            try:
                with self.db[collection].watch(pipeline, full_document="updateLookup",
                                               max_await_time_ms=1000) as stream:
                    on_change(self.get_all(collection, filters, sort=sort))
                    while not stop.is_set() and stream.alive:
                        if stream.try_next() is not None and not stop.is_set():
                            on_change(self.get_all(collection, filters, sort=sort))
            except (PyMongoError, StoreError) as exc:
                if not stop.is_set():
                    logger.error("Error subscribing to %s: %s", collection, exc)

        thread = threading.Thread(target=run, name=f"watch-{collection}", daemon=True)
        thread.start()
        return Subscription(stop.set)


# ------------- In-memory backend -------------

class _MemoryBackend:
    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self.listeners: Dict[str, list] = {}
        self.lock = threading.RLock()


def _matches(doc: dict, filters: dict) -> bool:
    return all(doc.get(field) == value for field, value in filters.items())


def _sort_docs(docs: List[dict], sort: SortSpec) -> List[dict]:
    # Stable sorts applied from the least significant key up
    for field, direction in reversed(sort or []):
        docs.sort(key=lambda d: (d.get(field) is not None, d.get(field)),
                  reverse=direction != ASCENDING)
    return docs


class InMemoryDataStore:
    def __init__(self, restaurant_id: str = "default_restaurant", backend: Optional[_MemoryBackend] = None):
        self.restaurant_id = restaurant_id
        self._backend = backend or _MemoryBackend()

    def for_tenant(self, restaurant_id: str) -> "InMemoryDataStore":
        return InMemoryDataStore(restaurant_id, self._backend)

    def _owned(self, collection: str, id_str: str) -> Optional[dict]:
        doc = self._backend.collections.get(collection, {}).get(id_str)
        if doc is None or doc.get(TENANT_FIELD) != self.restaurant_id:
            return None
        return doc

    def get_by_id(self, collection: str, id_str: str) -> Optional[Dict[str, Any]]:
        with self._backend.lock:
            doc = self._owned(collection, id_str)
            return serialize_doc(copy.deepcopy(doc)) if doc else None

    def get_all(self, collection: str, filters: Optional[dict] = None, sort: SortSpec = None,
                limit: Optional[int] = None) -> List[Dict[str, Any]]:
        scoped = dict(filters or {})
        scoped[TENANT_FIELD] = self.restaurant_id
        with self._backend.lock:
            docs = [copy.deepcopy(d) for d in self._backend.collections.get(collection, {}).values()
                    if _matches(d, scoped)]
        docs = _sort_docs(docs, sort)
        if limit:
            docs = docs[:limit]
        return [serialize_doc(d) for d in docs]

    def create(self, collection: str, data: Union[BaseModel, dict]) -> str:
        data_dict = copy.deepcopy(to_document(data))
        now = utcnow()
        data_dict.setdefault("created_at", now)
        data_dict["updated_at"] = now
        data_dict[TENANT_FIELD] = self.restaurant_id
        id_str = str(ObjectId())
        data_dict["_id"] = id_str
        with self._backend.lock:
            self._backend.collections.setdefault(collection, {})[id_str] = data_dict
        self._notify(collection)
        return id_str

    def update(self, collection: str, id_str: str, update_data: dict) -> None:
        update_data = copy.deepcopy(to_document(update_data))
        update_data.pop(TENANT_FIELD, None)
        update_data["updated_at"] = utcnow()
        with self._backend.lock:
            doc = self._owned(collection, id_str)
            if doc is None:
                raise NotFoundError(f"{collection} record {id_str} not found")
            doc.update(update_data)
        self._notify(collection)

    def delete(self, collection: str, id_str: str) -> None:
        with self._backend.lock:
            if self._owned(collection, id_str) is None:
                raise NotFoundError(f"{collection} record {id_str} not found")
            del self._backend.collections[collection][id_str]
        self._notify(collection)

    def subscribe(self, collection: str, on_change: SnapshotCallback, filters: Optional[dict] = None,
                  sort: SortSpec = None) -> Subscription:
        listener = (self.restaurant_id, filters, sort, on_change)
        with self._backend.lock:
            self._backend.listeners.setdefault(collection, []).append(listener)

        def cancel():
            with self._backend.lock:
                self._backend.listeners[collection].remove(listener)

        on_change(self.get_all(collection, filters, sort=sort))
        return Subscription(cancel)

    def _notify(self, collection: str) -> None:
        with self._backend.lock:
            listeners = list(self._backend.listeners.get(collection, []))
        for restaurant_id, filters, sort, on_change in listeners:
            if restaurant_id == self.restaurant_id:
                on_change(self.get_all(collection, filters, sort=sort))


# ------------- Process-wide store -------------

_client = None
_store = None


def get_store():
    """Return the configured MongoDB store, connecting on first use."""
    global _client, _store
    if _store is None:
        settings = get_settings()
        if not (settings.database_url and settings.database_name):
            raise StoreError("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")
        _client = MongoClient(settings.database_url, tz_aware=True)
        _store = MongoDataStore(_client[settings.database_name], settings.restaurant_id)
    return _store
