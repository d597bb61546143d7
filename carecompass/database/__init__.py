"""
Database module

Contains the data models (schemas), the storage interface and its two
adapters, plus the process-wide store used by the API.
"""
import logging
from threading import Lock
from typing import Optional

from carecompass.core import config
from carecompass.database.base import Store, COLLECTIONS, user_collection
from carecompass.database.storage import JsonFileStore, read_json, write_json
from carecompass.database.cache import TTLCache, get_session_cache

logger = logging.getLogger(__name__)

_store: Optional[Store] = None
_store_lock = Lock()


def create_store(backend: Optional[str] = None) -> Store:
    """
    Build a store for the configured backend ('json' or 'mongo')
    """
    backend = (backend or config.STORAGE_BACKEND).lower()
    if backend == "mongo":
        # Imported lazily so the JSON backend runs without a Mongo server
        from carecompass.database.mongo import MongoStore
        store = MongoStore(config.MONGO_URL, config.MONGO_DB)
        store.ensure_indexes()
        logger.info(f"Using MongoDB store ({config.MONGO_DB})")
        return store
    if backend == "json":
        logger.info(f"Using JSON file store ({config.DB_FILE})")
        return JsonFileStore(config.DB_FILE)
    raise ValueError(f"Unknown STORAGE_BACKEND '{backend}' (expected 'json' or 'mongo')")


def get_store() -> Store:
    global _store
    with _store_lock:
        if _store is None:
            _store = create_store()
        return _store


def set_store(store: Optional[Store]):
    """
    Replace the process-wide store (None resets to the configured backend)
    """
    global _store
    with _store_lock:
        _store = store
    get_session_cache().clear()


__all__ = [
    "Store",
    "COLLECTIONS",
    "user_collection",
    "JsonFileStore",
    "read_json",
    "write_json",
    "TTLCache",
    "get_session_cache",
    "create_store",
    "get_store",
    "set_store",
]
