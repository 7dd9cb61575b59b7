"""Local persistence backends for the offline queue."""

from gestion_client.storage.base import KeyValueStore
from gestion_client.storage.factory import create_store
from gestion_client.storage.memory_store import InMemoryKeyValueStore
from gestion_client.storage.sqlite_store import SQLiteKeyValueStore

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "create_store",
]
