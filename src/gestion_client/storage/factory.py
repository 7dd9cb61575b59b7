"""Storage factory selecting the backend from configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gestion_client.storage.base import KeyValueStore
from gestion_client.storage.memory_store import InMemoryKeyValueStore
from gestion_client.storage.sqlite_store import SQLiteKeyValueStore

if TYPE_CHECKING:
    from gestion_client.unified_config import GestionConfig

logger = logging.getLogger(__name__)


def create_store(config: GestionConfig) -> KeyValueStore:
    """Build the configured key-value backend (not yet initialized)."""
    backend = config.storage.backend
    if backend == "memory":
        logger.info("Using in-memory queue storage; pending operations will not survive restarts")
        return InMemoryKeyValueStore()
    return SQLiteKeyValueStore(config.queue_db_path)
