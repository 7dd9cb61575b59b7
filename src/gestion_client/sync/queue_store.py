"""Durable queue of pending write operations."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from gestion_client.errors import PersistenceFailure
from gestion_client.sync.events import SyncEventType
from gestion_client.sync.protocol import HttpMethod, PendingOperation
from gestion_client.utils.timeutils import utc_isoformat

if TYPE_CHECKING:
    from gestion_client.storage.base import KeyValueStore
    from gestion_client.sync.events import EventEmitter

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "cola_sync"


def normalize_path(path: str, api_root: str) -> str:
    """Turn a caller-relative path into its backend-absolute form.

    ``/clientes/`` with root ``/api`` becomes ``/api/clientes/``; paths that
    already carry the root are left alone.
    """
    if not path.startswith("/"):
        path = "/" + path
    root = api_root.rstrip("/")
    if not root:
        return path
    if path == root or path.startswith(root + "/"):
        return path
    return root + path


class DurableQueueStore:
    """Ordered FIFO list of pending operations under one storage key.

    The whole list is serialized as a JSON array and rewritten on every
    mutation. Mutations are serialized with an asyncio lock so that an
    enqueue landing while a drain awaits the network is never lost.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        api_root: str = "/api",
        key: str = DEFAULT_STORAGE_KEY,
        events: EventEmitter | None = None,
    ) -> None:
        self._store = store
        self._api_root = api_root
        self._key = key
        self._events = events
        self._lock = asyncio.Lock()

    @property
    def key(self) -> str:
        return self._key

    @property
    def api_root(self) -> str:
        return self._api_root

    # ── Reads ────────────────────────────────────────────────────────────

    async def read_all(self) -> list[PendingOperation]:
        """Current queue in insertion order; empty if storage is absent or corrupt."""
        try:
            raw = await self._store.get(self._key)
        except PersistenceFailure as e:
            logger.error("Cannot read sync queue: %s", e)
            return []

        if not raw:
            return []

        try:
            entries = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Corrupt sync queue JSON under key %r, treating as empty", self._key)
            return []

        if not isinstance(entries, list):
            logger.warning("Sync queue under key %r is not a list, treating as empty", self._key)
            return []

        operations: list[PendingOperation] = []
        for entry in entries:
            if not isinstance(entry, dict):
                logger.warning("Skipping malformed queue entry: %r", entry)
                continue
            try:
                operations.append(PendingOperation.from_dict(entry))
            except ValueError as e:
                logger.warning("Skipping malformed queue entry: %s", e)
        return operations

    async def count(self) -> int:
        return len(await self.read_all())

    # ── Writes ───────────────────────────────────────────────────────────

    async def enqueue(
        self,
        method: HttpMethod | str,
        path: str,
        body: Any = None,
    ) -> PendingOperation:
        """
        Append an operation and persist the full list.

        Args:
            method: Write verb (POST, PUT, DELETE, PATCH)
            path: Caller-relative path, normalized to the API root here
            body: JSON body, None for bodiless operations

        Returns:
            The stored operation (returned even if persisting failed)

        Raises:
            ValueError: If method is GET or unknown
        """
        operation = PendingOperation(
            method=HttpMethod.parse(method),
            path=normalize_path(path, self._api_root),
            body=body,
            enqueued_at=utc_isoformat(),
        )

        async with self._lock:
            queue = await self.read_all()
            queue.append(operation)
            await self._write(queue)

        logger.info(
            "Operation queued: %s %s (%d pending)", operation.method, operation.path, len(queue)
        )
        await self._changed(len(queue))
        return operation

    async def replace_all(self, operations: list[PendingOperation]) -> None:
        """Overwrite the persisted list."""
        async with self._lock:
            await self._write(operations)
        await self._changed(len(operations))

    async def clear(self) -> None:
        await self.replace_all([])

    async def reconcile(
        self,
        submitted: list[PendingOperation],
        retained: list[PendingOperation],
    ) -> list[PendingOperation]:
        """
        Rewrite the queue after a batch attempt.

        Operations the backend acknowledged (submitted but not retained) are
        removed from the current list; retained failures keep their position
        and anything appended after the batch snapshot stays behind them.

        Returns:
            The new queue
        """
        acknowledged = list(submitted)
        for op in retained:
            acknowledged.remove(op)

        async with self._lock:
            current = await self.read_all()
            if current[: len(submitted)] != submitted:
                logger.warning("Sync queue changed during batch submission, reconciling by value")
            new_queue = []
            for op in current:
                if op in acknowledged:
                    acknowledged.remove(op)
                else:
                    new_queue.append(op)
            await self._write(new_queue)

        await self._changed(len(new_queue))
        return new_queue

    async def _write(self, operations: list[PendingOperation]) -> None:
        """Persist the list; failures are logged, never raised."""
        payload = json.dumps([op.to_dict() for op in operations], ensure_ascii=False)
        try:
            await self._store.set(self._key, payload)
        except PersistenceFailure as e:
            logger.error("Cannot save sync queue (%d operations): %s", len(operations), e)

    async def _changed(self, pending: int) -> None:
        if self._events is not None:
            await self._events.emit(SyncEventType.QUEUE_CHANGED, pending=pending)
