"""Sync engine: drains the durable queue through the batch endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from gestion_client.errors import ApplicationError, TransportFailure
from gestion_client.sync.events import NotificationLevel, SyncEventType
from gestion_client.sync.models import BatchSyncResponse
from gestion_client.sync.protocol import HttpMethod, PendingOperation, SyncResult
from gestion_client.sync.state import set_online
from gestion_client.utils.timeutils import utcnow

if TYPE_CHECKING:
    from gestion_client.sync.events import EventEmitter
    from gestion_client.sync.queue_store import DurableQueueStore
    from gestion_client.sync.state import ConnectivityState
    from gestion_client.sync.transport import BackendTransport

logger = logging.getLogger(__name__)

DEFAULT_SYNC_PATH = "/sync"


async def submit_batch(
    transport: BackendTransport,
    operations: list[PendingOperation],
    *,
    sync_path: str = DEFAULT_SYNC_PATH,
) -> SyncResult:
    """
    Send operations to the batch endpoint in one request.

    Args:
        transport: Backend transport
        operations: Operations in replay order
        sync_path: Batch endpoint path relative to the API root

    Returns:
        SyncResult aligned with ``operations``

    Raises:
        TransportFailure: If the endpoint cannot be reached
        ApplicationError: If the endpoint answers ``ok: false`` or garbage
    """
    payload = {"operaciones": [op.to_dict() for op in operations]}
    data = await transport.request_json(HttpMethod.POST, sync_path, payload)

    if not isinstance(data, dict):
        raise ApplicationError("Unexpected response from the sync endpoint")
    try:
        response = BatchSyncResponse.model_validate(data)
    except ValidationError as e:
        raise ApplicationError("Malformed response from the sync endpoint") from e

    if not response.ok:
        raise ApplicationError(response.error or "The sync endpoint reported an error")

    if len(response.resultados) != len(operations):
        logger.warning(
            "Sync endpoint returned %d results for %d operations",
            len(response.resultados),
            len(operations),
        )
    return response.to_sync_result(operations)


def failure_details(result: SyncResult) -> list[dict[str, Any]]:
    return [
        {"index": index, "path": item.path, "error": item.error}
        for index, item in result.failures()
    ]


class SyncEngine:
    """Single-flight drain of the pending queue.

    Each drain:
    1. Reads the queue (no network call if it is empty)
    2. Submits it as one batch
    3. Leaves it untouched if the backend is unreachable or refuses the batch
    4. Otherwise keeps only the operations the backend rejected
    """

    def __init__(
        self,
        queue: DurableQueueStore,
        transport: BackendTransport,
        state: ConnectivityState,
        events: EventEmitter | None = None,
        *,
        sync_path: str = DEFAULT_SYNC_PATH,
    ) -> None:
        self._queue = queue
        self._transport = transport
        self._state = state
        self._events = events
        self._sync_path = sync_path

    @property
    def is_syncing(self) -> bool:
        return self._state.syncing

    async def drain(self) -> SyncResult | None:
        """
        Attempt to synchronize the whole queue.

        Returns:
            The SyncResult when the batch endpoint answered, None when there was
            nothing to do, a drain was already running, or the batch failed
        """
        if self._state.syncing:
            logger.debug("Drain already in progress, skipping")
            return None

        self._state.syncing = True
        try:
            return await self._drain()
        finally:
            self._state.syncing = False

    async def _drain(self) -> SyncResult | None:
        operations = await self._queue.read_all()
        if not operations:
            return None

        logger.info("Synchronizing %d pending operations...", len(operations))
        await self._emit(SyncEventType.SYNC_STARTED, pending=len(operations))

        try:
            result = await submit_batch(self._transport, operations, sync_path=self._sync_path)
        except TransportFailure as e:
            logger.info("Backend not available, retrying later: %s", e)
            await set_online(self._state, False, self._events)
            await self._emit(SyncEventType.SYNC_FAILED, reason="unreachable", pending=len(operations))
            return None
        except ApplicationError as e:
            logger.error("Sync endpoint error: %s", e)
            await set_online(self._state, True, self._events)
            await self._emit(SyncEventType.SYNC_FAILED, reason="rejected", error=str(e), pending=len(operations))
            await self._notify(NotificationLevel.ERROR, "Synchronization failed. Pending operations were kept.")
            return None

        await set_online(self._state, True, self._events)
        self._state.last_sync_at = utcnow()

        remaining = await self._queue.reconcile(operations, result.retained(operations))
        logger.info(
            "Sync finished: %d/%d succeeded, %d pending",
            result.succeeded,
            result.total,
            len(remaining),
        )

        if result.succeeded > 0:
            await self._notify(
                NotificationLevel.SUCCESS,
                f"Synchronization completed: {result.succeeded}/{result.total} operations succeeded",
            )
        if result.failed > 0:
            await self._notify(
                NotificationLevel.WARNING,
                f"{result.failed} operation{'s' if result.failed != 1 else ''} could not be synchronized",
                failures=failure_details(result),
            )

        await self._emit(
            SyncEventType.SYNC_COMPLETED,
            total=result.total,
            succeeded=result.succeeded,
            failed=result.failed,
            pending=len(remaining),
        )
        return result

    async def _emit(self, event_type: SyncEventType, **data: Any) -> None:
        if self._events is not None:
            await self._events.emit(event_type, **data)

    async def _notify(self, level: NotificationLevel, message: str, **data: Any) -> None:
        if self._events is not None:
            await self._events.notify(level, message, **data)
