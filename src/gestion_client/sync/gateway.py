"""Request gateway: every backend call goes through here.

Writes that fail at the transport level are handed to the durable queue and
answered with a success-shaped ``offline`` result, so data entry is never
lost. Reads are never queued.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from gestion_client.errors import InvalidResponseError, TransportFailure
from gestion_client.sync.protocol import HttpMethod

if TYPE_CHECKING:
    from gestion_client.sync.queue_store import DurableQueueStore
    from gestion_client.sync.transport import BackendTransport

logger = logging.getLogger(__name__)

UNREACHABLE_MESSAGE = "Could not connect to the server. Is the backend running?"
INVALID_RESPONSE_MESSAGE = "The server returned an invalid response."
QUEUED_MESSAGE = "Saved offline. It will be synchronized when the connection returns."
DELETE_QUEUED_MESSAGE = "Deletion queued. It will be synchronized when the connection returns."


def offline_result(method: HttpMethod) -> dict[str, Any]:
    """Success-shaped answer for a queued write."""
    message = DELETE_QUEUED_MESSAGE if method is HttpMethod.DELETE else QUEUED_MESSAGE
    return {"ok": True, "offline": True, "mensaje": message}


def unreachable_result() -> dict[str, Any]:
    return {"ok": False, "error": UNREACHABLE_MESSAGE}


class RequestGateway:
    """Backend API facade with enqueue-on-failure for writes.

    Whether writes are queued is decided at construction time by passing
    (or not) a DurableQueueStore.
    """

    def __init__(
        self,
        transport: BackendTransport,
        queue: DurableQueueStore | None = None,
    ) -> None:
        self._transport = transport
        self._queue = queue

    @property
    def queues_writes(self) -> bool:
        return self._queue is not None

    async def request(
        self,
        method: HttpMethod | str,
        path: str,
        body: Any = None,
    ) -> Any:
        """
        Generic verb-parameterized call.

        Args:
            method: HTTP verb (GET, POST, PUT, PATCH, DELETE)
            path: Path relative to the API root (e.g. "/clientes/")
            body: JSON-serializable payload for writes

        Returns:
            The decoded JSON body as returned by the backend, or a synthetic
            result when the backend could not be reached

        Raises:
            ValueError: For unknown HTTP verbs
        """
        verb = HttpMethod.parse(method)

        try:
            return await self._transport.request_json(verb, path, body)
        except InvalidResponseError as e:
            logger.warning("Invalid response for %s %s (status %s)", verb, path, e.status_code)
            return {"ok": False, "error": INVALID_RESPONSE_MESSAGE}
        except TransportFailure as e:
            logger.warning("Transport failure on %s %s: %s", verb, path, e)

        if not verb.is_write or self._queue is None:
            return unreachable_result()

        await self._queue.enqueue(verb, path, body)
        return offline_result(verb)

    async def get(self, path: str) -> Any:
        return await self.request(HttpMethod.GET, path)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request(HttpMethod.POST, path, body)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self.request(HttpMethod.PUT, path, body)

    async def patch(self, path: str, body: Any = None) -> Any:
        return await self.request(HttpMethod.PATCH, path, body)

    async def delete(self, path: str) -> Any:
        return await self.request(HttpMethod.DELETE, path)
