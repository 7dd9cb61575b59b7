"""Observer registry for sync state changes.

Presentation layers subscribe here instead of the core reaching into any
particular UI toolkit.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from gestion_client.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

ALL_EVENTS = "*"


class SyncEventType(StrEnum):
    """Events emitted by the queue, monitor, engine and transfer service."""

    QUEUE_CHANGED = "queue_changed"
    CONNECTIVITY_CHANGED = "connectivity_changed"
    INDICATOR_CHANGED = "indicator_changed"
    SYNC_STARTED = "sync_started"
    SYNC_COMPLETED = "sync_completed"
    SYNC_FAILED = "sync_failed"
    NOTIFICATION = "notification"
    IMPORT_COMPLETED = "import_completed"


class NotificationLevel(StrEnum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class SyncEvent:
    """A state change published to subscribers."""

    type: SyncEventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)


EventHandler = Callable[[SyncEvent], Any]


class EventEmitter:
    """Registry of event handlers.

    Handlers may be plain callables or coroutine functions. A failing
    handler is logged and never stops delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def on(self, event_type: SyncEventType | str, handler: EventHandler) -> None:
        """
        Register an event handler.

        Args:
            event_type: Event type to handle, or "*" for every event
            handler: Callable invoked with the SyncEvent
        """
        self._handlers.setdefault(str(event_type), []).append(handler)

    def off(self, event_type: SyncEventType | str, handler: EventHandler | None = None) -> None:
        """
        Unregister an event handler.

        Args:
            event_type: The event type
            handler: Specific handler to remove (all if None)
        """
        key = str(event_type)
        if key not in self._handlers:
            return

        if handler is None:
            del self._handlers[key]
        else:
            self._handlers[key] = [h for h in self._handlers[key] if h != handler]

    async def emit(self, event_type: SyncEventType, **data: Any) -> SyncEvent:
        """Build an event and dispatch it to matching handlers."""
        event = SyncEvent(type=event_type, data=data)

        # Copy so handlers may (un)register while we dispatch
        handlers = [*self._handlers.get(str(event_type), []), *self._handlers.get(ALL_EVENTS, [])]

        for handler in handlers:
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.warning("Sync event handler error for '%s': %s", event_type, e)

        return event

    async def notify(self, level: NotificationLevel, message: str, **data: Any) -> SyncEvent:
        """Emit a user-facing notification."""
        return await self.emit(
            SyncEventType.NOTIFICATION, level=level.value, message=message, **data
        )
