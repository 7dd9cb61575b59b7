"""Offline write queue, connectivity monitoring and batch synchronization."""

from gestion_client.sync.events import (
    EventEmitter,
    NotificationLevel,
    SyncEvent,
    SyncEventType,
)
from gestion_client.sync.gateway import RequestGateway
from gestion_client.sync.indicator import IndicatorState, SyncIndicator
from gestion_client.sync.monitor import ConnectivityMonitor
from gestion_client.sync.protocol import (
    HttpMethod,
    OperationResult,
    PendingOperation,
    SyncResult,
    TransferDocument,
)
from gestion_client.sync.queue_store import DurableQueueStore
from gestion_client.sync.state import ConnectivityState, ConnectivityStatus
from gestion_client.sync.sync_engine import SyncEngine
from gestion_client.sync.transfer import (
    ExportOutcome,
    ImportOutcome,
    ImportStatus,
    TransferService,
)
from gestion_client.sync.transport import BackendTransport

__all__ = [
    "BackendTransport",
    "ConnectivityMonitor",
    "ConnectivityState",
    "ConnectivityStatus",
    "DurableQueueStore",
    "EventEmitter",
    "ExportOutcome",
    "HttpMethod",
    "ImportOutcome",
    "ImportStatus",
    "IndicatorState",
    "NotificationLevel",
    "OperationResult",
    "PendingOperation",
    "RequestGateway",
    "SyncEngine",
    "SyncEvent",
    "SyncEventType",
    "SyncIndicator",
    "SyncResult",
    "TransferDocument",
    "TransferService",
]
