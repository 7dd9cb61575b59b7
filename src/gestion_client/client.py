"""Composition root wiring the offline-sync components from configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from gestion_client.errors import PersistenceFailure
from gestion_client.storage.factory import create_store
from gestion_client.sync.events import EventEmitter
from gestion_client.sync.gateway import RequestGateway
from gestion_client.sync.monitor import ConnectivityMonitor
from gestion_client.sync.queue_store import DurableQueueStore
from gestion_client.sync.state import ConnectivityState
from gestion_client.sync.sync_engine import SyncEngine
from gestion_client.sync.transfer import TransferService
from gestion_client.sync.transport import BackendTransport

if TYPE_CHECKING:
    from gestion_client.storage.base import KeyValueStore
    from gestion_client.unified_config import GestionConfig

logger = logging.getLogger(__name__)


class GestionClient:
    """
    One client instance: shared state, one queue, one engine, one monitor.

    Usage:
        async with GestionClient(get_config()) as client:
            await client.gateway.post("/clientes/", {"nombre": "Ana"})
            await client.engine.drain()
    """

    def __init__(
        self,
        config: GestionConfig,
        *,
        store: KeyValueStore | None = None,
        transport: BackendTransport | None = None,
        events: EventEmitter | None = None,
    ) -> None:
        self.config = config
        self.events = events or EventEmitter()
        self.state = ConnectivityState()
        self.store = store or create_store(config)
        self.transport = transport or BackendTransport(
            config.api.base_url, timeout=config.api.timeout_seconds
        )
        self.queue = DurableQueueStore(
            self.store,
            api_root=config.api_root,
            key=config.sync.storage_key,
            events=self.events,
        )
        self.gateway = RequestGateway(self.transport, self.queue)
        self.engine = SyncEngine(
            self.queue,
            self.transport,
            self.state,
            self.events,
            sync_path=config.api.sync_path,
        )
        self.monitor = ConnectivityMonitor(
            self.transport,
            self.queue,
            self.engine,
            self.state,
            self.events,
            probe_path=config.api.probe_path,
            check_interval=config.sync.check_interval_seconds,
            initial_delay=config.sync.initial_probe_delay,
        )
        self.transfer = TransferService(
            self.queue,
            self.transport,
            self.events,
            sync_path=config.api.sync_path,
        )

    async def open(self) -> None:
        """Open local storage and the HTTP session.

        An unusable store is logged and the client keeps running with an empty
        queue, so commands still reach the backend.
        """
        try:
            await self.store.initialize()
        except PersistenceFailure as e:
            logger.error("Local queue storage unavailable: %s", e)
        await self.transport.connect()
        logger.debug("Client opened against %s", self.config.api.base_url)

    async def close(self) -> None:
        """Stop the monitor and release storage and HTTP resources."""
        await self.monitor.stop()
        await self.transport.close()
        await self.store.close()

    async def __aenter__(self) -> GestionClient:
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def status(self) -> dict[str, Any]:
        """Snapshot of connectivity, indicator and queue for display."""
        operations = await self.queue.read_all()
        indicator = await self.monitor.refresh_indicator()
        return {
            "api_url": self.config.api.base_url,
            "connectivity": self.state.to_dict(),
            "indicator": indicator.to_dict(),
            "pending": [op.to_dict() for op in operations],
        }
