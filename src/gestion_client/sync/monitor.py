"""Connectivity monitor: probes the backend and triggers drains.

Probing runs on a fixed interval as a background asyncio loop and on demand
when the environment reports the network going up. Reaching the backend
again while OFFLINE with a non-empty queue starts exactly one drain.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from gestion_client.errors import TransportFailure
from gestion_client.sync.events import SyncEventType
from gestion_client.sync.indicator import SyncIndicator
from gestion_client.sync.state import ConnectivityState, set_online
from gestion_client.utils.timeutils import utcnow

if TYPE_CHECKING:
    from gestion_client.sync.events import EventEmitter, SyncEvent
    from gestion_client.sync.queue_store import DurableQueueStore
    from gestion_client.sync.sync_engine import SyncEngine
    from gestion_client.sync.transport import BackendTransport

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL = 30.0
DEFAULT_INITIAL_DELAY = 2.0
DEFAULT_PROBE_PATH = "/config"


class ConnectivityMonitor:
    """Owns the ConnectivityState and the visual indicator.

    States: ONLINE / OFFLINE, starting ONLINE. Overlapping probes are
    tolerated (they do not mutate anything but the flag); drains are
    single-flight inside the engine.
    """

    def __init__(
        self,
        transport: BackendTransport,
        queue: DurableQueueStore,
        engine: SyncEngine,
        state: ConnectivityState,
        events: EventEmitter | None = None,
        *,
        probe_path: str = DEFAULT_PROBE_PATH,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
    ) -> None:
        self._transport = transport
        self._queue = queue
        self._engine = engine
        self._state = state
        self._events = events
        self._probe_path = probe_path
        self._check_interval = check_interval
        self._initial_delay = initial_delay
        self._task: asyncio.Task[None] | None = None
        self._indicator = SyncIndicator.compute(online=self._state.online, pending=0)

        if events is not None:
            for event_type in (
                SyncEventType.QUEUE_CHANGED,
                SyncEventType.SYNC_COMPLETED,
                SyncEventType.SYNC_FAILED,
            ):
                events.on(event_type, self._on_state_event)

    @property
    def state(self) -> ConnectivityState:
        return self._state

    @property
    def indicator(self) -> SyncIndicator:
        """Last computed indicator."""
        return self._indicator

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Probing ──────────────────────────────────────────────────────────

    async def probe(self) -> bool:
        """
        Check backend reachability with a cheap GET.

        Any response counts as reachable, whatever its status or payload.

        Returns:
            True if the backend answered
        """
        self._state.last_probe_at = utcnow()
        try:
            status = await self._transport.ping(self._probe_path)
        except TransportFailure as e:
            logger.debug("Probe failed: %s", e)
            await set_online(self._state, False, self._events)
            await self.refresh_indicator()
            return False

        logger.debug("Probe answered with status %d", status)
        restored = await set_online(self._state, True, self._events)
        await self.refresh_indicator()

        if restored and await self._queue.count() > 0:
            await self._engine.drain()
        return True

    async def network_up(self) -> bool:
        """Environment reports the network is back: probe immediately."""
        logger.info("Environment reports network ONLINE")
        return await self.probe()

    async def network_down(self) -> None:
        """Environment reports the network is gone: go OFFLINE without probing."""
        logger.info("Environment reports network OFFLINE")
        await set_online(self._state, False, self._events)
        await self.refresh_indicator()

    async def refresh_indicator(self) -> SyncIndicator:
        """Recompute the indicator from the state and the queue size."""
        pending = await self._queue.count()
        self._indicator = SyncIndicator.compute(online=self._state.online, pending=pending)
        if self._events is not None:
            await self._events.emit(SyncEventType.INDICATOR_CHANGED, **self._indicator.to_dict())
        return self._indicator

    async def _on_state_event(self, event: SyncEvent) -> None:
        await self.refresh_indicator()

    # ── Background loop ──────────────────────────────────────────────────

    def start(self) -> asyncio.Task[None]:
        """Start the periodic probe loop. Guards against double-start."""
        if self._task is not None and not self._task.done():
            return self._task

        task = asyncio.create_task(self._probe_loop())
        task.add_done_callback(_log_loop_exception)
        self._task = task
        logger.info("Connectivity monitor started: every %.0fs", self._check_interval)
        return task

    async def stop(self) -> None:
        """Cancel the probe loop and wait for it to finish."""
        if self._task is None:
            return
        task, self._task = self._task, None
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.debug("Connectivity monitor stopped")

    async def _probe_loop(self) -> None:
        """First probe after the initial delay, then one per interval."""
        await asyncio.sleep(self._initial_delay)
        while True:
            try:
                await self.probe()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.error("Connectivity probe failed unexpectedly", exc_info=True)
            await asyncio.sleep(self._check_interval)


def _log_loop_exception(task: asyncio.Task[None]) -> None:
    """Log unhandled exceptions from the probe loop task."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Connectivity monitor loop crashed: %s", exc, exc_info=exc)
