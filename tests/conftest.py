"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from gestion_client.errors import TransportFailure
from gestion_client.storage.memory_store import InMemoryKeyValueStore
from gestion_client.sync.events import EventEmitter, SyncEvent
from gestion_client.sync.gateway import RequestGateway
from gestion_client.sync.monitor import ConnectivityMonitor
from gestion_client.sync.protocol import HttpMethod
from gestion_client.sync.queue_store import DurableQueueStore
from gestion_client.sync.state import ConnectivityState
from gestion_client.sync.sync_engine import SyncEngine
from gestion_client.sync.transfer import TransferService


class FakeTransport:
    """In-process stand-in for BackendTransport.

    ``reachable`` toggles connection failures; ``responses`` maps
    ``(METHOD, path)`` to a canned body, an exception to raise, or a callable
    receiving the payload. The batch endpoint answers every operation ok
    unless its ``ruta`` is in ``reject_paths``.
    """

    def __init__(self, base_url: str = "http://localhost:8000/api") -> None:
        self.base_url = base_url
        self.reachable = True
        self.responses: dict[tuple[str, str], Any] = {}
        self.reject_paths: set[str] = set()
        self.calls: list[tuple[str, str, Any]] = []
        self.ping_count = 0
        self.gate: asyncio.Event | None = None
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def request_json(self, method: Any, path: str, payload: Any = None) -> Any:
        verb = HttpMethod.parse(method).value
        self.calls.append((verb, path, payload))
        if self.gate is not None:
            await self.gate.wait()
        if not self.reachable:
            raise TransportFailure(f"{verb} {path} failed: connection refused")

        response = self.responses.get((verb, path))
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(payload)
        if response is not None:
            return response
        if (verb, path) == ("POST", "/sync"):
            return self._batch(payload)
        return {"ok": True}

    async def ping(self, path: str) -> int:
        self.ping_count += 1
        if not self.reachable:
            raise TransportFailure(f"GET {path} failed: connection refused")
        return 200

    def _batch(self, payload: dict[str, Any]) -> dict[str, Any]:
        results = []
        for op in payload["operaciones"]:
            if op["ruta"] in self.reject_paths:
                results.append({"ok": False, "ruta": op["ruta"], "error": "rejected by backend"})
            else:
                results.append({"ok": True, "ruta": op["ruta"]})
        succeeded = sum(1 for r in results if r["ok"])
        return {
            "ok": True,
            "total": len(results),
            "exitosas": succeeded,
            "fallidas": len(results) - succeeded,
            "resultados": results,
        }

    @property
    def sync_calls(self) -> list[tuple[str, str, Any]]:
        return [c for c in self.calls if c[0] == "POST" and c[1] == "/sync"]


class EventRecorder:
    """Collects every emitted event."""

    def __init__(self) -> None:
        self.events: list[SyncEvent] = []

    def __call__(self, event: SyncEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[SyncEvent]:
        return [e for e in self.events if e.type == event_type]

    def messages(self, level: str | None = None) -> list[str]:
        return [
            e.data["message"]
            for e in self.of_type("notification")
            if level is None or e.data["level"] == level
        ]


@pytest.fixture
def events() -> EventEmitter:
    return EventEmitter()


@pytest.fixture
def recorder(events: EventEmitter) -> EventRecorder:
    rec = EventRecorder()
    events.on("*", rec)
    return rec


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def state() -> ConnectivityState:
    return ConnectivityState()


@pytest.fixture
def queue(kv_store: InMemoryKeyValueStore, events: EventEmitter) -> DurableQueueStore:
    return DurableQueueStore(kv_store, api_root="/api", events=events)


@pytest.fixture
def gateway(transport: FakeTransport, queue: DurableQueueStore) -> RequestGateway:
    return RequestGateway(transport, queue)  # type: ignore[arg-type]


@pytest.fixture
def engine(
    queue: DurableQueueStore,
    transport: FakeTransport,
    state: ConnectivityState,
    events: EventEmitter,
) -> SyncEngine:
    return SyncEngine(queue, transport, state, events)  # type: ignore[arg-type]


@pytest.fixture
def monitor(
    transport: FakeTransport,
    queue: DurableQueueStore,
    engine: SyncEngine,
    state: ConnectivityState,
    events: EventEmitter,
) -> ConnectivityMonitor:
    return ConnectivityMonitor(
        transport,  # type: ignore[arg-type]
        queue,
        engine,
        state,
        events,
        check_interval=0.01,
        initial_delay=0,
    )


@pytest.fixture
def transfer(
    queue: DurableQueueStore,
    transport: FakeTransport,
    events: EventEmitter,
) -> TransferService:
    return TransferService(queue, transport, events)  # type: ignore[arg-type]


def make_batch_response(*oks: bool, **extra: Any) -> Callable[[Any], dict[str, Any]]:
    """Batch handler answering each position with the given verdict."""

    def _respond(payload: Any) -> dict[str, Any]:
        results = [
            {"ok": ok, "ruta": op["ruta"], **({} if ok else {"error": "validation failed"})}
            for ok, op in zip(oks, payload["operaciones"], strict=False)
        ]
        return {
            "ok": True,
            "total": len(payload["operaciones"]),
            "exitosas": sum(oks),
            "fallidas": len(oks) - sum(oks),
            "resultados": results,
            **extra,
        }

    return _respond


@pytest.fixture
def batch_response() -> Callable[..., Callable[[Any], dict[str, Any]]]:
    return make_batch_response
