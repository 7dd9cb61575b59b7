"""Tests for the durable queue store and its storage backends."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from gestion_client.errors import PersistenceFailure
from gestion_client.storage.memory_store import InMemoryKeyValueStore
from gestion_client.storage.sqlite_store import SQLiteKeyValueStore
from gestion_client.sync.protocol import HttpMethod, PendingOperation
from gestion_client.sync.queue_store import DEFAULT_STORAGE_KEY, DurableQueueStore, normalize_path


class TestNormalizePath:
    """Caller-relative paths become backend-absolute."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/clientes/", "/api/clientes/"),
            ("clientes/", "/api/clientes/"),
            ("/api/clientes/", "/api/clientes/"),
            ("/apiary/", "/api/apiary/"),
        ],
    )
    def test_prefixes_api_root(self, path: str, expected: str) -> None:
        assert normalize_path(path, "/api") == expected

    def test_is_idempotent(self) -> None:
        once = normalize_path("/ventas/", "/api")
        assert normalize_path(once, "/api") == once

    def test_empty_root(self) -> None:
        assert normalize_path("/clientes/", "") == "/clientes/"


# ── enqueue / read ────────────────────────────────────────────────


class TestEnqueue:
    """Tests for appending to the queue."""

    @pytest.mark.asyncio
    async def test_enqueue_persists_full_list(
        self, queue: DurableQueueStore, kv_store: InMemoryKeyValueStore
    ) -> None:
        await queue.enqueue("POST", "/clientes/", {"nombre": "Ana"})
        await queue.enqueue("DELETE", "/clientes/3/")

        stored = json.loads(kv_store.snapshot()[DEFAULT_STORAGE_KEY])
        assert [e["metodo"] for e in stored] == ["POST", "DELETE"]
        assert stored[0]["ruta"] == "/api/clientes/"
        assert stored[0]["datos"] == {"nombre": "Ana"}
        assert stored[1]["datos"] is None
        assert stored[0]["timestamp"].endswith("Z")

    @pytest.mark.asyncio
    async def test_read_all_preserves_insertion_order(self, queue: DurableQueueStore) -> None:
        for i in range(5):
            await queue.enqueue("POST", f"/ventas/{i}/")
        ops = await queue.read_all()
        assert [op.path for op in ops] == [f"/api/ventas/{i}/" for i in range(5)]
        assert await queue.count() == 5

    @pytest.mark.asyncio
    async def test_enqueue_get_is_rejected(self, queue: DurableQueueStore) -> None:
        with pytest.raises(ValueError):
            await queue.enqueue("GET", "/clientes/")
        assert await queue.count() == 0

    @pytest.mark.asyncio
    async def test_enqueue_emits_queue_changed(self, queue: DurableQueueStore, recorder) -> None:
        await queue.enqueue("PUT", "/productos/1/", {"stock": 4})
        changed = recorder.of_type("queue_changed")
        assert changed[-1].data == {"pending": 1}


class TestCorruptStorage:
    """Absent or corrupt storage reads as an empty queue."""

    @pytest.mark.asyncio
    async def test_absent_key_is_empty(self, queue: DurableQueueStore) -> None:
        assert await queue.read_all() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["{not json", '{"a": 1}', "null", '"text"'])
    async def test_corrupt_value_is_empty(self, raw: str) -> None:
        store = InMemoryKeyValueStore({DEFAULT_STORAGE_KEY: raw})
        queue = DurableQueueStore(store)
        assert await queue.read_all() == []

    @pytest.mark.asyncio
    async def test_malformed_entries_are_skipped(self) -> None:
        raw = json.dumps(
            [
                {"metodo": "POST", "ruta": "/api/clientes/", "datos": {}, "timestamp": "t"},
                "garbage",
                {"metodo": "POST"},
            ]
        )
        queue = DurableQueueStore(InMemoryKeyValueStore({DEFAULT_STORAGE_KEY: raw}))
        ops = await queue.read_all()
        assert len(ops) == 1

    @pytest.mark.asyncio
    async def test_enqueue_after_corruption_starts_fresh(self) -> None:
        store = InMemoryKeyValueStore({DEFAULT_STORAGE_KEY: "[broken"})
        queue = DurableQueueStore(store)
        await queue.enqueue("POST", "/clientes/")
        assert len(json.loads(store.snapshot()[DEFAULT_STORAGE_KEY])) == 1


class TestPersistenceFailures:
    """Storage errors are logged, never raised to the caller."""

    @pytest.mark.asyncio
    async def test_write_failure_still_returns_operation(self) -> None:
        store = InMemoryKeyValueStore()
        store.set = AsyncMock(side_effect=PersistenceFailure("disk full"))  # type: ignore[method-assign]
        queue = DurableQueueStore(store)

        op = await queue.enqueue("POST", "/clientes/", {"nombre": "Ana"})

        assert op.path == "/api/clientes/"
        assert await queue.count() == 0

    @pytest.mark.asyncio
    async def test_read_failure_is_empty(self) -> None:
        store = InMemoryKeyValueStore()
        store.get = AsyncMock(side_effect=PersistenceFailure("locked"))  # type: ignore[method-assign]
        assert await DurableQueueStore(store).read_all() == []


# ── reconcile ─────────────────────────────────────────────────────


def _op(path: str, stamp: str = "2026-03-01T09:00:00.000Z") -> PendingOperation:
    return PendingOperation(method=HttpMethod.POST, path=path, body={"p": path}, enqueued_at=stamp)


class TestReconcile:
    """Tests for rewriting the queue after a batch."""

    @pytest.mark.asyncio
    async def test_keeps_only_retained(self, queue: DurableQueueStore) -> None:
        submitted = [_op("/api/a/"), _op("/api/b/"), _op("/api/c/")]
        await queue.replace_all(submitted)

        remaining = await queue.reconcile(submitted, [submitted[1]])

        assert remaining == [submitted[1]]
        assert await queue.read_all() == [submitted[1]]

    @pytest.mark.asyncio
    async def test_appends_after_snapshot_survive(self, queue: DurableQueueStore) -> None:
        submitted = [_op("/api/a/"), _op("/api/b/")]
        late = _op("/api/late/", stamp="2026-03-01T09:00:05.000Z")
        await queue.replace_all([*submitted, late])

        remaining = await queue.reconcile(submitted, [submitted[0]])

        assert remaining == [submitted[0], late]

    @pytest.mark.asyncio
    async def test_identical_operations_removed_once_each(self, queue: DurableQueueStore) -> None:
        dup = _op("/api/a/")
        await queue.replace_all([dup, dup, dup])

        remaining = await queue.reconcile([dup, dup], [])

        assert remaining == [dup]

    @pytest.mark.asyncio
    async def test_cleared_queue_is_not_resurrected(self, queue: DurableQueueStore) -> None:
        submitted = [_op("/api/a/")]
        await queue.replace_all(submitted)
        await queue.clear()

        assert await queue.reconcile(submitted, submitted) == []


# ── SQLite durability ─────────────────────────────────────────────


class TestSQLiteDurability:
    """The queue survives closing and reopening the database."""

    @pytest.mark.asyncio
    async def test_queue_survives_restart(self, tmp_path: Path) -> None:
        db_path = tmp_path / "queue.db"

        store = SQLiteKeyValueStore(db_path)
        await store.initialize()
        queue = DurableQueueStore(store)
        await queue.enqueue("POST", "/clientes/", {"nombre": "Ana"})
        await queue.enqueue("PUT", "/productos/2/", {"stock": 1})
        await store.close()

        reopened = SQLiteKeyValueStore(db_path)
        await reopened.initialize()
        try:
            ops = await DurableQueueStore(reopened).read_all()
        finally:
            await reopened.close()

        assert [(op.method, op.path) for op in ops] == [
            (HttpMethod.POST, "/api/clientes/"),
            (HttpMethod.PUT, "/api/productos/2/"),
        ]

    @pytest.mark.asyncio
    async def test_uninitialized_store_raises(self, tmp_path: Path) -> None:
        store = SQLiteKeyValueStore(tmp_path / "queue.db")
        with pytest.raises(PersistenceFailure):
            await store.get("k")

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path: Path) -> None:
        async with SQLiteKeyValueStore(tmp_path / "queue.db") as store:
            await store.set("k", "v")
            assert await store.delete("k") is True
            assert await store.delete("k") is False
            assert await store.get("k") is None
