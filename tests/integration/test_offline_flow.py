"""End-to-end offline flow through a fully wired GestionClient."""

from __future__ import annotations

from pathlib import Path

import pytest

from gestion_client.client import GestionClient
from gestion_client.sync.gateway import QUEUED_MESSAGE
from gestion_client.sync.indicator import IndicatorState
from gestion_client.unified_config import GestionConfig, StorageConfig


def _make_config(data_dir: Path) -> GestionConfig:
    return GestionConfig(data_dir=data_dir)


def _make_client(data_dir: Path, transport, recorder=None) -> GestionClient:
    client = GestionClient(_make_config(data_dir), transport=transport)
    if recorder is not None:
        client.events.on("*", recorder)
    return client


class TestOfflineScenario:
    """Ana is registered while the backend is down, then synchronized."""

    @pytest.mark.asyncio
    async def test_enqueue_offline_then_probe_drains(self, tmp_path: Path, transport, recorder) -> None:
        async with _make_client(tmp_path, transport, recorder) as client:
            transport.reachable = False

            result = await client.gateway.post("/clientes/", {"nombre": "Ana"})
            assert result == {"ok": True, "offline": True, "mensaje": QUEUED_MESSAGE}
            assert await client.queue.count() == 1

            assert await client.monitor.probe() is False
            assert client.monitor.indicator.state is IndicatorState.OFFLINE

            transport.reachable = True
            transport.responses[("POST", "/sync")] = {
                "ok": True,
                "total": 1,
                "exitosas": 1,
                "fallidas": 0,
                "resultados": [{"ok": True}],
            }
            assert await client.monitor.probe() is True

            assert len(transport.sync_calls) == 1
            batch = transport.sync_calls[0][2]["operaciones"]
            assert batch[0]["metodo"] == "POST"
            assert batch[0]["ruta"] == "/api/clientes/"
            assert batch[0]["datos"] == {"nombre": "Ana"}
            assert await client.queue.count() == 0
            assert client.monitor.indicator.state is IndicatorState.IDLE
            assert recorder.messages("success") == [
                "Synchronization completed: 1/1 operations succeeded"
            ]

    @pytest.mark.asyncio
    async def test_partial_reconciliation(self, tmp_path: Path, transport) -> None:
        async with _make_client(tmp_path, transport) as client:
            transport.reachable = False
            await client.gateway.post("/clientes/", {"nombre": "Ana"})
            await client.gateway.put("/productos/4/", {"precio": 12.5})
            await client.gateway.delete("/ventas/9/")
            queued = await client.queue.read_all()

            transport.reachable = True
            transport.responses[("POST", "/sync")] = {
                "ok": True,
                "total": 3,
                "exitosas": 2,
                "fallidas": 1,
                "resultados": [{"ok": True}, {"ok": False, "error": "x"}, {"ok": True}],
            }
            await client.engine.drain()

            assert await client.queue.read_all() == [queued[1]]

    @pytest.mark.asyncio
    async def test_queue_survives_client_restart(self, tmp_path: Path, transport) -> None:
        transport.reachable = False
        async with _make_client(tmp_path, transport) as client:
            await client.gateway.post("/clientes/", {"nombre": "Ana"})
            await client.gateway.post("/clientes/", {"nombre": "Luis"})
            before = await client.queue.read_all()

        async with _make_client(tmp_path, transport) as client:
            assert await client.queue.read_all() == before
            status = await client.status()
            assert status["indicator"]["pending"] == 2

    @pytest.mark.asyncio
    async def test_unusable_storage_does_not_break_client(self, tmp_path: Path, transport) -> None:
        (tmp_path / "blocker").write_text("", encoding="utf-8")
        config = GestionConfig(data_dir=tmp_path, storage=StorageConfig(filename="blocker/queue.db"))
        transport.reachable = False

        async with GestionClient(config, transport=transport) as client:
            result = await client.gateway.post("/clientes/", {"nombre": "Ana"})
            assert result["offline"] is True
            assert await client.queue.count() == 0

    @pytest.mark.asyncio
    async def test_transfer_between_instances(self, tmp_path: Path, transport) -> None:
        transport.reachable = False
        async with _make_client(tmp_path / "caja1", transport) as offline_client:
            await offline_client.gateway.post("/ventas/", {"total": 30})
            exported = await offline_client.transfer.export_queue(tmp_path)
            assert exported.exported

        transport.reachable = True
        async with _make_client(tmp_path / "caja2", transport) as online_client:
            outcome = await online_client.transfer.import_file(exported.path)  # type: ignore[arg-type]
            assert outcome.result is not None
            assert outcome.result.succeeded == 1
            assert await online_client.queue.count() == 0
