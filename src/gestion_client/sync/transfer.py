"""Export/import of the pending queue between independent client instances.

Export writes the local queue to ``sync_data_YYYY-MM-DD.json`` without clearing
it. Import replays a file straight through the batch endpoint; it never
touches the local queue, so two sources of truth are never mixed.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from gestion_client.errors import ApplicationError, MalformedTransferFile, TransportFailure
from gestion_client.sync.events import NotificationLevel, SyncEventType
from gestion_client.sync.models import TransferFile
from gestion_client.sync.protocol import SyncResult, TransferDocument
from gestion_client.sync.sync_engine import DEFAULT_SYNC_PATH, failure_details, submit_batch
from gestion_client.utils.timeutils import utc_isoformat, utcnow

if TYPE_CHECKING:
    from gestion_client.sync.events import EventEmitter
    from gestion_client.sync.queue_store import DurableQueueStore
    from gestion_client.sync.transport import BackendTransport

logger = logging.getLogger(__name__)

EXPORT_PREFIX = "sync_data_"
NOTHING_TO_EXPORT = "There are no pending operations to export."
INVALID_FILE = "Invalid file: it does not contain synchronization operations."
INVALID_JSON = "The file is not valid JSON."
EMPTY_FILE = "The file contains no pending operations."
UNREACHABLE = "Could not reach the backend. Is it running?"

ConfirmCallback = Callable[[TransferDocument], bool | Awaitable[bool]]


class ImportStatus(StrEnum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    UNREACHABLE = "unreachable"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ExportOutcome:
    exported: bool
    message: str
    count: int = 0
    path: Path | None = None


@dataclass(frozen=True)
class ImportOutcome:
    status: ImportStatus
    message: str
    document: TransferDocument | None = None
    result: SyncResult | None = None
    failures: list[dict[str, Any]] = field(default_factory=list)


def export_filename(moment: Any = None) -> str:
    """Deterministic name from the current (UTC) date."""
    moment = moment or utcnow()
    return f"{EXPORT_PREFIX}{moment.date().isoformat()}.json"


def parse_transfer_text(text: str) -> TransferDocument:
    """
    Parse and validate a transfer file.

    Raises:
        MalformedTransferFile: With a user-facing message
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedTransferFile(INVALID_JSON) from e

    if not isinstance(data, dict) or not isinstance(data.get("operaciones"), list):
        raise MalformedTransferFile(INVALID_FILE)
    if not data["operaciones"]:
        raise MalformedTransferFile(EMPTY_FILE)

    try:
        transfer = TransferFile.model_validate(data)
    except ValidationError as e:
        logger.debug("Transfer file validation errors: %s", e)
        raise MalformedTransferFile(INVALID_FILE) from e

    return transfer.to_document()


def format_import_summary(result: SyncResult) -> str:
    lines = [
        "Import completed:",
        f"  Total: {result.total}",
        f"  Succeeded: {result.succeeded}",
    ]
    if result.failed > 0:
        lines.append(f"  Failed: {result.failed}")
        for _, item in result.failures():
            lines.append(f"    -> {item.path}: {item.error}")
    return "\n".join(lines)


class TransferService:
    """Moves pending intents between instances through a JSON file."""

    def __init__(
        self,
        queue: DurableQueueStore,
        transport: BackendTransport,
        events: EventEmitter | None = None,
        *,
        sync_path: str = DEFAULT_SYNC_PATH,
    ) -> None:
        self._queue = queue
        self._transport = transport
        self._events = events
        self._sync_path = sync_path

    # ── Export ───────────────────────────────────────────────────────────

    async def build_document(self) -> TransferDocument:
        operations = await self._queue.read_all()
        return TransferDocument(operations=operations, exported_at=utc_isoformat())

    async def export_queue(self, output_dir: str | Path | None = None) -> ExportOutcome:
        """
        Write the local queue to a transfer file.

        Args:
            output_dir: Target directory (current directory if None)

        Returns:
            ExportOutcome; ``exported`` is False and no file is written when
            the queue is empty
        """
        document = await self.build_document()
        if document.count == 0:
            await self._notify(NotificationLevel.INFO, NOTHING_TO_EXPORT)
            return ExportOutcome(exported=False, message=NOTHING_TO_EXPORT)

        directory = Path(output_dir) if output_dir else Path.cwd()
        path = directory / export_filename()
        content = json.dumps(document.to_dict(), indent=2, ensure_ascii=False) + "\n"
        await asyncio.to_thread(_atomic_write, path, content)

        message = f"Exported {document.count} operations -> {path.name}"
        logger.info("Sync queue exported: %d operations -> %s", document.count, path)
        await self._notify(NotificationLevel.SUCCESS, message, path=str(path))
        return ExportOutcome(exported=True, message=message, count=document.count, path=path)

    # ── Import ───────────────────────────────────────────────────────────

    async def load_file(self, path: str | Path) -> TransferDocument:
        """
        Read and validate a transfer file.

        Raises:
            MalformedTransferFile: If the file is unreadable or malformed
        """
        file_path = Path(path)
        try:
            text = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read transfer file %s: %s", file_path, e)
            raise MalformedTransferFile(f"Cannot read file {file_path.name}.") from e
        return parse_transfer_text(text)

    async def import_file(
        self,
        path: str | Path,
        confirm: ConfirmCallback | None = None,
    ) -> ImportOutcome:
        """
        Replay a transfer file against the backend's batch endpoint.

        Args:
            path: Transfer file to import
            confirm: Called with the parsed document before anything is sent;
                returning False cancels the import

        Returns:
            ImportOutcome with the per-operation summary

        Raises:
            MalformedTransferFile: Before any network call, if the file is bad
        """
        document = await self.load_file(path)

        if confirm is not None:
            answer = confirm(document)
            if asyncio.iscoroutine(answer):
                answer = await answer
            if not answer:
                return ImportOutcome(ImportStatus.CANCELLED, "Import cancelled.", document)

        return await self.submit_document(document)

    async def submit_document(self, document: TransferDocument) -> ImportOutcome:
        """One-shot replay of an already parsed document."""
        try:
            result = await submit_batch(
                self._transport, document.operations, sync_path=self._sync_path
            )
        except TransportFailure as e:
            logger.warning("Import could not reach the backend: %s", e)
            await self._notify(NotificationLevel.ERROR, UNREACHABLE)
            return ImportOutcome(ImportStatus.UNREACHABLE, UNREACHABLE, document)
        except ApplicationError as e:
            message = f"Error while synchronizing: {e}"
            await self._notify(NotificationLevel.ERROR, message)
            return ImportOutcome(ImportStatus.REJECTED, message, document)

        message = format_import_summary(result)
        failures = failure_details(result)
        logger.info(
            "Imported %d operations: %d succeeded, %d failed",
            result.total,
            result.succeeded,
            result.failed,
        )
        level = NotificationLevel.WARNING if result.failed else NotificationLevel.SUCCESS
        await self._notify(level, message)
        if self._events is not None:
            await self._events.emit(
                SyncEventType.IMPORT_COMPLETED,
                total=result.total,
                succeeded=result.succeeded,
                failed=result.failed,
            )
        return ImportOutcome(ImportStatus.COMPLETED, message, document, result, failures)

    async def _notify(self, level: NotificationLevel, message: str, **data: Any) -> None:
        if self._events is not None:
            await self._events.notify(level, message, **data)


def _atomic_write(path: Path, content: str) -> None:
    """Write via temp file + rename so a partial export never appears."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".json.tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        Path(tmp_path).replace(path)
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise
