"""Pydantic models for JSON crossing the client boundary.

Covers the batch-sync response and the transfer file. Validated payloads are
converted into the frozen dataclasses of ``gestion_client.sync.protocol``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gestion_client.sync.protocol import (
    TRANSFER_FORMAT_VERSION,
    HttpMethod,
    OperationResult,
    PendingOperation,
    SyncResult,
    TransferDocument,
)

MISSING_RESULT_ERROR = "No result returned by the backend"

# ============ Batch sync ============


class BatchItemResult(BaseModel):
    """One entry of ``resultados``."""

    model_config = ConfigDict(extra="ignore")

    ok: bool = False
    ruta: str | None = None
    error: str | None = None


class BatchSyncResponse(BaseModel):
    """Response of ``POST {apiRoot}/sync``."""

    model_config = ConfigDict(extra="ignore")

    ok: bool
    total: int = 0
    exitosas: int = 0
    fallidas: int = 0
    resultados: list[BatchItemResult] = Field(default_factory=list)
    error: str | None = None

    def to_sync_result(self, submitted: list[PendingOperation]) -> SyncResult:
        """Align results with the submitted batch.

        Positions the backend did not answer for count as failed so the
        operation is retained; surplus entries are dropped.
        """
        results: list[OperationResult] = []
        for index, op in enumerate(submitted):
            if index < len(self.resultados):
                item = self.resultados[index]
                results.append(OperationResult(ok=item.ok, path=item.ruta or op.path, error=item.error))
            else:
                results.append(OperationResult(ok=False, path=op.path, error=MISSING_RESULT_ERROR))

        succeeded = sum(1 for r in results if r.ok)
        return SyncResult(
            total=len(submitted),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            results=results,
        )


# ============ Transfer file ============


class TransferOperation(BaseModel):
    """One queued operation inside a transfer file."""

    model_config = ConfigDict(extra="ignore")

    metodo: str
    ruta: str = Field(..., min_length=1)
    datos: Any = None
    timestamp: str | None = None

    @field_validator("metodo")
    @classmethod
    def _write_method(cls, value: str) -> str:
        method = HttpMethod.parse(value)
        if not method.is_write:
            raise ValueError("GET operations cannot be transferred")
        return method.value

    def to_operation(self) -> PendingOperation:
        return PendingOperation(
            method=HttpMethod(self.metodo),
            path=self.ruta,
            body=self.datos,
            enqueued_at=self.timestamp or "",
        )


class TransferFile(BaseModel):
    """Top-level transfer document."""

    model_config = ConfigDict(extra="ignore")

    version: str = TRANSFER_FORMAT_VERSION
    fecha_exportacion: str | None = None
    total_operaciones: int | None = None
    operaciones: list[TransferOperation]

    def to_document(self) -> TransferDocument:
        return TransferDocument(
            operations=[op.to_operation() for op in self.operaciones],
            exported_at=self.fecha_exportacion,
            version=self.version,
            declared_count=self.total_operaciones,
        )
