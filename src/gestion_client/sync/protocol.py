"""Offline queue protocol data structures.

Field names on the wire are the backend's (``metodo``, ``ruta``, ``datos``,
``timestamp``); Python attributes use English names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

TRANSFER_FORMAT_VERSION = "1.0"


class HttpMethod(StrEnum):
    """HTTP verbs accepted by the request gateway."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"

    @property
    def is_write(self) -> bool:
        return self is not HttpMethod.GET

    @classmethod
    def parse(cls, value: str | HttpMethod) -> HttpMethod:
        """Case-insensitive lookup; raises ValueError for unknown verbs."""
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unsupported HTTP method: {value!r}") from None


WRITE_METHODS = frozenset(m for m in HttpMethod if m.is_write)


@dataclass(frozen=True)
class PendingOperation:
    """One write intent that could not reach the backend immediately."""

    method: HttpMethod
    path: str  # backend-absolute, e.g. "/api/clientes/"
    body: Any = None
    enqueued_at: str = ""  # ISO-8601

    def __post_init__(self) -> None:
        if not self.method.is_write:
            raise ValueError("GET requests are never queued")

    def to_dict(self) -> dict[str, Any]:
        return {
            "metodo": self.method.value,
            "ruta": self.path,
            "datos": self.body,
            "timestamp": self.enqueued_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingOperation:
        """Create from the stored/wire dictionary.

        Raises:
            ValueError: If ``metodo`` or ``ruta`` is missing or invalid
        """
        method_raw = data.get("metodo")
        path = data.get("ruta")
        if not method_raw or not isinstance(path, str) or not path:
            raise ValueError("Operation requires 'metodo' and 'ruta'")
        return cls(
            method=HttpMethod.parse(method_raw),
            path=path,
            body=data.get("datos"),
            enqueued_at=str(data.get("timestamp") or ""),
        )


@dataclass(frozen=True)
class OperationResult:
    """Backend verdict for one submitted operation."""

    ok: bool
    path: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one batch submission.

    ``results`` is positionally aligned with the submitted batch.
    """

    total: int
    succeeded: int
    failed: int
    results: list[OperationResult] = field(default_factory=list)

    @property
    def fully_synced(self) -> bool:
        return self.failed == 0 and all(r.ok for r in self.results)

    def failures(self) -> list[tuple[int, OperationResult]]:
        """(index, result) pairs for rejected operations."""
        return [(i, r) for i, r in enumerate(self.results) if not r.ok]

    def retained(self, submitted: list[PendingOperation]) -> list[PendingOperation]:
        """Submitted operations whose result is not ok, in original order."""
        return [op for op, result in zip(submitted, self.results, strict=True) if not result.ok]


@dataclass(frozen=True)
class TransferDocument:
    """Portable export of a pending queue."""

    operations: list[PendingOperation]
    exported_at: str | None = None
    version: str = TRANSFER_FORMAT_VERSION
    declared_count: int | None = None

    @property
    def count(self) -> int:
        return len(self.operations)

    @property
    def announced_count(self) -> int:
        """Count written in the file header, or the parsed length if absent."""
        return self.declared_count if self.declared_count is not None else self.count

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "fecha_exportacion": self.exported_at,
            "total_operaciones": self.count,
            "operaciones": [op.to_dict() for op in self.operations],
        }
