"""Connection and pending-queue indicator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class IndicatorState(StrEnum):
    OFFLINE = "offline"
    PENDING = "pending"  # online with queued operations
    IDLE = "idle"  # online, nothing queued


@dataclass(frozen=True)
class SyncIndicator:
    """Rendered indicator value handed to the presentation layer."""

    state: IndicatorState
    pending: int

    @classmethod
    def compute(cls, *, online: bool, pending: int) -> SyncIndicator:
        if not online:
            return cls(IndicatorState.OFFLINE, pending)
        if pending > 0:
            return cls(IndicatorState.PENDING, pending)
        return cls(IndicatorState.IDLE, 0)

    @property
    def label(self) -> str:
        if self.state is IndicatorState.OFFLINE:
            return "Offline"
        if self.state is IndicatorState.PENDING:
            return f"{self.pending} pending"
        return "Online"

    @property
    def tooltip(self) -> str:
        if self.state is IndicatorState.OFFLINE:
            return "No connection to the server"
        if self.state is IndicatorState.PENDING:
            return f"{self.pending} operation{'s' if self.pending != 1 else ''} waiting to sync"
        return "Connected to the server"

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "pending": self.pending,
            "label": self.label,
            "tooltip": self.tooltip,
        }
