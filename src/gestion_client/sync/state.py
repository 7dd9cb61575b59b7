"""In-memory connectivity state shared by the monitor and the sync engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from gestion_client.sync.events import SyncEventType
from gestion_client.utils.timeutils import utcnow

if TYPE_CHECKING:
    from gestion_client.sync.events import EventEmitter

logger = logging.getLogger(__name__)


class ConnectivityStatus(StrEnum):
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass
class ConnectivityState:
    """Backend reachability flag plus the drain single-flight guard.

    Never persisted. Starts optimistic (online) and is corrected by the
    first probe.
    """

    online: bool = True
    syncing: bool = False
    last_probe_at: datetime | None = None
    last_sync_at: datetime | None = None
    last_transition_at: datetime | None = None

    @property
    def status(self) -> ConnectivityStatus:
        return ConnectivityStatus.ONLINE if self.online else ConnectivityStatus.OFFLINE

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "syncing": self.syncing,
            "last_probe_at": self.last_probe_at.isoformat() if self.last_probe_at else None,
            "last_sync_at": self.last_sync_at.isoformat() if self.last_sync_at else None,
        }


async def set_online(
    state: ConnectivityState,
    online: bool,
    events: EventEmitter | None = None,
) -> bool:
    """Update the reachability flag, emitting on transitions.

    Returns:
        True if the state changed
    """
    if state.online == online:
        return False

    state.online = online
    state.last_transition_at = utcnow()
    if online:
        logger.info("Connection to the backend restored")
    else:
        logger.info("Connection to the backend lost")

    if events is not None:
        await events.emit(SyncEventType.CONNECTIVITY_CHANGED, status=state.status.value)
    return True
