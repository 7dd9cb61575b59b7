"""Terminal rendering for the sync indicator, pending queue and notifications."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from gestion_client.sync.events import SyncEvent
    from gestion_client.sync.indicator import SyncIndicator
    from gestion_client.sync.protocol import PendingOperation

console = Console()


# =============================================================================
# Color Schemes
# =============================================================================

INDICATOR_STYLES = {
    "offline": "bold red",
    "pending": "bold yellow",
    "idle": "bold green",
}

NOTIFICATION_STYLES = {
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "cyan",
}

METHOD_STYLES = {
    "POST": "green",
    "PUT": "blue",
    "PATCH": "cyan",
    "DELETE": "red",
}


# =============================================================================
# Rendering
# =============================================================================


def indicator_text(indicator: SyncIndicator | dict[str, Any]) -> Text:
    """Coloured one-line indicator ("Offline", "3 pending", "Online")."""
    data = indicator if isinstance(indicator, dict) else indicator.to_dict()
    style = INDICATOR_STYLES.get(data["state"], "white")
    return Text.assemble(("● ", style), (data["label"], style), f"  {data['tooltip']}")


def pending_table(operations: list[PendingOperation]) -> Table:
    table = Table(title="Pending operations", show_lines=False)
    table.add_column("#", justify="right", style="bright_black")
    table.add_column("Method")
    table.add_column("Path", overflow="fold")
    table.add_column("Queued at", style="bright_black")
    for index, op in enumerate(operations, start=1):
        style = METHOD_STYLES.get(op.method.value, "white")
        table.add_row(
            str(index), Text(op.method.value, style=style), Text(op.path), Text(op.enqueued_at)
        )
    return table


def render_status(indicator: SyncIndicator, operations: list[PendingOperation], api_url: str) -> None:
    console.print(Text.assemble(("Backend: ", "bright_black"), api_url))
    console.print(indicator_text(indicator))
    if operations:
        console.print(pending_table(operations))


def print_notification(event: SyncEvent) -> None:
    """Event handler printing user-facing notifications."""
    level = event.data.get("level", "info")
    style = NOTIFICATION_STYLES.get(level, "white")
    console.print(Text(str(event.data.get("message", "")), style=style))
    for failure in event.data.get("failures") or []:
        console.print(Text(f"  -> {failure.get('path')}: {failure.get('error')}", style="bright_black"))


def print_indicator(event: SyncEvent) -> None:
    """Event handler printing indicator changes with a timestamp."""
    stamp = event.timestamp.strftime("%H:%M:%S")
    line = Text(f"[{stamp}] ", style="bright_black")
    line.append_text(indicator_text(event.data))
    console.print(line)
