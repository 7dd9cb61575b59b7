"""CLI commands for the offline queue: status, manual sync, watch, export/import."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from gestion_client.cli._helpers import get_config, open_client, run_async
from gestion_client.cli.tui import print_indicator, print_notification, render_status
from gestion_client.errors import MalformedTransferFile
from gestion_client.sync.events import SyncEventType
from gestion_client.sync.transfer import ImportStatus

if TYPE_CHECKING:
    from gestion_client.sync.protocol import TransferDocument

sync_app = typer.Typer(help="Offline queue and synchronization")


@sync_app.command("status")
def status_cmd(
    probe: Annotated[
        bool,
        typer.Option("--probe/--no-probe", help="Check the backend before reporting"),
    ] = True,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show the connection indicator and the pending operations.

    Examples:
        gestion sync status
        gestion sync status --no-probe --json
    """
    as_json = json_output or get_config().json_output

    async def _status() -> dict:
        async with open_client() as client:
            if probe:
                await client.monitor.probe()
            result = await client.status()
            if not as_json:
                render_status(
                    client.monitor.indicator,
                    await client.queue.read_all(),
                    client.config.api.base_url,
                )
            return result

    result = run_async(_status())
    if as_json:
        typer.echo(json.dumps(result, indent=2, default=str, ensure_ascii=False))


@sync_app.command("now")
def now_cmd() -> None:
    """Synchronize the pending queue with the backend once."""

    async def _now() -> int:
        async with open_client() as client:
            client.events.on(SyncEventType.NOTIFICATION, print_notification)
            if await client.queue.count() == 0:
                typer.echo("Nothing to synchronize.")
                return 0

            result = await client.engine.drain()
            if result is not None:
                return 0
            if not client.state.online:
                typer.secho(
                    f"Backend unreachable. {await client.queue.count()} operations remain queued.",
                    fg=typer.colors.YELLOW,
                )
            return 1

    code = run_async(_now())
    if code:
        raise typer.Exit(code)


@sync_app.command("watch")
def watch_cmd() -> None:
    """Monitor the backend and synchronize automatically until interrupted."""

    async def _watch() -> None:
        async with open_client() as client:
            client.events.on(SyncEventType.INDICATOR_CHANGED, print_indicator)
            client.events.on(SyncEventType.NOTIFICATION, print_notification)
            interval = client.config.sync.check_interval_seconds
            typer.echo(f"Watching {client.config.api.base_url} every {interval:.0f}s (Ctrl+C to stop)")
            await client.monitor.refresh_indicator()
            await client.monitor.start()

    try:
        run_async(_watch())
    except KeyboardInterrupt:
        typer.echo("\nStopped.")


@sync_app.command("export")
def export_cmd(
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Directory for the export file"),
    ] = None,
) -> None:
    """Export pending operations to sync_data_YYYY-MM-DD.json.

    The local queue is left untouched.
    """

    async def _export() -> None:
        async with open_client() as client:
            client.events.on(SyncEventType.NOTIFICATION, print_notification)
            await client.transfer.export_queue(output_dir or client.config.export_dir)

    run_async(_export())


def _confirm_import(document: TransferDocument) -> bool:
    exported_at = document.exported_at or "unknown"
    if document.announced_count != document.count:
        typer.secho(
            f"Warning: file declares {document.announced_count} operations "
            f"but contains {document.count}.",
            fg=typer.colors.YELLOW,
        )
    return typer.confirm(
        f"Import {document.announced_count} operations exported on {exported_at}?",
        default=True,
    )


@sync_app.command("import")
def import_cmd(
    file: Annotated[Path, typer.Argument(help="Transfer file produced by 'sync export'")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Replay an exported file directly against the backend.

    Operations go straight to the batch sync endpoint; the local queue is
    not touched.
    """

    async def _import() -> ImportStatus:
        async with open_client() as client:
            client.events.on(SyncEventType.NOTIFICATION, print_notification)
            outcome = await client.transfer.import_file(
                file, confirm=None if yes else _confirm_import
            )
            if outcome.status is ImportStatus.CANCELLED:
                typer.echo(outcome.message)
            return outcome.status

    try:
        status = run_async(_import())
    except MalformedTransferFile as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e

    if status in (ImportStatus.UNREACHABLE, ImportStatus.REJECTED):
        raise typer.Exit(1)


@sync_app.command("clear")
def clear_cmd(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Discard every pending operation."""

    async def _clear() -> None:
        async with open_client() as client:
            pending = await client.queue.count()
            if pending == 0:
                typer.echo("The queue is already empty.")
                return
            if not yes and not typer.confirm(f"Discard {pending} pending operations?"):
                typer.echo("Cancelled.")
                return
            await client.queue.clear()
            typer.secho(f"Discarded {pending} pending operations.", fg=typer.colors.GREEN)

    run_async(_clear())
