"""Shared CLI helpers for configuration, client lifecycle, and output formatting."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import typer

from gestion_client.client import GestionClient
from gestion_client.unified_config import GestionConfig
from gestion_client.unified_config import get_config as _get_config

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_config() -> GestionConfig:
    """Get client configuration."""
    return _get_config()


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async CLI command.

    Yields once before the loop is torn down so that pending callbacks from
    aiosqlite worker threads are drained (avoids "Event loop is closed").
    """

    async def _with_cleanup() -> T:
        try:
            return await coro
        finally:
            await asyncio.sleep(0)

    return asyncio.run(_with_cleanup())


@asynccontextmanager
async def open_client(config: GestionConfig | None = None) -> AsyncIterator[GestionClient]:
    """Open a fully wired client for the duration of one command."""
    client = GestionClient(config or get_config())
    await client.open()
    try:
        yield client
    finally:
        try:
            await client.close()
        except Exception:
            logger.debug("Failed to close client during cleanup", exc_info=True)


def parse_json_data(data: str | None) -> Any:
    """Parse a ``--data`` option, exiting with an error on invalid JSON."""
    if data is None:
        return None
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        typer.secho(f"Invalid JSON data: {e.msg}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e


def output_result(data: Any, as_json: bool = False) -> None:
    """Output a backend result in the appropriate format."""
    if as_json or not isinstance(data, dict):
        typer.echo(json.dumps(data, indent=2, default=str, ensure_ascii=False))
        return

    if data.get("offline"):
        typer.secho(data.get("mensaje", "Saved offline."), fg=typer.colors.YELLOW)
    elif data.get("ok") is False and "error" in data:
        typer.secho(f"Error: {data['error']}", fg=typer.colors.RED)
    else:
        typer.echo(json.dumps(data, indent=2, default=str, ensure_ascii=False))
