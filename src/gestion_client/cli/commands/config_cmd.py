"""CLI commands for configuration management."""

from __future__ import annotations

import json
from typing import Annotated

import typer

from gestion_client.unified_config import get_config

config_app = typer.Typer(help="Configuration management")


@config_app.command("show")
def show_cmd(
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show the effective configuration (including environment overrides)."""
    config = get_config()
    data = config.to_dict()
    if json_output:
        typer.echo(json.dumps(data, indent=2))
        return

    typer.echo(f"Config file: {config.config_path}")
    for section in ("api", "sync", "storage", "cli"):
        typer.secho(f"\n[{section}]", fg=typer.colors.CYAN, bold=True)
        for key, value in data[section].items():
            typer.echo(f"  {key} = {value}")


@config_app.command("set-url")
def set_url_cmd(
    url: Annotated[str, typer.Argument(help="API root URL, e.g. http://localhost:8000/api")],
) -> None:
    """Point the client at another backend."""
    config = get_config()
    try:
        config.set_base_url(url)
    except ValueError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e
    typer.secho(f"API URL set to {config.api.base_url}", fg=typer.colors.GREEN)


@config_app.command("set-interval")
def set_interval_cmd(
    seconds: Annotated[float, typer.Argument(help="Seconds between connectivity probes")],
) -> None:
    """Change how often the backend is probed (5s to 24h)."""
    config = get_config()
    config.set_check_interval(seconds)
    typer.secho(
        f"Probe interval set to {config.sync.check_interval_seconds:.0f}s", fg=typer.colors.GREEN
    )
