"""gestion CLI main entry point."""

from __future__ import annotations

import logging
import sys
from typing import Annotated

import typer

from gestion_client.cli.commands.api import api_app
from gestion_client.cli.commands.config_cmd import config_app
from gestion_client.cli.commands.sync import sync_app

# Main app
app = typer.Typer(
    name="gestion",
    help="Offline-first client for the management backend",
    no_args_is_help=True,
)

app.add_typer(sync_app, name="sync")
app.add_typer(api_app, name="api")
app.add_typer(config_app, name="config")


@app.callback()
def _configure(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging on stderr"),
    ] = False,
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)
    else:
        logging.basicConfig(level=logging.WARNING, stream=sys.stderr)


@app.command()
def version() -> None:
    """Show version information."""
    from gestion_client import __version__

    typer.echo(f"gestion-client v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
