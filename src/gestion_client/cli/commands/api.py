"""CLI commands issuing raw requests through the request gateway."""

from __future__ import annotations

from typing import Annotated, Any

import typer

from gestion_client.cli._helpers import (
    get_config,
    open_client,
    output_result,
    parse_json_data,
    run_async,
)
from gestion_client.sync.protocol import HttpMethod

api_app = typer.Typer(help="Send requests to the backend (writes are queued while offline)")

DataOption = Annotated[
    str | None,
    typer.Option("--data", "-d", help="JSON body, e.g. '{\"nombre\": \"Ana\"}'"),
]
JsonOption = Annotated[bool, typer.Option("--json", "-j", help="Output raw JSON")]


def _send(method: str, path: str, data: str | None, json_output: bool) -> None:
    try:
        verb = HttpMethod.parse(method)
    except ValueError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e

    body = parse_json_data(data)

    async def _request() -> Any:
        async with open_client() as client:
            return await client.gateway.request(verb, path, body)

    result = run_async(_request())
    output_result(result, as_json=json_output or get_config().json_output)
    if isinstance(result, dict) and result.get("ok") is False and not result.get("offline"):
        raise typer.Exit(1)


@api_app.command("get")
def get_cmd(
    path: Annotated[str, typer.Argument(help="Path under the API root, e.g. /clientes/")],
    json_output: JsonOption = False,
) -> None:
    """GET a resource. Reads are never queued."""
    _send("GET", path, None, json_output)


@api_app.command("post")
def post_cmd(
    path: Annotated[str, typer.Argument(help="Path under the API root")],
    data: DataOption = None,
    json_output: JsonOption = False,
) -> None:
    """Create a resource."""
    _send("POST", path, data, json_output)


@api_app.command("put")
def put_cmd(
    path: Annotated[str, typer.Argument(help="Path under the API root")],
    data: DataOption = None,
    json_output: JsonOption = False,
) -> None:
    """Update a resource."""
    _send("PUT", path, data, json_output)


@api_app.command("delete")
def delete_cmd(
    path: Annotated[str, typer.Argument(help="Path under the API root")],
    json_output: JsonOption = False,
) -> None:
    """Delete a resource."""
    _send("DELETE", path, None, json_output)


@api_app.command("request")
def request_cmd(
    method: Annotated[str, typer.Argument(help="HTTP method: GET, POST, PUT, PATCH, DELETE")],
    path: Annotated[str, typer.Argument(help="Path under the API root")],
    data: DataOption = None,
    json_output: JsonOption = False,
) -> None:
    """Send a request with any supported method.

    Examples:
        gestion api request PATCH /productos/3/ -d '{"stock": 10}'
    """
    _send(method, path, data, json_output)
