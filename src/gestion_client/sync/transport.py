"""HTTP transport to the backend JSON API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from gestion_client.errors import InvalidResponseError, TransportFailure
from gestion_client.sync.protocol import HttpMethod

logger = logging.getLogger(__name__)


class BackendTransport:
    """
    aiohttp client bound to the backend's API root.

    Every network-level problem surfaces as TransportFailure; HTTP error
    statuses are not interpreted here, the decoded JSON body is returned
    whatever the status code.

    Usage:
        async with BackendTransport("http://localhost:8000/api") as transport:
            data = await transport.request_json("GET", "/clientes/")
    """

    def __init__(self, base_url: str, *, timeout: float | None = 30.0) -> None:
        """
        Initialize the transport.

        Args:
            base_url: API root URL (e.g., "http://localhost:8000/api")
            timeout: Total request timeout in seconds (None = aiohttp default)
        """
        if not base_url.startswith(("http://", "https://")):
            raise ValueError("Invalid API URL scheme: must start with http:// or https://")
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None
        self._session: aiohttp.ClientSession | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def connect(self) -> None:
        """Create the HTTP session."""
        if self._session is None:
            if self._timeout is not None:
                self._session = aiohttp.ClientSession(timeout=self._timeout)
            else:
                self._session = aiohttp.ClientSession()

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> BackendTransport:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    def url_for(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self._base_url}{path}"

    async def request_json(
        self,
        method: HttpMethod | str,
        path: str,
        payload: Any = None,
    ) -> Any:
        """
        Send a request and decode the JSON body.

        Args:
            method: HTTP verb
            path: Path relative to the API root
            payload: JSON-serializable body, or None for no body

        Returns:
            The decoded JSON body, as-is

        Raises:
            TransportFailure: If the backend cannot be reached
            InvalidResponseError: If the body is not JSON
        """
        if self._session is None:
            await self.connect()
        assert self._session is not None

        verb = HttpMethod.parse(method)
        headers = {"Accept": "application/json"}
        kwargs: dict[str, Any] = {"headers": headers}
        if payload is not None:
            kwargs["json"] = payload

        try:
            async with self._session.request(verb.value, self.url_for(path), **kwargs) as response:
                try:
                    return await response.json(content_type=None)
                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    raise InvalidResponseError(
                        "The server returned an invalid response",
                        status_code=response.status,
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise TransportFailure(f"{verb.value} {path} failed: {e}") from e

    async def ping(self, path: str) -> int:
        """
        Issue a GET without decoding the body.

        Returns:
            The HTTP status code

        Raises:
            TransportFailure: If the backend cannot be reached
        """
        if self._session is None:
            await self.connect()
        assert self._session is not None

        try:
            async with self._session.get(
                self.url_for(path), headers={"Accept": "application/json"}
            ) as response:
                return response.status
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise TransportFailure(f"GET {path} failed: {e}") from e
