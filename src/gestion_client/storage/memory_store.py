"""In-memory key-value backend."""

from __future__ import annotations

from gestion_client.storage.base import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store for tests and throwaway sessions.

    Data is lost when the process exits.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def snapshot(self) -> dict[str, str]:
        """Copy of the raw contents."""
        return dict(self._data)
