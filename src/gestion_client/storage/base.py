"""Abstract base class for local key-value persistence backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class KeyValueStore(ABC):
    """
    Abstract interface for the local persistence surface.

    Values are opaque strings (the queue stores serialized JSON under a
    single well-known key). Implementations raise PersistenceFailure when
    the underlying medium is unavailable.
    """

    async def initialize(self) -> None:  # noqa: B027
        """Open the backing medium. No-op by default."""

    async def close(self) -> None:  # noqa: B027
        """Release the backing medium. No-op by default."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """
        Read the value stored under a key.

        Args:
            key: Storage key

        Returns:
            The stored string, or None if the key is absent

        Raises:
            PersistenceFailure: If the store cannot be read
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """
        Overwrite the value stored under a key.

        Raises:
            PersistenceFailure: If the value cannot be written
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it existed."""
        ...

    async def __aenter__(self) -> KeyValueStore:
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()
