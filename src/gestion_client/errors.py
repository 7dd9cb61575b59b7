"""Error taxonomy for the offline client.

Transport and persistence failures are absorbed close to the I/O call and turned
into state changes or queue mutations. Application errors and malformed transfer
files reach the user as short messages.
"""

from __future__ import annotations


class GestionError(Exception):
    """Base class for all client errors."""


class TransportFailure(GestionError):
    """The backend could not be reached (DNS, refused connection, timeout)."""


class ApplicationError(GestionError):
    """The backend was reached but refused or answered something unusable."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidResponseError(ApplicationError):
    """The backend answered with a body that is not JSON."""


class PersistenceFailure(GestionError):
    """Local key-value storage is unavailable or failed to write."""


class MalformedTransferFile(GestionError):
    """A transfer file could not be parsed or has the wrong shape."""
