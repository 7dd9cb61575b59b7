"""
gestion-client - Offline-first client for the small-business management backend.

Writes issued while the backend is unreachable are kept in a durable local
queue and replayed through the batch sync endpoint once connectivity returns.
"""

from gestion_client.client import GestionClient
from gestion_client.errors import (
    ApplicationError,
    GestionError,
    MalformedTransferFile,
    PersistenceFailure,
    TransportFailure,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ApplicationError",
    "GestionClient",
    "GestionError",
    "MalformedTransferFile",
    "PersistenceFailure",
    "TransportFailure",
]
