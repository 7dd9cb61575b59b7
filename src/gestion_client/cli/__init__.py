"""gestion command-line client.

Usage:
    gestion sync status        Show connection state and pending operations
    gestion sync now           Synchronize the pending queue
    gestion sync watch         Monitor the backend and sync automatically
    gestion sync export        Export pending operations to a file
    gestion sync import FILE   Replay an exported file against the backend
    gestion api post PATH      Send a request (queued when offline)
"""

from gestion_client.cli.main import app, main

__all__ = ["app", "main"]
