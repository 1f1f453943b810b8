"""
Infrastructure package for overtime-sync.

Centralizes I/O concerns: the remote blob store client, the HTTP client
factory, and local key/value persistence. Keep this layer focused on I/O and
resource management, decoupled from merge and orchestration logic.
"""

from overtime_sync.infrastructure.abstract import AbstractKeyValueStorage, KeyValueStorage
from overtime_sync.infrastructure.http_factory import create_http_client, http_client
from overtime_sync.infrastructure.local_cache import FileStorage, LocalCache, MemoryStorage
from overtime_sync.infrastructure.remote_store import RemoteStoreClient

__all__ = [
    "AbstractKeyValueStorage",
    "FileStorage",
    "KeyValueStorage",
    "LocalCache",
    "MemoryStorage",
    "RemoteStoreClient",
    "create_http_client",
    "http_client",
]
