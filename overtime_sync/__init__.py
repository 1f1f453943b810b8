"""
overtime-sync - overtime records with offline-first multi-device sync.

Employees submit overtime records, supervisors and the coordinator approve or
reject them, and a dashboard summarizes totals. Every device keeps a local
cache and reconciles it with a shared whole-document key/value store:

- Merge engine: remote-wins union keyed by record id, ordered newest first
- Sync orchestrator: fetch, merge, cache, write back; background polling
- Remote store client: whole-document GET/PUT with a rate-limit cool-down
- Local cache: snapshot that never fails its caller
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from overtime_sync.config import Settings, get_settings
from overtime_sync.domain.models import Record, RecordDraft, Role, Status, User
from overtime_sync.infrastructure.local_cache import LocalCache
from overtime_sync.infrastructure.remote_store import RemoteStoreClient
from overtime_sync.merge import merge
from overtime_sync.orchestrator import CycleResult, SyncOrchestrator
from overtime_sync.utils.logging import configure_logging, get_logger
from overtime_sync.utils.timeutils import calculate_duration, format_duration

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "Record",
    "RecordDraft",
    "Role",
    "Status",
    "User",
    # Sync core
    "CycleResult",
    "LocalCache",
    "RemoteStoreClient",
    "SyncOrchestrator",
    "merge",
    # Utilities
    "calculate_duration",
    "format_duration",
    "configure_logging",
    "get_logger",
]
