"""
Domain package for overtime-sync.

Exports the record and user models exchanged with the local cache and the
remote blob store. Keep this package focused on data definitions and
validation concerns.
"""

from overtime_sync.domain.models import (
    Location,
    Record,
    RecordDraft,
    RemoteConfig,
    Role,
    Status,
    User,
    dump_records,
    dump_users,
    parse_records,
    parse_users,
)

__all__ = [
    "Location",
    "Record",
    "RecordDraft",
    "RemoteConfig",
    "Role",
    "Status",
    "User",
    "dump_records",
    "dump_users",
    "parse_records",
    "parse_users",
]
