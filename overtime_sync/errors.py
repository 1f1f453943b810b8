"""
Exception hierarchy for overtime-sync.

Network failures never surface as exceptions: the remote store client turns
them into ``None``/``False``. What remains are user-facing errors the CLI
reports and the caller may retry.
"""

from __future__ import annotations


class OvertimeSyncError(Exception):
    """Base class for errors reported back to the user."""


class AuthenticationError(OvertimeSyncError):
    """Bad credentials, or the user is unknown to both the local cache and the cloud."""


class RegistrationError(OvertimeSyncError):
    """A registration request was rejected (duplicate username, missing supervisor)."""


class PermissionDeniedError(OvertimeSyncError):
    """The acting user may not perform the requested change on a record."""


class RecordNotFoundError(OvertimeSyncError):
    def __init__(self, record_id: str) -> None:
        super().__init__(f"Record '{record_id}' not found")
        self.record_id = record_id


class ImportValidationError(OvertimeSyncError):
    """A backup payload is malformed; nothing from it was applied."""


class WebhookConfigError(OvertimeSyncError):
    """The webhook URL is not a usable absolute http(s) URL."""


__all__ = [
    "OvertimeSyncError",
    "AuthenticationError",
    "RegistrationError",
    "PermissionDeniedError",
    "RecordNotFoundError",
    "ImportValidationError",
    "WebhookConfigError",
]
