"""
Session lifecycle and application wiring.

`open_app` builds every collaborator for one process (HTTP client, remote store
client, caches, orchestrator, auth, webhook) and tears them down on exit.
`Session` holds the logged-in identity under a session-scoped key and drives
the login/logout transitions of the sync orchestrator.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx
from pydantic import ValidationError

from overtime_sync.auth import AuthService
from overtime_sync.config import Settings, get_settings
from overtime_sync.domain.models import User, dump_records, dump_users, parse_records, parse_users
from overtime_sync.errors import AuthenticationError
from overtime_sync.infrastructure.abstract import KeyValueStorage
from overtime_sync.infrastructure.http_factory import http_client
from overtime_sync.infrastructure.local_cache import (
    RECORDS_CACHE_KEY,
    SESSION_USER_KEY,
    USERS_CACHE_KEY,
    FileStorage,
    LocalCache,
)
from overtime_sync.infrastructure.remote_store import RemoteStoreClient
from overtime_sync.orchestrator import CycleResult, SyncOrchestrator
from overtime_sync.utils.logging import get_logger
from overtime_sync.webhook import WebhookNotifier

log = get_logger(__name__)


class Session:
    """
    The logged-in identity plus the orchestrator it drives.

    Parameters
    ----------
    orchestrator : SyncOrchestrator
        Record sync for this device.
    auth : AuthService
        Credential checks.
    storage : KeyValueStorage
        Session-scoped storage; only the current identity lives here.
    webhook : WebhookNotifier | None
        Refreshed from the remote config on login.
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        auth: AuthService,
        storage: KeyValueStorage,
        webhook: Optional[WebhookNotifier] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.auth = auth
        self.storage = storage
        self.webhook = webhook

    @property
    def user(self) -> Optional[User]:
        raw = self.storage.get(SESSION_USER_KEY)
        if raw is None:
            return None
        try:
            return User.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError):
            log.warning("[SESSION CORRUPT] Discarding stored identity")
            self.storage.delete(SESSION_USER_KEY)
            return None

    def require_user(self) -> User:
        user = self.user
        if user is None:
            raise AuthenticationError("Not logged in")
        return user

    def _remember(self, user: User) -> None:
        self.storage.set(SESSION_USER_KEY, json.dumps(user.to_wire(), ensure_ascii=False))

    async def start(self, poll: bool = True) -> CycleResult:
        """Run the login-time sync once and, optionally, start background polling."""
        result = await self.orchestrator.sync_now()
        if self.webhook is not None:
            await self.webhook.refresh_url()
        if poll:
            self.orchestrator.start_polling()
        return result

    async def login(self, username: str, password: str, poll: bool = True) -> User:
        user = await self.auth.login(username, password)
        self._remember(user)
        log.info("[LOGIN]", extra={"username": user.username})
        await self.start(poll=poll)
        return user

    async def change_password(self, current: str, new: str) -> User:
        updated = await self.auth.change_password(self.require_user(), current, new)
        self._remember(updated)
        return updated

    async def logout(self) -> None:
        """Stop polling deterministically, then forget the identity."""
        await self.orchestrator.stop_polling()
        self.storage.delete(SESSION_USER_KEY)
        log.info("[LOGOUT]")

    async def close(self) -> None:
        """Release background work without ending the session."""
        await self.orchestrator.stop_polling()
        if self.webhook is not None:
            await self.webhook.drain()


@dataclass
class AppContext:
    settings: Settings
    remote: RemoteStoreClient
    orchestrator: SyncOrchestrator
    auth: AuthService
    session: Session
    webhook: WebhookNotifier


def build_app(
    settings: Settings,
    client: httpx.AsyncClient,
    storage: KeyValueStorage,
    session_storage: KeyValueStorage,
) -> AppContext:
    """Wire every collaborator around one HTTP client and two storage scopes."""
    remote = RemoteStoreClient.from_settings(client, settings)
    webhook = WebhookNotifier(client, remote, storage, config_key=settings.config_key)
    orchestrator = SyncOrchestrator.from_settings(
        remote,
        LocalCache(storage, RECORDS_CACHE_KEY, parse_records, dump_records),
        settings,
        webhook=webhook,
    )
    auth = AuthService.from_settings(
        remote, LocalCache(storage, USERS_CACHE_KEY, parse_users, dump_users), settings
    )
    session = Session(orchestrator, auth, session_storage, webhook=webhook)
    return AppContext(settings, remote, orchestrator, auth, session, webhook)


@asynccontextmanager
async def open_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[AppContext]:
    """
    Build the application for one process and release it on exit.

    Device data lives under ``<data_dir>``; the session identity under
    ``<data_dir>/session`` so logging out never touches the caches.
    """
    settings = settings or get_settings()
    data_dir = settings.resolved_data_dir
    async with http_client(settings, transport=transport) as client:
        app = build_app(settings, client, FileStorage(data_dir), FileStorage(data_dir / "session"))
        try:
            yield app
        finally:
            await app.session.close()


__all__ = ["AppContext", "Session", "build_app", "open_app"]
