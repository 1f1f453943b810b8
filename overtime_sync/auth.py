"""
User registration and authentication.

Users live in their own whole-collection document and follow the same
local-first pattern as records: credentials are checked against the local user
cache first, and the cloud copy is consulted only when the local cache does not
know the user (e.g. first login on a new device).
"""

from __future__ import annotations

import hmac
from typing import List, Optional, Tuple

from pydantic import ValidationError

from overtime_sync.config import Settings, get_settings
from overtime_sync.domain.models import Role, User, dump_users, parse_users
from overtime_sync.errors import AuthenticationError, RegistrationError
from overtime_sync.infrastructure.local_cache import LocalCache
from overtime_sync.infrastructure.remote_store import RemoteStoreClient
from overtime_sync.merge import union_by_key
from overtime_sync.utils.logging import get_logger

log = get_logger(__name__)


def _username(user: User) -> str:
    return user.username


def _password_matches(user: User, password: str) -> bool:
    return hmac.compare_digest((user.password or "").encode(), password.encode())


class AuthService:
    def __init__(
        self,
        remote: RemoteStoreClient,
        cache: LocalCache[User],
        *,
        users_key: str = "users",
        coordinator_name: str = "Coordinator",
    ) -> None:
        self.remote = remote
        self.cache = cache
        self.users_key = users_key
        self.coordinator_name = coordinator_name

    @classmethod
    def from_settings(
        cls, remote: RemoteStoreClient, cache: LocalCache[User], settings: Optional[Settings] = None
    ) -> "AuthService":
        settings = settings or get_settings()
        return cls(
            remote,
            cache,
            users_key=settings.users_key,
            coordinator_name=settings.coordinator_name,
        )

    async def _fetch_remote(self) -> Tuple[Optional[List[User]], bool]:
        """Remote users (None if unavailable) and whether the document may be replaced."""
        raw = await self.remote.get(self.users_key)
        if raw is None:
            return None, True
        try:
            return parse_users(raw), True
        except ValidationError as exc:
            log.error("[REMOTE USERS INVALID]", extra={"errors": exc.error_count()})
            return None, False

    async def _known_users(self) -> Tuple[List[User], bool]:
        """Cloud users (authoritative) plus users only this device knows."""
        remote, writable = await self._fetch_remote()
        return union_by_key(remote or [], self.cache.load(), key=_username), writable

    async def _publish(self, users: List[User], writable: bool = True) -> bool:
        self.cache.save(users)
        published = writable and await self.remote.put(self.users_key, dump_users(users))
        if not published:
            log.warning("[USERS DEFERRED] Saved locally only", extra={"users": len(users)})
        return published

    async def register(
        self,
        username: str,
        password: str,
        role: Role,
        name: str = "",
        supervisor_name: Optional[str] = None,
    ) -> User:
        """
        Create an account.

        Coordinators always get the configured coordinator name; employees must
        name their supervisor.

        Raises
        ------
        RegistrationError
            On a duplicate username or missing required data.
        """
        username = username.strip()
        if not username or not password:
            raise RegistrationError("Username and password are required")
        if role == Role.EMPLOYEE and not supervisor_name:
            raise RegistrationError("Employees must select their supervisor")
        if role != Role.COORDINATOR and not name.strip():
            raise RegistrationError("Name is required")

        users, writable = await self._known_users()
        if any(user.username == username for user in users):
            raise RegistrationError(f"Username '{username}' already exists")

        user = User(
            username=username,
            password=password,
            name=self.coordinator_name if role == Role.COORDINATOR else name.strip(),
            role=role,
            supervisor_name=supervisor_name if role == Role.EMPLOYEE else None,
        )
        await self._publish(users + [user], writable)
        log.info("[USER REGISTERED]", extra={"username": username, "role": role.value})
        return user

    async def login(self, username: str, password: str) -> User:
        """
        Verify credentials, local cache first, then the cloud.

        Raises
        ------
        AuthenticationError
            If the credentials do not match, or the user is unknown locally and
            the cloud is unreachable. Either way the caller may retry.
        """
        for user in self.cache.load():
            if user.username == username and _password_matches(user, password):
                return user

        remote, _ = await self._fetch_remote()
        if remote is None:
            raise AuthenticationError(
                "Could not reach the server to verify these credentials; try again later"
            )
        self.cache.save(union_by_key(remote, self.cache.load(), key=_username))
        for user in remote:
            if user.username == username and _password_matches(user, password):
                return user
        raise AuthenticationError("Invalid username or password")

    async def change_password(self, user: User, current: str, new: str) -> User:
        if not _password_matches(user, current):
            raise AuthenticationError("Current password is incorrect")
        if not new:
            raise AuthenticationError("New password must not be empty")

        updated = user.model_copy(update={"password": new})
        users, writable = await self._known_users()
        replaced = [updated if known.username == user.username else known for known in users]
        if not any(known.username == user.username for known in users):
            replaced.append(updated)
        await self._publish(replaced, writable)
        return updated


__all__ = ["AuthService"]
