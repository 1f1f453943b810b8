from __future__ import annotations

import httpx
import pytest

from overtime_sync.auth import AuthService
from overtime_sync.domain.models import Role, dump_users, parse_users
from overtime_sync.errors import AuthenticationError
from overtime_sync.infrastructure.local_cache import (
    SESSION_USER_KEY,
    USERS_CACHE_KEY,
    LocalCache,
    MemoryStorage,
)
from overtime_sync.session import Session, open_app
from overtime_sync.webhook import WebhookNotifier


@pytest.fixture
def session(make_remote, make_orchestrator, http) -> Session:
    device = MemoryStorage()
    remote = make_remote()
    auth = AuthService(
        remote, LocalCache(device, USERS_CACHE_KEY, parse_users, dump_users)
    )
    webhook = WebhookNotifier(http, remote, device)
    return Session(make_orchestrator(device), auth, MemoryStorage(), webhook=webhook)


@pytest.mark.asyncio
async def test_login_remembers_user_syncs_and_polls(session, blob_store, make_record):
    await session.auth.register("erik", "pw", Role.SUPERVISOR, name="Erik Salvador")
    blob_store.seed_records([make_record("r1")])
    blob_store.documents["proj_config"] = {"googleSheetUrl": "https://hooks.test/exec"}

    user = await session.login("erik", "pw")

    assert session.user == user
    assert [record.id for record in session.orchestrator.records] == ["r1"]
    assert session.orchestrator.is_polling
    assert session.webhook.url == "https://hooks.test/exec"

    await session.logout()

    assert session.user is None
    assert not session.orchestrator.is_polling
    assert [record.id for record in session.orchestrator.records] == ["r1"]


@pytest.mark.asyncio
async def test_login_without_polling(session):
    await session.auth.register("erik", "pw", Role.SUPERVISOR, name="Erik Salvador")

    await session.login("erik", "pw", poll=False)

    assert not session.orchestrator.is_polling


@pytest.mark.asyncio
async def test_failed_login_leaves_no_identity(session):
    with pytest.raises(AuthenticationError):
        await session.login("ghost", "pw")

    assert session.user is None
    with pytest.raises(AuthenticationError, match="Not logged in"):
        session.require_user()


@pytest.mark.asyncio
async def test_corrupt_session_is_discarded(session):
    session.storage.set(SESSION_USER_KEY, "{broken")

    assert session.user is None
    assert session.storage.get(SESSION_USER_KEY) is None


@pytest.mark.asyncio
async def test_change_password_updates_session(session):
    await session.auth.register("erik", "pw", Role.SUPERVISOR, name="Erik Salvador")
    await session.login("erik", "pw", poll=False)

    await session.change_password("pw", "new")

    assert session.require_user().password == "new"


@pytest.mark.asyncio
async def test_open_app_wires_file_storage(test_settings, blob_store):
    transport = httpx.MockTransport(blob_store.handler)
    async with open_app(test_settings, transport=transport) as app:
        await app.auth.register("ailton", "pw", Role.COORDINATOR)
        await app.session.login("ailton", "pw")
        assert app.orchestrator.is_polling

    assert not app.orchestrator.is_polling
    data_dir = test_settings.resolved_data_dir
    assert (data_dir / "app_users.json").exists()
    assert (data_dir / "session" / "logged_user.json").exists()
