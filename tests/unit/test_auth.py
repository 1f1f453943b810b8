from __future__ import annotations

import pytest

from overtime_sync.auth import AuthService
from overtime_sync.domain.models import Role, dump_users, parse_users
from overtime_sync.errors import AuthenticationError, RegistrationError
from overtime_sync.infrastructure.local_cache import USERS_CACHE_KEY, LocalCache, MemoryStorage

COORDINATOR_NAME = "Ailton Souza"


@pytest.fixture
def make_auth(make_remote):
    def factory(storage=None) -> AuthService:
        cache = LocalCache(storage or MemoryStorage(), USERS_CACHE_KEY, parse_users, dump_users)
        return AuthService(make_remote(), cache, coordinator_name=COORDINATOR_NAME)

    return factory


@pytest.fixture
def auth(make_auth) -> AuthService:
    return make_auth()


def _remote_usernames(blob_store):
    return [user["username"] for user in blob_store.documents.get("proj_users", [])]


@pytest.mark.asyncio
async def test_register_publishes_and_caches(auth, blob_store):
    user = await auth.register(
        "joao", "secret", Role.EMPLOYEE, name="João Silva", supervisor_name="Erik Salvador"
    )

    assert user.supervisor_name == "Erik Salvador"
    assert _remote_usernames(blob_store) == ["joao"]
    assert [cached.username for cached in auth.cache.load()] == ["joao"]
    assert blob_store.documents["proj_users"][0]["supervisorName"] == "Erik Salvador"


@pytest.mark.asyncio
async def test_coordinator_gets_configured_name(auth):
    user = await auth.register("boss", "secret", Role.COORDINATOR, name="Whatever")

    assert user.name == COORDINATOR_NAME
    assert user.supervisor_name is None


@pytest.mark.asyncio
async def test_supervisor_never_keeps_a_supervisor(auth):
    user = await auth.register(
        "erik", "secret", Role.SUPERVISOR, name="Erik Salvador", supervisor_name="Someone"
    )

    assert user.supervisor_name is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("username", "password", "role", "name", "supervisor", "message"),
    [
        ("", "pw", Role.EMPLOYEE, "A", "Erik", "required"),
        ("ana", "", Role.EMPLOYEE, "A", "Erik", "required"),
        ("ana", "pw", Role.EMPLOYEE, "Ana", None, "supervisor"),
        ("ana", "pw", Role.SUPERVISOR, "  ", None, "Name"),
    ],
)
async def test_register_validation(auth, blob_store, username, password, role, name, supervisor, message):
    with pytest.raises(RegistrationError, match=message):
        await auth.register(username, password, role, name=name, supervisor_name=supervisor)

    assert blob_store.requests == []


@pytest.mark.asyncio
async def test_duplicate_username_known_only_remotely(make_auth):
    await make_auth().register("erik", "pw", Role.SUPERVISOR, name="Erik Salvador")

    with pytest.raises(RegistrationError, match="already exists"):
        await make_auth().register("erik", "other", Role.SUPERVISOR, name="Erik Two")


@pytest.mark.asyncio
async def test_register_offline_keeps_user_locally(auth, blob_store):
    blob_store.offline = True

    await auth.register("erik", "pw", Role.SUPERVISOR, name="Erik Salvador")

    assert [user.username for user in auth.cache.load()] == ["erik"]
    assert "proj_users" not in blob_store.documents


@pytest.mark.asyncio
async def test_register_leaves_invalid_remote_users_untouched(auth, blob_store):
    blob_store.documents["proj_users"] = [{"username": "erik"}, {"name": "no username"}]

    await auth.register("ana", "pw", Role.SUPERVISOR, name="Ana Lima")

    assert "PUT" not in blob_store.methods()
    assert blob_store.documents["proj_users"] == [{"username": "erik"}, {"name": "no username"}]
    assert [user.username for user in auth.cache.load()] == ["ana"]


@pytest.mark.asyncio
async def test_login_uses_local_cache_first(auth, blob_store):
    await auth.register("erik", "pw", Role.SUPERVISOR, name="Erik Salvador")
    blob_store.offline = True

    user = await auth.login("erik", "pw")

    assert user.name == "Erik Salvador"


@pytest.mark.asyncio
async def test_login_on_new_device_falls_back_to_cloud(make_auth):
    await make_auth().register("erik", "pw", Role.SUPERVISOR, name="Erik Salvador")
    new_device = make_auth()

    user = await new_device.login("erik", "pw")

    assert user.username == "erik"
    assert [cached.username for cached in new_device.cache.load()] == ["erik"]


@pytest.mark.asyncio
async def test_login_wrong_password(auth):
    await auth.register("erik", "pw", Role.SUPERVISOR, name="Erik Salvador")

    with pytest.raises(AuthenticationError, match="Invalid"):
        await auth.login("erik", "nope")


@pytest.mark.asyncio
async def test_login_unknown_user_while_offline(auth, blob_store):
    blob_store.offline = True

    with pytest.raises(AuthenticationError, match="reach the server"):
        await auth.login("ghost", "pw")


@pytest.mark.asyncio
async def test_change_password(auth):
    user = await auth.register("erik", "pw", Role.SUPERVISOR, name="Erik Salvador")

    with pytest.raises(AuthenticationError):
        await auth.change_password(user, "wrong", "new")

    updated = await auth.change_password(user, "pw", "new")

    assert updated.password == "new"
    assert (await auth.login("erik", "new")).username == "erik"
    with pytest.raises(AuthenticationError):
        await auth.login("erik", "pw")
