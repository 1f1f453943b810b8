"""
Pytest configuration for overtime-sync.

Provides fixtures for:
- An in-process fake of the remote blob store served through httpx.MockTransport
- A controllable monotonic clock for cool-down tests
- Record and user factories
- Wired remote client / cache / orchestrator instances
"""

from __future__ import annotations

import asyncio
import copy
import json
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional
from urllib.parse import parse_qsl

import httpx
import pytest
import pytest_asyncio

from overtime_sync.config import Settings
from overtime_sync.domain.models import Record, Role, Status, User, dump_records, parse_records
from overtime_sync.infrastructure.local_cache import (
    RECORDS_CACHE_KEY,
    LocalCache,
    MemoryStorage,
)
from overtime_sync.infrastructure.remote_store import RemoteStoreClient
from overtime_sync.orchestrator import SyncOrchestrator

BASE_URL = "https://kv.test/bucket"
PROJECT_KEY = "proj"


class FakeBlobStore:
    """
    Dict-backed stand-in for the whole-document key/value store.

    Documents are addressed by the last URL path segment (``proj_recs``).
    Switches simulate an unreachable store, rate limiting, and failing writes.
    """

    def __init__(self) -> None:
        self.documents: Dict[str, Any] = {}
        self.requests: List[httpx.Request] = []
        self.offline = False
        self.rate_limited = False
        self.fail_writes = False
        self.posts: List[Dict[str, str]] = []
        self._read_barrier: Optional[int] = None
        self._waiting_reads = 0
        self._barrier_open = asyncio.Event()

    def hold_reads_until(self, count: int) -> None:
        """Block GETs until ``count`` of them are in flight, then release all."""
        self._read_barrier = count
        self._waiting_reads = 0
        self._barrier_open = asyncio.Event()

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("store unreachable", request=request)
        if self.rate_limited:
            return httpx.Response(429)

        name = request.url.path.rsplit("/", 1)[-1]
        if request.method == "GET":
            # Readers see the snapshot as of their arrival, not of their release.
            exists = name in self.documents
            snapshot = copy.deepcopy(self.documents.get(name))
            if self._read_barrier is not None:
                self._waiting_reads += 1
                if self._waiting_reads >= self._read_barrier:
                    self._read_barrier = None
                    self._barrier_open.set()
                await self._barrier_open.wait()
            if not exists:
                return httpx.Response(404)
            return httpx.Response(200, json=snapshot)

        if request.method == "POST":
            self.posts.append(dict(parse_qsl(request.content.decode())))
            return httpx.Response(200)

        if self.fail_writes:
            return httpx.Response(500)
        self.documents[name] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True})

    def methods(self) -> List[str]:
        return [request.method for request in self.requests]

    def records(self) -> List[Record]:
        return parse_records(self.documents.get(f"{PROJECT_KEY}_recs", []))

    def seed_records(self, records: List[Record]) -> None:
        self.documents[f"{PROJECT_KEY}_recs"] = dump_records(records)


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def http(blob_store: FakeBlobStore) -> AsyncGenerator[httpx.AsyncClient, None]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(blob_store.handler))
    try:
        yield client
    finally:
        await client.aclose()


@pytest.fixture
def make_remote(http: httpx.AsyncClient, clock: FakeClock) -> Callable[..., RemoteStoreClient]:
    def factory(**overrides: Any) -> RemoteStoreClient:
        options: Dict[str, Any] = {
            "cooldown_seconds": 30.0,
            "max_attempts": 1,
            "retry_wait_seconds": 0,
            "clock": clock,
        }
        options.update(overrides)
        return RemoteStoreClient(http, BASE_URL, PROJECT_KEY, **options)

    return factory


@pytest.fixture
def remote(make_remote: Callable[..., RemoteStoreClient]) -> RemoteStoreClient:
    return make_remote()


@pytest.fixture
def make_record() -> Callable[..., Record]:
    def factory(record_id: str, created_at: int = 1_000, **fields: Any) -> Record:
        defaults: Dict[str, Any] = {
            "status": Status.PENDING,
            "owner_username": "joao",
            "supervisor": "Erik Salvador",
            "employee": "João Silva",
            "start_date": "2024-03-01",
            "start_time": "18:00",
            "end_date": "2024-03-01",
            "end_time": "20:00",
            "location": "Santos",
            "reason": "Ship loading",
            "duration_minutes": 120,
        }
        defaults.update(fields)
        return Record(id=record_id, created_at=created_at, **defaults)

    return factory


@pytest.fixture
def users() -> Dict[str, User]:
    return {
        "coordinator": User(username="ailton", password="pw", name="Ailton Souza", role=Role.COORDINATOR),
        "supervisor": User(username="erik", password="pw", name="Erik Salvador", role=Role.SUPERVISOR),
        "other_supervisor": User(
            username="jose", password="pw", name="José Carlos", role=Role.SUPERVISOR
        ),
        "employee": User(
            username="joao",
            password="pw",
            name="João Silva",
            role=Role.EMPLOYEE,
            supervisor_name="Erik Salvador",
        ),
        "other_employee": User(
            username="kleber",
            password="pw",
            name="Kleber",
            role=Role.EMPLOYEE,
            supervisor_name="José Carlos",
        ),
    }


def records_cache(storage: Optional[MemoryStorage] = None) -> LocalCache[Record]:
    return LocalCache(storage or MemoryStorage(), RECORDS_CACHE_KEY, parse_records, dump_records)


@pytest.fixture
def make_orchestrator(
    make_remote: Callable[..., RemoteStoreClient],
) -> Callable[..., SyncOrchestrator]:
    counter = iter(range(10_000, 10_000_000, 1_000))

    def factory(storage: Optional[MemoryStorage] = None, **overrides: Any) -> SyncOrchestrator:
        options: Dict[str, Any] = {"interval_seconds": 0.01, "now_ms": lambda: next(counter)}
        options.update(overrides)
        return SyncOrchestrator(make_remote(), records_cache(storage), **options)

    return factory


@pytest.fixture
def orchestrator(make_orchestrator: Callable[..., SyncOrchestrator]) -> SyncOrchestrator:
    return make_orchestrator()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings fixture pointing at the fake store and a temporary data dir."""
    return Settings(
        remote_base_url=BASE_URL,
        project_key=PROJECT_KEY,
        remote_max_attempts=1,
        sync_interval_seconds=0.01,
        data_dir=tmp_path / "data",
        log_level="DEBUG",
    )
