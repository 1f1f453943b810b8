"""
HTTP client factory for overtime-sync.

Centralizes construction of the httpx.AsyncClient shared by the remote store
client and the webhook notifier, so timeouts and headers are configured in one
place and the client is closed deterministically when the session ends.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from overtime_sync import __version__
from overtime_sync.config import Settings, get_settings


def create_http_client(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Build an AsyncClient with the configured timeout.

    Parameters
    ----------
    settings : Settings | None
        Overrides the cached settings.
    transport : httpx.AsyncBaseTransport | None
        Custom transport (e.g. ``httpx.MockTransport`` in tests).

    Returns
    -------
    httpx.AsyncClient
        A new client; the caller is responsible for closing it.
    """
    settings = settings or get_settings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.request_timeout_seconds),
        headers={"User-Agent": f"overtime-sync/{__version__}"},
        follow_redirects=True,
        transport=transport,
    )


@asynccontextmanager
async def http_client(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """
    Context manager yielding a client that is closed on exit.

    Example
    -------
        async with http_client() as client:
            remote = RemoteStoreClient.from_settings(client)
    """
    client = create_http_client(settings, transport=transport)
    try:
        yield client
    finally:
        await client.aclose()


__all__ = ["create_http_client", "http_client"]
