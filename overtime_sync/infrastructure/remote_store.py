"""
Remote blob store client for overtime-sync.

The backend is a plain key/value bucket: each logical document ("recs",
"users", "config") is one JSON blob that is read and replaced as a whole. The
client never raises to its callers:

- ``get`` returns the decoded array, ``[]`` for an absent or non-array
  document, and ``None`` when the store could not be reached. Callers must
  treat ``None`` as "unknown", never as "empty".
- ``put`` returns True on success and False on any failure.

A 429 response blocks the client for a fixed cool-down window. While blocked,
every call short-circuits without touching the network; the first call after
the window clears the block and goes through.

Transport errors (connect failures, timeouts) are retried with tenacity before
the call gives up.
"""

from __future__ import annotations

import time
from typing import Any, Callable, List, Optional, Tuple

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from overtime_sync.config import Settings, get_settings
from overtime_sync.utils.logging import get_logger

log = get_logger(__name__)

_NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store", "Pragma": "no-cache"}


class RemoteStoreClient:
    """
    Whole-document GET/PUT access to the remote blob store.

    Parameters
    ----------
    http_client : httpx.AsyncClient
        Transport used for every request. Owned by the caller.
    base_url : str
        Bucket URL; documents live at ``<base_url>/<project_key>_<key>``.
    project_key : str
        Prefix shared by every document of this deployment.
    write_method : str
        HTTP verb used to replace a document.
    cooldown_seconds : float
        How long to stay blocked after a 429 response.
    max_attempts : int
        Attempts per request when the transport fails.
    retry_wait_seconds : float
        Base of the exponential wait between attempts.
    clock : callable
        Monotonic clock in seconds; injectable for tests.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        project_key: str,
        *,
        write_method: str = "PUT",
        cooldown_seconds: float = 30.0,
        max_attempts: int = 2,
        retry_wait_seconds: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._http = http_client
        self.base_url = base_url.rstrip("/")
        self.project_key = project_key
        self.write_method = write_method.upper()
        self.cooldown_seconds = cooldown_seconds
        self.max_attempts = max(1, max_attempts)
        self.retry_wait_seconds = retry_wait_seconds
        self._clock = clock
        self._blocked_until: Optional[float] = None

    @classmethod
    def from_settings(
        cls, http_client: httpx.AsyncClient, settings: Optional[Settings] = None
    ) -> "RemoteStoreClient":
        settings = settings or get_settings()
        return cls(
            http_client,
            settings.remote_base_url,
            settings.project_key,
            write_method=settings.remote_write_method,
            cooldown_seconds=settings.rate_limit_cooldown_seconds,
            max_attempts=settings.remote_max_attempts,
        )

    def document_url(self, key: str) -> str:
        return f"{self.base_url}/{self.project_key}_{key}"

    @property
    def is_blocked(self) -> bool:
        return self._blocked_until is not None and self._clock() < self._blocked_until

    def _short_circuit(self, key: str) -> bool:
        """Return True while the cool-down is active; clear it once elapsed."""
        if self._blocked_until is None:
            return False
        if self._clock() < self._blocked_until:
            log.debug("[REMOTE BLOCKED] Skipping call during cool-down", extra={"key": key})
            return True
        self._blocked_until = None
        log.info("[REMOTE COOLDOWN OVER] Resuming remote calls", extra={"key": key})
        return False

    def _enter_cooldown(self, key: str) -> None:
        self._blocked_until = self._clock() + self.cooldown_seconds
        log.warning(
            "[REMOTE RATE LIMITED] Blocking remote calls",
            extra={"key": key, "cooldown_seconds": self.cooldown_seconds},
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_wait_seconds, max=5),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        return await retrying(self._http.request, method, url, **kwargs)

    async def _read(self, key: str) -> Tuple[bool, Any]:
        """
        Fetch a document.

        Returns ``(reachable, data)``; ``data`` is None when the document does
        not exist yet.
        """
        if self._short_circuit(key):
            return False, None
        try:
            response = await self._request(
                "GET",
                self.document_url(key),
                params={"_": str(time.time_ns())},
                headers=_NO_CACHE_HEADERS,
            )
        except httpx.HTTPError as exc:
            log.warning("[REMOTE GET FAILED]", extra={"key": key, "error": str(exc)})
            return False, None

        if response.status_code == 429:
            self._enter_cooldown(key)
            return False, None
        if response.status_code == 404:
            return True, None
        if not response.is_success:
            log.warning(
                "[REMOTE GET FAILED]", extra={"key": key, "status": response.status_code}
            )
            return False, None
        if not response.content.strip():
            return True, None
        try:
            return True, response.json()
        except ValueError:
            log.warning("[REMOTE GET FAILED] Body is not JSON", extra={"key": key})
            return False, None

    async def _write(self, key: str, payload: Any) -> bool:
        if self._short_circuit(key):
            return False
        try:
            response = await self._request(self.write_method, self.document_url(key), json=payload)
        except httpx.HTTPError as exc:
            log.warning("[REMOTE PUT FAILED]", extra={"key": key, "error": str(exc)})
            return False

        if response.status_code == 429:
            self._enter_cooldown(key)
            return False
        if not response.is_success:
            log.warning(
                "[REMOTE PUT FAILED]", extra={"key": key, "status": response.status_code}
            )
            return False
        return True

    async def get(self, key: str) -> Optional[List[Any]]:
        """Return the whole collection stored under ``key`` or None if unreachable."""
        reachable, data = await self._read(key)
        if not reachable:
            return None
        return data if isinstance(data, list) else []

    async def put(self, key: str, collection: List[Any]) -> bool:
        """Replace the collection stored under ``key``."""
        return await self._write(key, collection)

    async def get_document(self, key: str) -> Optional[dict]:
        """Return an object document (``{}`` when absent) or None if unreachable."""
        reachable, data = await self._read(key)
        if not reachable:
            return None
        return data if isinstance(data, dict) else {}

    async def put_document(self, key: str, document: dict) -> bool:
        return await self._write(key, document)


__all__ = ["RemoteStoreClient"]
