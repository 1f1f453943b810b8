"""
Optional outbound webhook (e.g. a Google Sheets Apps Script endpoint).

Every record creation is mirrored as a form-encoded POST to an externally
configured URL. Delivery is fire-and-forget: the POST runs as a background
task, failures are logged, and nothing here feeds back into the sync state.

The URL is remembered locally and refreshed from the remote ``config``
document, so configuring it on one device propagates to the others.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Optional, Set

import httpx
from pydantic import ValidationError

from overtime_sync.domain.models import Record, RemoteConfig
from overtime_sync.errors import WebhookConfigError
from overtime_sync.infrastructure.abstract import KeyValueStorage
from overtime_sync.infrastructure.local_cache import WEBHOOK_URL_KEY
from overtime_sync.infrastructure.remote_store import RemoteStoreClient
from overtime_sync.utils.logging import get_logger

log = get_logger(__name__)


def _form_fields(record: Record) -> Dict[str, str]:
    return {key: "" if value is None else str(value) for key, value in record.to_wire().items()}


def _check_url(url: str) -> None:
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise WebhookConfigError(f"Invalid webhook URL: {exc}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise WebhookConfigError(f"Webhook URL must be an absolute http(s) URL: {url!r}")


class WebhookNotifier:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        remote: RemoteStoreClient,
        storage: KeyValueStorage,
        config_key: str = "config",
    ) -> None:
        self._http = http_client
        self._remote = remote
        self._storage = storage
        self._config_key = config_key
        self._url: Optional[str] = storage.get(WEBHOOK_URL_KEY) or None
        self._pending: Set[asyncio.Task] = set()

    @property
    def url(self) -> Optional[str]:
        return self._url

    def _remember(self, url: Optional[str]) -> None:
        self._url = url or None
        if self._url:
            self._storage.set(WEBHOOK_URL_KEY, self._url)
        else:
            self._storage.delete(WEBHOOK_URL_KEY)

    async def refresh_url(self) -> Optional[str]:
        """Pull the URL from the remote config; keep the remembered one if unreachable."""
        document = await self._remote.get_document(self._config_key)
        if document is None:
            return self._url
        try:
            config = RemoteConfig.model_validate(document)
        except ValidationError as exc:
            log.warning("[WEBHOOK CONFIG INVALID]", extra={"errors": exc.error_count()})
            return self._url
        self._remember(config.google_sheet_url)
        return self._url

    async def set_url(self, url: Optional[str]) -> bool:
        """
        Remember ``url`` locally and publish it; returns whether the publish succeeded.

        Raises
        ------
        WebhookConfigError
            If ``url`` is not a usable absolute http(s) URL. Nothing is changed.
        """
        if url:
            _check_url(url)
        self._remember(url)
        config = RemoteConfig(google_sheet_url=self._url)
        return await self._remote.put_document(
            self._config_key, config.model_dump(by_alias=True, exclude_none=True)
        )

    def notify(self, record: Record) -> Optional[asyncio.Task]:
        """Schedule delivery of ``record``; returns the task, or None if no URL is set."""
        if not self._url:
            return None
        task = asyncio.create_task(self._post(self._url, record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _post(self, url: str, record: Record) -> bool:
        try:
            response = await self._http.post(url, data=_form_fields(record))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log.warning("[WEBHOOK FAILED]", extra={"record_id": record.id, "error": str(exc)})
            return False
        if not response.is_success:
            log.warning(
                "[WEBHOOK FAILED]",
                extra={"record_id": record.id, "status": response.status_code},
            )
            return False
        log.debug("[WEBHOOK DELIVERED]", extra={"record_id": record.id})
        return True

    async def drain(self) -> None:
        """Wait for in-flight deliveries (call before closing the HTTP client)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["WebhookNotifier"]
