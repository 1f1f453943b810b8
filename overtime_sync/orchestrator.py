"""
Sync orchestrator: keeps the in-memory collection, the local cache, and the
remote snapshot converging.

Every operation runs the same cycle:

1. fetch the remote snapshot;
2. if that failed, use the in-memory collection as the base, otherwise merge
   the remote snapshot (authoritative) with the in-memory collection;
3. apply the local change, if any, to that base;
4. update the in-memory collection and the local cache;
5. for mutating operations, write the result back to the remote store.

The cycle is not atomic. Nothing locks the remote document between step 1 and
step 5, so two devices (or two overlapping operations on one device) can each
read, change, and write; the last write replaces the other's change to any
record both touched. A failed write in step 5 is not an error: the change is
already cached locally and the next successful write-back carries it.

Usage:
    orchestrator = SyncOrchestrator(remote, cache)
    await orchestrator.sync_now()
    orchestrator.start_polling()
    result = await orchestrator.create_record(draft, owner=user)
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple, Union

from pydantic import ValidationError

from overtime_sync.access import can_change_status, can_delete
from overtime_sync.backup import parse_import
from overtime_sync.config import Settings, get_settings
from overtime_sync.domain.models import (
    Record,
    RecordDraft,
    Status,
    User,
    dump_records,
    parse_records,
)
from overtime_sync.errors import PermissionDeniedError, RecordNotFoundError
from overtime_sync.infrastructure.local_cache import LocalCache
from overtime_sync.infrastructure.remote_store import RemoteStoreClient
from overtime_sync.merge import merge, sort_records
from overtime_sync.utils.logging import get_logger
from overtime_sync.utils.timeutils import calculate_duration
from overtime_sync.utils.timing import timed_block
from overtime_sync.webhook import WebhookNotifier

log = get_logger(__name__)

OFFLINE_WARNING = "Saved locally; it will sync when the server is reachable again."

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _epoch_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class CycleResult:
    """
    Outcome of one sync cycle.

    ``remote_written`` is None for read-only cycles. ``warning`` is set when a
    change was kept locally but could not be published.
    """

    label: str
    records: List[Record]
    remote_fetched: bool
    remote_written: Optional[bool] = None
    warning: Optional[str] = None
    record: Optional[Record] = None
    imported: int = 0
    duration_seconds: float = field(default=0.0)

    @property
    def synced(self) -> bool:
        return self.remote_fetched and self.remote_written is not False


Transform = Callable[[List[Record]], List[Record]]


class SyncOrchestrator:
    """
    Parameters
    ----------
    remote : RemoteStoreClient
        Access to the shared blob store.
    cache : LocalCache[Record]
        Per-device snapshot; seeds the in-memory collection on construction.
    records_key : str
        Remote document holding the records.
    interval_seconds : float
        Background refresh period.
    webhook : WebhookNotifier | None
        Mirrors new records to an external URL when configured.
    now_ms : callable
        Epoch-milliseconds clock used for ``created_at``.
    """

    def __init__(
        self,
        remote: RemoteStoreClient,
        cache: LocalCache[Record],
        *,
        records_key: str = "recs",
        interval_seconds: float = 15.0,
        webhook: Optional[WebhookNotifier] = None,
        now_ms: Callable[[], int] = _epoch_ms,
    ) -> None:
        self.remote = remote
        self.cache = cache
        self.records_key = records_key
        self.interval_seconds = interval_seconds
        self.webhook = webhook
        self._now_ms = now_ms

        self.records: List[Record] = sort_records(cache.load())
        self.last_synced_at: Optional[datetime] = None
        self.is_syncing = False
        self._poll_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(
        cls,
        remote: RemoteStoreClient,
        cache: LocalCache[Record],
        settings: Optional[Settings] = None,
        webhook: Optional[WebhookNotifier] = None,
    ) -> "SyncOrchestrator":
        settings = settings or get_settings()
        return cls(
            remote,
            cache,
            records_key=settings.records_key,
            interval_seconds=settings.sync_interval_seconds,
            webhook=webhook,
        )

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def _fetch_remote(self) -> Tuple[Optional[List[Record]], bool]:
        """
        Return the parsed remote snapshot and whether it may be overwritten.

        An unreachable store yields ``(None, True)``. A reachable store holding
        records that fail validation yields ``(None, False)``: the document is
        kept as it is until someone repairs it.
        """
        raw = await self.remote.get(self.records_key)
        if raw is None:
            return None, True
        try:
            return parse_records(raw), True
        except ValidationError as exc:
            log.error(
                "[REMOTE SNAPSHOT INVALID] Remote records ignored and left untouched",
                extra={"errors": exc.error_count()},
            )
            return None, False

    def _mark_synced(self) -> None:
        self.last_synced_at = datetime.now(timezone.utc)

    async def _run_cycle(
        self,
        label: str,
        transform: Optional[Transform] = None,
        *,
        write_back: bool,
        silent: bool = False,
    ) -> CycleResult:
        # The flag only drives the visible indicator; overlapping cycles still run.
        owns_indicator = not silent and not self.is_syncing
        if owns_indicator:
            self.is_syncing = True
        log.debug(f"[SYNC START] {label}", extra={"cycle": label, "silent": silent})
        try:
            with timed_block(label) as stats:
                remote, writable = await self._fetch_remote()
                base = list(self.records) if remote is None else merge(remote, self.records)
                updated = sort_records(transform(base)) if transform else base

                self.records = updated
                self.cache.save(updated)
                if remote is not None:
                    self._mark_synced()

                written: Optional[bool] = None
                if write_back and not writable:
                    written = False
                    log.error(
                        f"[SYNC SKIPPED] {label}: remote snapshot invalid, write-back withheld",
                        extra={"cycle": label},
                    )
                elif write_back:
                    written = await self.remote.put(self.records_key, dump_records(updated))
                    if written:
                        self._mark_synced()
        finally:
            if owns_indicator:
                self.is_syncing = False

        result = CycleResult(
            label=label,
            records=updated,
            remote_fetched=remote is not None,
            remote_written=written,
            duration_seconds=stats.duration_seconds,
        )
        if written is False:
            result.warning = OFFLINE_WARNING
            log.warning(
                f"[SYNC DEFERRED] {label}",
                extra={"cycle": label, "records": len(updated)},
            )
        log.log(
            logging.DEBUG if silent else logging.INFO,
            f"[SYNC COMPLETE] {label}",
            extra={
                "cycle": label,
                "records": len(updated),
                "remote_fetched": result.remote_fetched,
                "remote_written": written,
                "duration_ms": stats.duration_ms,
            },
        )
        return result

    # ------------------------------------------------------------------
    # Read cycles
    # ------------------------------------------------------------------

    async def refresh(self, silent: bool = False) -> CycleResult:
        """Pull remote changes into memory and the cache without writing back."""
        return await self._run_cycle("refresh", write_back=False, silent=silent)

    async def sync_now(self) -> CycleResult:
        """Foreground sync: pull, merge, and push local-only records back."""
        return await self._run_cycle("sync", write_back=True)

    # ------------------------------------------------------------------
    # Mutating cycles
    # ------------------------------------------------------------------

    def _new_id(self, created_at: int) -> str:
        suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(5))
        return f"rec_{created_at}_{suffix}"

    def build_record(self, draft: RecordDraft, owner: User) -> Record:
        created_at = self._now_ms()
        return Record(
            id=self._new_id(created_at),
            created_at=created_at,
            status=Status.PENDING,
            owner_username=owner.username,
            duration_minutes=calculate_duration(
                draft.start_date, draft.start_time, draft.end_date, draft.end_time
            ),
            **draft.model_dump(),
        )

    async def create_record(self, draft: RecordDraft, owner: User) -> CycleResult:
        """Submit a new pending record owned by ``owner``."""
        record = self.build_record(draft, owner)
        result = await self._run_cycle(
            "create", lambda base: merge(base, [record]), write_back=True
        )
        result.record = record
        if self.webhook is not None:
            self.webhook.notify(record)
        return result

    @staticmethod
    def _find(base: List[Record], record_id: str) -> Record:
        for record in base:
            if record.id == record_id:
                return record
        raise RecordNotFoundError(record_id)

    async def update_status(
        self, record_id: str, status: Status, actor: Optional[User] = None
    ) -> CycleResult:
        """
        Set the status of one record.

        The change is applied to the freshly fetched base, not to the possibly
        stale in-memory copy, to keep the lost-update window short.
        """
        updated: List[Record] = []

        def transform(base: List[Record]) -> List[Record]:
            target = self._find(base, record_id)
            if actor is not None and not can_change_status(actor, target):
                raise PermissionDeniedError(
                    f"{actor.username} may not change the status of '{record_id}'"
                )
            changed = target.with_status(status)
            updated.append(changed)
            return [changed if record.id == record_id else record for record in base]

        result = await self._run_cycle("update_status", transform, write_back=True)
        result.record = updated[0]
        return result

    async def delete_record(self, record_id: str, actor: Optional[User] = None) -> CycleResult:
        """Remove one record from the shared collection."""
        removed: List[Record] = []

        def transform(base: List[Record]) -> List[Record]:
            target = self._find(base, record_id)
            if actor is not None and not can_delete(actor, target):
                raise PermissionDeniedError(f"{actor.username} may not delete '{record_id}'")
            removed.append(target)
            return [record for record in base if record.id != record_id]

        result = await self._run_cycle("delete", transform, write_back=True)
        result.record = removed[0]
        return result

    async def import_records(self, payload: Union[str, List[Record]]) -> CycleResult:
        """
        Merge a backup into the collection.

        The current state is authoritative here: a stale backup only adds ids
        that are missing and never overwrites newer data.

        Raises
        ------
        ImportValidationError
            If ``payload`` is text that does not parse; nothing is applied.
        """
        imported = parse_import(payload) if isinstance(payload, str) else list(payload)
        counts: List[int] = []

        def transform(base: List[Record]) -> List[Record]:
            merged = merge(base, imported)
            counts.append(len(merged) - len(base))
            return merged

        result = await self._run_cycle("import", transform, write_back=True)
        result.imported = counts[0]
        return result

    # ------------------------------------------------------------------
    # Background polling
    # ------------------------------------------------------------------

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.refresh(silent=True)
            except Exception:  # noqa: BLE001 - the poller must outlive a failed cycle
                log.exception("[POLL FAILED]")

    def start_polling(self) -> None:
        """Start the background refresh task (idempotent)."""
        if self.is_polling:
            return
        self._poll_task = asyncio.create_task(self._poll_loop())
        log.info("[POLL START]", extra={"interval_seconds": self.interval_seconds})

    async def stop_polling(self) -> None:
        """Cancel the background task and wait until it has stopped."""
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.info("[POLL STOP]")


__all__ = ["CycleResult", "OFFLINE_WARNING", "SyncOrchestrator"]
