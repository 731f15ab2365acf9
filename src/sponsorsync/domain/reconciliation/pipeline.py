"""Run one reconciliation of the sponsor register against the organisation store.

The run moves through freshness check, fetch-or-resume, upload, parse and apply.
Every failure is caught once, here, and turned into a ``Failed`` run record; the
caller only ever sees the resulting status.
"""

from __future__ import annotations

import asyncio
import time
import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from logging import getLogger
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Final
from urllib.parse import unquote, urlsplit

from sponsorsync.domain.model import (
    AddedRecords,
    DeletedRecords,
    Organisation,
    RunRecord,
    RunStatus,
    UpdatedRecords,
    utcnow,
)

from .apply import DEFAULT_BATCH_SIZE, DEFAULT_MAX_WORKERS, BatchApplyScheduler
from .diff import find_deletions, index_by_name, iter_additions
from .errors import SnapshotDecodeError, SnapshotDownloadError
from .parser import parse_snapshot

if TYPE_CHECKING:
    from collections.abc import Callable

    from sponsorsync.domain.ports import (
        OrganisationUnitOfWork,
        RegisterPage,
        RunLogUnitOfWork,
        SnapshotDownloader,
        SnapshotStorage,
    )

log = getLogger(__name__)

SNAPSHOT_KEY_PREFIX: Final[str] = "org-files"


class ReconciliationPhase(StrEnum):
    START = "start"
    FRESHNESS_CHECK = "freshness_check"
    FETCH_SNAPSHOT = "fetch_snapshot"
    UPLOAD_SNAPSHOT = "upload_snapshot"
    PARSE_SNAPSHOT = "parse_snapshot"
    APPLY_CHANGES = "apply_changes"
    FINALIZE = "finalize"


def file_name_from_url(url: str) -> str:
    return unquote(PurePosixPath(urlsplit(url).path).name)


def snapshot_key(file_name: str) -> str:
    return f"{SNAPSHOT_KEY_PREFIX}/{file_name}"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(slots=True)
class RunContext:
    """Mutable state of one invocation, handed from phase to phase."""

    record: RunRecord
    phase: ReconciliationPhase = ReconciliationPhase.START
    last_completed_at: datetime | None = None
    content: bytes | None = None
    recovered: bool = False


@dataclass(slots=True)
class ReconciliationResult:
    status: RunStatus
    record: RunRecord

    @property
    def succeeded(self) -> bool:
        return self.status in {RunStatus.COMPLETED, RunStatus.NO_UPDATE}


@dataclass(slots=True)
class _Changes:
    added: AddedRecords
    updated: UpdatedRecords
    deleted: DeletedRecords


@dataclass(slots=True)
class SnapshotReconciler:
    """Bring the organisation store in line with the latest register snapshot.

    Only one instance may run against a given store at a time: the single
    ``InProgress`` run record is looked up and then created without any locking.
    """

    register_page: RegisterPage
    download_snapshot: SnapshotDownloader
    storage: SnapshotStorage
    bucket: str
    run_log_factory: Callable[[], RunLogUnitOfWork]
    organisation_uow_factory: Callable[[], OrganisationUnitOfWork]
    batch_size: int = DEFAULT_BATCH_SIZE
    max_workers: int = DEFAULT_MAX_WORKERS
    clock: Callable[[], datetime] = field(default=utcnow)

    def __call__(self) -> ReconciliationResult:
        return asyncio.run(self.run())

    async def run(self) -> ReconciliationResult:
        started = time.perf_counter()
        context = RunContext(record=RunRecord.begin(self.clock()))
        try:
            with self.run_log_factory() as run_log:
                failed = await self._run_logged(context, run_log)
            if failed:
                # the failed session may be unusable, so a fresh one writes the record
                with self.run_log_factory() as run_log:
                    self._finalize(context, run_log)
        except Exception as exc:
            self._record_failure(context, exc)

        record = context.record
        log.info(
            "Run %s finished as %s in %.2fs (added=%d updated=%d deleted=%d errors=%d)",
            record.id,
            record.status,
            time.perf_counter() - started,
            record.added_records.count,
            record.updated_records.count,
            record.deleted_records.count,
            len(record.errors),
        )
        return ReconciliationResult(status=record.status, record=record)

    async def _run_logged(self, context: RunContext, run_log: RunLogUnitOfWork) -> bool:
        """Reconcile inside ``run_log``; ``True`` means an exception was recorded instead."""

        try:
            self._load_or_create(context, run_log)
            await self._reconcile(context, run_log)
        except Exception as exc:
            self._record_failure(context, exc)
            return True

        if context.record.status is RunStatus.NO_UPDATE:
            # nothing was attempted, so the record is dropped
            return False
        self._finalize(context, run_log)
        return False

    def _finalize(self, context: RunContext, run_log: RunLogUnitOfWork) -> None:
        context.phase = ReconciliationPhase.FINALIZE
        run_log.repositories.runs.save(context.record)
        run_log.commit()

    def _load_or_create(self, context: RunContext, run_log: RunLogUnitOfWork) -> None:
        runs = run_log.repositories.runs
        latest = runs.latest_completed()
        if latest is not None and latest.finished_at is not None:
            context.last_completed_at = _as_utc(latest.finished_at)

        existing = runs.find_in_progress()
        if existing is not None:
            log.info("Found unfinished run %s for %s", existing.id, existing.file_name)
            context.record = existing
        else:
            runs.add(context.record)

    async def _reconcile(self, context: RunContext, run_log: RunLogUnitOfWork) -> None:
        record = context.record

        context.phase = ReconciliationPhase.FRESHNESS_CHECK
        errors_before = len(record.errors)
        source_updated = await self.register_page.last_updated(record)
        if source_updated is None:
            self._source_unavailable(context, errors_before, "Source last update unavailable.")
            return
        source_updated = _as_utc(source_updated)
        if context.last_completed_at is not None and source_updated <= context.last_completed_at:
            log.info(
                "Register last updated %s, already reconciled at %s",
                source_updated.isoformat(),
                context.last_completed_at.isoformat(),
            )
            record.mark_no_update(self.clock())
            return
        record.source_last_update = source_updated

        context.phase = ReconciliationPhase.FETCH_SNAPSHOT
        errors_before = len(record.errors)
        url = await self.register_page.attachment_url(record)
        if url is None:
            self._source_unavailable(context, errors_before, "Snapshot link unavailable.")
            return
        await self._fetch_or_resume(context, url)

        context.phase = ReconciliationPhase.UPLOAD_SNAPSHOT
        if not context.recovered:
            await self._upload(context)
        self._checkpoint(record, run_log)

        context.phase = ReconciliationPhase.PARSE_SNAPSHOT
        parsed = parse_snapshot(context.content or b"")
        if not parsed.decoded:
            raise SnapshotDecodeError(f"Snapshot {record.file_name} is not readable text.")

        context.phase = ReconciliationPhase.APPLY_CHANGES
        changes = await self._apply(parsed.organisations)
        record.complete(
            self.clock(),
            total=len(parsed.organisations),
            added=changes.added,
            updated=changes.updated,
            deleted=changes.deleted,
        )

    async def _fetch_or_resume(self, context: RunContext, url: str) -> None:
        record = context.record
        file_name = file_name_from_url(url)
        if record.file_name == file_name:
            record.resume(self.clock())
            stored = await self.storage.download(self.bucket, snapshot_key(file_name))
            if stored:
                log.info("Resuming %s from storage", file_name)
                context.content = stored
                context.recovered = True
                return
            log.info("%s missing from storage, downloading again", file_name)
        else:
            record.file_name = file_name

        content = await self.download_snapshot(url)
        if not content:
            raise SnapshotDownloadError(f"File download failed - URL: {url}.")
        log.info("Downloaded %s (%d bytes)", file_name, len(content))
        context.content = content

    async def _upload(self, context: RunContext) -> None:
        file_name = context.record.file_name
        if file_name is None or not context.content:
            raise SnapshotDownloadError("No snapshot content to store.")
        key = snapshot_key(file_name)
        if await self.storage.exists(self.bucket, key):
            log.info("%s already stored, not overwriting", key)
            return
        await self.storage.upload(self.bucket, key, context.content)
        log.info("Stored %s in %s", key, self.bucket)

    def _checkpoint(self, record: RunRecord, run_log: RunLogUnitOfWork) -> None:
        run_log.repositories.runs.save(record)
        run_log.commit()
        log.debug("Checkpointed run %s", record.id)

    async def _apply(self, parsed: list[Organisation]) -> _Changes:
        with self.organisation_uow_factory() as uow:
            repository = uow.repositories.organisations
            persisted = list(repository.stream_all())
            log.info(
                "Diffing %d parsed against %d stored organisations", len(parsed), len(persisted)
            )

            deleted = DeletedRecords()
            for organisation in find_deletions(parsed, persisted):
                repository.defer_delete(organisation)
                deleted.record(organisation.name)

            updated = UpdatedRecords()
            scheduler = BatchApplyScheduler(
                write_batch=repository.bulk_insert,
                batch_size=self.batch_size,
                max_workers=self.max_workers,
            )
            added = await scheduler.drain(iter_additions(parsed, index_by_name(persisted), updated))
            uow.commit()
        return _Changes(added=added, updated=updated, deleted=deleted)

    def _source_unavailable(self, context: RunContext, errors_before: int, message: str) -> None:
        record = context.record
        if len(record.errors) == errors_before:
            record.record_error(message, origin=context.phase.value)
        log.warning("%s: %s", context.phase, record.errors[-1].message)
        record.fail(self.clock())

    def _record_failure(self, context: RunContext, exc: Exception) -> None:
        log.exception("Reconciliation failed during %s", context.phase)
        context.record.record_error(
            str(exc) or type(exc).__name__,
            origin=context.phase.value,
            trace=traceback.format_exc(),
        )
        context.record.fail(self.clock())


__all__ = [
    "SNAPSHOT_KEY_PREFIX",
    "ReconciliationPhase",
    "ReconciliationResult",
    "RunContext",
    "SnapshotReconciler",
    "file_name_from_url",
    "snapshot_key",
]
