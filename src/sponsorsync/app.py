"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from sponsorsync.adapters.register_page import GovUkRegisterPage, HttpSnapshotDownloader
from sponsorsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyOrganisationUnitOfWork,
    SqlAlchemyRunLogUnitOfWork,
    is_started,
    startup,
)
from sponsorsync.adapters.storage import build_snapshot_storage
from sponsorsync.config import get_register_config, get_storage_config, get_sync_config
from sponsorsync.domain.ports.unit_of_work import OrganisationUnitOfWork, RunLogUnitOfWork
from sponsorsync.domain.reconciliation import ReconciliationResult, SnapshotReconciler

if TYPE_CHECKING:
    from sponsorsync.domain.model import RunRecord
    from sponsorsync.domain.ports import RegisterPage, SnapshotDownloader, SnapshotStorage

RunLogFactory = Callable[[], RunLogUnitOfWork]
OrganisationUnitOfWorkFactory = Callable[[], OrganisationUnitOfWork]

log = getLogger(__name__)


def _ensure_started() -> None:
    if not is_started():
        startup()


def reconcile_register(
    *,
    register_page: RegisterPage | None = None,
    downloader: SnapshotDownloader | None = None,
    storage: SnapshotStorage | None = None,
    bucket: str | None = None,
    run_log_factory: RunLogFactory | None = None,
    organisation_uow_factory: OrganisationUnitOfWorkFactory | None = None,
    batch_size: int | None = None,
    max_workers: int | None = None,
) -> ReconciliationResult:
    """Reconcile the published register into the store using the configured adapters."""

    sync = get_sync_config(batch_size=batch_size, max_workers=max_workers)
    if register_page is None or downloader is None:
        register = get_register_config()
        register_page = register_page or GovUkRegisterPage(
            page_url=register.page_url,
            resilience=register.page_resilience,
        )
        downloader = downloader or HttpSnapshotDownloader(resilience=register.download_resilience)
    if storage is None or bucket is None:
        storage_config = get_storage_config()
        storage = storage or build_snapshot_storage(storage_config)
        bucket = bucket or storage_config.bucket

    if run_log_factory is None or organisation_uow_factory is None:
        _ensure_started()

    log.info(
        "Starting register reconciliation: batch_size=%s, max_workers=%s, bucket=%s",
        sync.batch_size,
        sync.max_workers,
        bucket,
    )
    reconciler = SnapshotReconciler(
        register_page=register_page,
        download_snapshot=downloader,
        storage=storage,
        bucket=bucket,
        run_log_factory=run_log_factory or SqlAlchemyRunLogUnitOfWork,
        organisation_uow_factory=organisation_uow_factory or SqlAlchemyOrganisationUnitOfWork,
        batch_size=sync.batch_size,
        max_workers=sync.max_workers,
    )
    return reconciler()


def recent_runs(
    *,
    limit: int = 10,
    run_log_factory: RunLogFactory | None = None,
) -> list[RunRecord]:
    """Return the most recently started run records, newest first."""

    if run_log_factory is None:
        _ensure_started()
    with (run_log_factory or SqlAlchemyRunLogUnitOfWork)() as run_log:
        return run_log.repositories.runs.recent(limit)
