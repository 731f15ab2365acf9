"""Snapshot reconciliation: parse, diff, apply and the run that ties them together."""

from __future__ import annotations

from .apply import BatchApplyScheduler, BatchWriter
from .diff import (
    SnapshotDiff,
    apply_update,
    diff_snapshot,
    find_deletions,
    index_by_name,
    iter_additions,
    needs_update,
)
from .errors import (
    BatchApplyError,
    ReconciliationError,
    SnapshotDecodeError,
    SnapshotDownloadError,
    SnapshotStorageError,
    SourceUnavailableError,
)
from .parser import SnapshotParseResult, parse_snapshot
from .pipeline import (
    ReconciliationPhase,
    ReconciliationResult,
    SnapshotReconciler,
    file_name_from_url,
    snapshot_key,
)

__all__ = [
    "BatchApplyError",
    "BatchApplyScheduler",
    "BatchWriter",
    "ReconciliationError",
    "ReconciliationPhase",
    "ReconciliationResult",
    "SnapshotDecodeError",
    "SnapshotDiff",
    "SnapshotDownloadError",
    "SnapshotParseResult",
    "SnapshotReconciler",
    "SnapshotStorageError",
    "SourceUnavailableError",
    "apply_update",
    "diff_snapshot",
    "file_name_from_url",
    "find_deletions",
    "index_by_name",
    "iter_additions",
    "needs_update",
    "parse_snapshot",
    "snapshot_key",
]
