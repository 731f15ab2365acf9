"""Failures raised while reconciling a register snapshot."""

from __future__ import annotations


class ReconciliationError(RuntimeError):
    """Base class for failures that end a run as ``Failed``."""


class SourceUnavailableError(ReconciliationError):
    """The register page did not yield a timestamp or a snapshot link."""


class SnapshotDownloadError(ReconciliationError):
    """The snapshot could not be fetched from its source URL."""


class SnapshotDecodeError(ReconciliationError):
    """The snapshot bytes are not readable text."""


class SnapshotStorageError(ReconciliationError):
    """Durable storage refused an upload, download or existence check."""


class BatchApplyError(ReconciliationError):
    """A worker failed while inserting a batch of organisations."""
