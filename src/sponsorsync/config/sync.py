"""Reconciliation tuning knobs."""

from __future__ import annotations

from dataclasses import dataclass

from .env import positive_int_env_var, require_positive

DEFAULT_BATCH_SIZE = 5000
DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True, slots=True)
class SyncConfig:
    batch_size: int = DEFAULT_BATCH_SIZE
    max_workers: int = DEFAULT_MAX_WORKERS

    def __post_init__(self) -> None:
        require_positive("batch_size", self.batch_size)
        require_positive("max_workers", self.max_workers)


def get_sync_config(
    *,
    batch_size: int | None = None,
    max_workers: int | None = None,
) -> SyncConfig:
    """Build the sync config; explicit arguments win over environment values."""

    return SyncConfig(
        batch_size=batch_size
        if batch_size is not None
        else positive_int_env_var("SPONSORSYNC_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        max_workers=max_workers
        if max_workers is not None
        else positive_int_env_var("SPONSORSYNC_MAX_WORKERS", DEFAULT_MAX_WORKERS),
    )
