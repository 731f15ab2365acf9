"""Domain port definitions for adapters."""

from __future__ import annotations

from .discovery import RegisterPage
from .fetching import SnapshotDownloader
from .persistence import OrganisationRepository, Repository, RunRecordRepository
from .storage import SnapshotStorage
from .unit_of_work import (
    OrganisationRepositories,
    OrganisationUnitOfWork,
    RepositoryCollection,
    RunLogRepositories,
    RunLogUnitOfWork,
    UnitOfWork,
)

__all__ = [
    "OrganisationRepositories",
    "OrganisationRepository",
    "OrganisationUnitOfWork",
    "RegisterPage",
    "Repository",
    "RepositoryCollection",
    "RunLogRepositories",
    "RunLogUnitOfWork",
    "RunRecordRepository",
    "SnapshotDownloader",
    "SnapshotStorage",
    "UnitOfWork",
]
