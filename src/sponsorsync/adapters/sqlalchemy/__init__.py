"""SQLAlchemy adapter package for sponsorsync."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import SqlAlchemyOrganisationRepository, SqlAlchemyRunRecordRepository
from .unit_of_work import (
    SqlAlchemyOrganisationUnitOfWork,
    SqlAlchemyRunLogUnitOfWork,
    StartupError,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyOrganisationRepository",
    "SqlAlchemyOrganisationUnitOfWork",
    "SqlAlchemyRunLogUnitOfWork",
    "SqlAlchemyRunRecordRepository",
    "StartupError",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "startup",
]
