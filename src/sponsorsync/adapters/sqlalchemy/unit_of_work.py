"""SQLAlchemy-backed units of work for organisations and the run log."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from sponsorsync.adapters.sqlalchemy.mappings import start_mappers
from sponsorsync.adapters.sqlalchemy.migrations import upgrade_head
from sponsorsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyOrganisationRepository,
    SqlAlchemyRunRecordRepository,
)
from sponsorsync.config import get_database_config
from sponsorsync.domain.ports.unit_of_work import (
    OrganisationRepositories,
    RepositoryCollection,
    RunLogRepositories,
)

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call sponsorsync.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the engine, bring the schema to head and map the domain classes."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri,
        future=True,
    )
    start_mappers()
    upgrade_head(engine=resolved_engine)
    log.debug("SQLAlchemy adapter started on %s", resolved_engine.url)

    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Session-per-block unit of work.

    Nothing is written unless ``commit`` is called; leaving the block closes the
    session and discards whatever was not committed.
    """

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            # a failed flush leaves the session unusable until it is rolled back
            self.session.rollback()
            raise

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyOrganisationUnitOfWork(BaseSqlAlchemyUnitOfWork[OrganisationRepositories]):
    def _build_repositories(self, session: Session) -> OrganisationRepositories:
        return OrganisationRepositories(organisations=SqlAlchemyOrganisationRepository(session))


class SqlAlchemyRunLogUnitOfWork(BaseSqlAlchemyUnitOfWork[RunLogRepositories]):
    def _build_repositories(self, session: Session) -> RunLogRepositories:
        return RunLogRepositories(runs=SqlAlchemyRunRecordRepository(session))


if TYPE_CHECKING:
    from sponsorsync.domain.ports.unit_of_work import OrganisationUnitOfWork, RunLogUnitOfWork

    _uow_org_check: OrganisationUnitOfWork = SqlAlchemyOrganisationUnitOfWork()
    _uow_run_check: RunLogUnitOfWork = SqlAlchemyRunLogUnitOfWork()
