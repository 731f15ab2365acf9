from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from sponsorsync.adapters.sqlalchemy import start_mappers
from sponsorsync.adapters.sqlalchemy.migrations import upgrade_head
from sponsorsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyOrganisationUnitOfWork,
    SqlAlchemyRunLogUnitOfWork,
    shutdown,
    startup,
)
from tests.support.fakes import FakeStore

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def started_adapter(sqlite_engine: Engine) -> Iterator[Engine]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield sqlite_engine
    finally:
        shutdown()


@pytest.fixture
def organisation_unit_of_work(
    started_adapter: Engine,
) -> Callable[[], SqlAlchemyOrganisationUnitOfWork]:
    _ = started_adapter
    return SqlAlchemyOrganisationUnitOfWork


@pytest.fixture
def run_log_unit_of_work(
    started_adapter: Engine,
) -> Callable[[], SqlAlchemyRunLogUnitOfWork]:
    _ = started_adapter
    return SqlAlchemyRunLogUnitOfWork


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()
