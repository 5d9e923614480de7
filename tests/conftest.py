from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from liftmatch.adapters.sqlalchemy import create_all_tables, start_mappers
from liftmatch.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup
from liftmatch.config import DivisionCatalog, ResolutionConfig

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def resolution_config() -> ResolutionConfig:
    # No real waiting between tier retries in tests.
    return ResolutionConfig(tier_retry_backoff_seconds=0.0)


@pytest.fixture
def division_catalog() -> DivisionCatalog:
    return DivisionCatalog(
        codes={
            "Open Women's 63kg": 101,
            "(Inactive) Open Women's 63kg": 201,
            "Open Men's 89kg": 102,
            "(Inactive) Open Men's 89kg": 202,
            "Junior Men's 89kg": 103,
        }
    )
