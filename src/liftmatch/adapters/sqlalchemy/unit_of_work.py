"""SQLAlchemy-backed unit of work for per-row resolution."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from liftmatch.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from liftmatch.adapters.sqlalchemy.repositories import (
    SqlAlchemyLifterRepository,
    SqlAlchemyMeetResultRepository,
)
from liftmatch.config.storage import get_database_config
from liftmatch.domain.ports.persistence import StoreError
from liftmatch.domain.ports.unit_of_work import ResolutionRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """The store was used before :func:`startup`, or a unit of work outside its block."""


@dataclass(slots=True)
class _StoreState:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None

    def bind(self, engine: Engine | None) -> None:
        self.engine = engine
        self.sessions = (
            sessionmaker(bind=engine, expire_on_commit=False) if engine is not None else None
        )

    def session_factory(self) -> sessionmaker[Session]:
        if self.sessions is None:
            raise StartupError(
                "Lifter store not started. Call "
                "liftmatch.adapters.sqlalchemy.unit_of_work.startup() first."
            )
        return self.sessions


_STATE = _StoreState()


def _enforce_sqlite_foreign_keys(engine: Engine) -> None:
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:  # noqa: ANN001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the store to ``engine`` (or a new one for the configured URI) and create the schema."""

    if _STATE.engine is not None and not force:
        raise StartupError("Lifter store already started. Pass force=True to rebind it.")

    if engine is None:
        engine = create_engine(database_uri or get_database_config().uri, future=True)
        _enforce_sqlite_foreign_keys(engine)
    start_mappers()
    create_all_tables(engine)
    _STATE.bind(engine)
    log.debug("Lifter store bound to %s", engine.url.render_as_string(hide_password=True))


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.bind(None)


class SqlAlchemyUnitOfWork:
    """Session-per-row unit of work over the lifter and meet-result tables."""

    def __init__(self) -> None:
        self._sessions = _STATE.session_factory()
        self._session: Session | None = None
        self._repositories: ResolutionRepositories | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = self._sessions()
        self._repositories = ResolutionRepositories(
            lifters=SqlAlchemyLifterRepository(self._session),
            results=SqlAlchemyMeetResultRepository(self._session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        if exc_type is not None:
            session.rollback()
        session.close()
        self._session = None
        self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is closed")
        return self._session

    @property
    def repositories(self) -> ResolutionRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open; use it in a with block")
        return self._repositories

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"Commit failed: {exc}") from exc

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from liftmatch.domain.ports.unit_of_work import ResolutionUnitOfWork

    _uow_check: ResolutionUnitOfWork = SqlAlchemyUnitOfWork()
