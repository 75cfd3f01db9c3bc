"""Engine lifecycle and the SQLAlchemy unit of work for diff batches.

``startup`` binds the module to one engine, maps the domain classes and
migrates the schema. Units of work and lock managers created afterwards share
its session factory until ``shutdown``.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from patchbatch.adapters.sqlalchemy.mappings import start_mappers
from patchbatch.adapters.sqlalchemy.migrations import upgrade_head
from patchbatch.adapters.sqlalchemy.repositories import (
    SqlAlchemyBatchRepository,
    SqlAlchemyDiffRecordRepository,
)
from patchbatch.config import get_database_uri
from patchbatch.domain.ports.unit_of_work import DiffRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the diff store is used before ``startup`` or started twice."""


@dataclass(slots=True)
class _EngineState:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None

    def bind(self, engine: Engine | None) -> None:
        self.engine = engine
        self.sessions = (
            None if engine is None else sessionmaker(bind=engine, expire_on_commit=False)
        )

    def require_sessions(self) -> sessionmaker[Session]:
        if self.sessions is None:
            raise StartupError(
                "Diff store not started. Call "
                "patchbatch.adapters.sqlalchemy.unit_of_work.startup() first."
            )
        return self.sessions


_STATE = _EngineState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Bind the diff store to ``engine`` (or a new engine for ``database_uri``)."""

    if _STATE.engine is not None and not force:
        raise StartupError("Diff store already started. Pass force=True to rebind it.")

    if engine is None:
        engine = create_engine(database_uri or get_database_uri(), future=True)
    start_mappers()
    upgrade_head(engine=engine)
    _STATE.bind(engine)
    log.info("Diff store bound to %s", engine.url.render_as_string(hide_password=True))
    return engine


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def session_factory() -> sessionmaker[Session]:
    """Session factory of the bound engine, for collaborators that run their own sessions."""

    return _STATE.require_sessions()


def shutdown() -> None:
    """Dispose the bound engine and forget it."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.bind(None)


class SqlAlchemyDiffUnitOfWork:
    """One session per ``with`` block over the batch and diff repositories.

    Leaving the block with an exception rolls back; anything not committed
    explicitly is discarded when the session closes.
    """

    def __init__(self, sessions: sessionmaker[Session] | None = None) -> None:
        self._sessions = sessions or _STATE.require_sessions()
        self._session: Session | None = None
        self._repositories: DiffRepositories | None = None

    def __enter__(self) -> SqlAlchemyDiffUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = self._sessions()
        self._repositories = DiffRepositories(
            batches=SqlAlchemyBatchRepository(self._session),
            diffs=SqlAlchemyDiffRecordRepository(self._session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> DiffRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from patchbatch.domain.ports.unit_of_work import DiffUnitOfWork

    _uow_check: DiffUnitOfWork = SqlAlchemyDiffUnitOfWork()
