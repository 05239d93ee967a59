"""SQLAlchemy-backed unit of work for the retention inventory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from retentory.adapters.sqlalchemy.mappings import start_mappers
from retentory.adapters.sqlalchemy.migrations import upgrade_head
from retentory.adapters.sqlalchemy.repositories import (
    SqlAlchemyAuditEventRepository,
    SqlAlchemyScheduleRepository,
    SqlAlchemySeriesRepository,
)
from retentory.config.storage import get_database_uri
from retentory.domain.errors import StoreError
from retentory.domain.ports.unit_of_work import RecordRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine


log = getLogger(__name__)

_SYSTEMIC_ERRORS = (OperationalError, InterfaceError, DisconnectionError)
# raised by the DBAPI while binding a value it cannot represent
_BIND_ERRORS = (OverflowError, ValueError)


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
                "SQLAlchemy adapter not initialised. Call retentory.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    _ = connection_record
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def enforce_sqlite_foreign_keys(engine: Engine) -> None:
    """Make SQLite honour FOREIGN KEY constraints on every pooled connection."""

    if engine.dialect.name != "sqlite":
        return
    if not event.contains(engine, "connect", _enable_foreign_keys):
        event.listen(engine, "connect", _enable_foreign_keys)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, schema, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(database_uri or get_database_uri(), future=True)
    enforce_sqlite_foreign_keys(resolved_engine)
    start_mappers()
    upgrade_head(engine=resolved_engine)
    log.info("Storage ready at %s", resolved_engine.url.render_as_string(hide_password=True))

    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections.

    Database failures leave the block as ``StoreError`` after a rollback.
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
        try:
            if exc_type is not None:
                self.rollback()
        except SQLAlchemyError:
            log.exception("Rollback failed while handling %s", exc_type.__name__)
        finally:
            self.session.close()
            self.session = None
        if isinstance(exc_value, SQLAlchemyError):
            systemic = isinstance(exc_value, _SYSTEMIC_ERRORS)
            cause = getattr(exc_value, "orig", None) or exc_value
            log.error("Storage failure (systemic=%s): %s", systemic, cause)
            raise StoreError(str(cause), systemic=systemic) from exc_value
        if isinstance(exc_value, OverflowError):
            log.error("Storage rejected a value: %s", exc_value)
            raise StoreError(f"value cannot be stored: {exc_value}") from exc_value
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except _BIND_ERRORS as exc:
            log.error("Storage rejected a value: %s", exc)
            raise StoreError(f"value cannot be stored: {exc}") from exc

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


class SqlAlchemyRecordsUnitOfWork(BaseSqlAlchemyUnitOfWork[RecordRepositories]):
    """Unit of work managing SQLAlchemy sessions for schedules, series and history."""

    def _build_repositories(self, session: Session) -> RecordRepositories:
        return RecordRepositories(
            schedules=SqlAlchemyScheduleRepository(session),
            series=SqlAlchemySeriesRepository(session),
            audit_events=SqlAlchemyAuditEventRepository(session),
        )


if TYPE_CHECKING:
    from retentory.domain.ports.unit_of_work import RecordsUnitOfWork

    _uow_check: RecordsUnitOfWork = SqlAlchemyRecordsUnitOfWork()
