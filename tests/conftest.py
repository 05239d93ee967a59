from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from retentory.adapters.sqlalchemy import (
    SqlAlchemyRecordsUnitOfWork,
    enforce_sqlite_foreign_keys,
    shutdown,
    start_mappers,
    startup,
)
from retentory.adapters.sqlalchemy.migrations import upgrade_head
from retentory.domain.reconciliation import Reconciler
from retentory.domain.store import EntityStore

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


class TickingClock:
    """Deterministic clock that advances one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 5, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def build_sqlite_engine() -> Engine:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    # the listener has to be in place before the first connection is opened
    enforce_sqlite_foreign_keys(engine)
    start_mappers()
    upgrade_head(engine=engine)
    return engine


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = build_sqlite_engine()
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyRecordsUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyRecordsUnitOfWork:
        return SqlAlchemyRecordsUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def store(
    sqlite_unit_of_work: Callable[[], SqlAlchemyRecordsUnitOfWork],
    clock: TickingClock,
) -> EntityStore:
    return EntityStore(sqlite_unit_of_work, actor="tester", clock=clock)


@pytest.fixture
def reconciler(store: EntityStore) -> Reconciler:
    return Reconciler(store)


@pytest.fixture
def fresh_database(
    sqlite_unit_of_work: Callable[[], SqlAlchemyRecordsUnitOfWork],
) -> Iterator[Callable[[], None]]:
    """Point the running adapter (and every store built on it) at an empty database."""

    engines: list[Engine] = []

    def switch() -> None:
        engine = build_sqlite_engine()
        engines.append(engine)
        startup(engine=engine, force=True)

    try:
        yield switch
    finally:
        for engine in engines:
            engine.dispose()
