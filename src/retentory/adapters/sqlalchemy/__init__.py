"""SQLAlchemy adapter package for Retentory."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyAuditEventRepository,
    SqlAlchemyScheduleRepository,
    SqlAlchemySeriesRepository,
)
from .unit_of_work import (
    SqlAlchemyRecordsUnitOfWork,
    StartupError,
    configured_engine,
    enforce_sqlite_foreign_keys,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAuditEventRepository",
    "SqlAlchemyRecordsUnitOfWork",
    "SqlAlchemyScheduleRepository",
    "SqlAlchemySeriesRepository",
    "StartupError",
    "configured_engine",
    "enforce_sqlite_foreign_keys",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
