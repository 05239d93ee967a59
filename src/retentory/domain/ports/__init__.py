"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    AuditEventRepository,
    Repository,
    ScheduleRepository,
    SeriesRepository,
)
from .unit_of_work import (
    RecordRepositories,
    RecordsUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AuditEventRepository",
    "RecordRepositories",
    "RecordsUnitOfWork",
    "Repository",
    "RepositoryCollection",
    "ScheduleRepository",
    "SeriesRepository",
    "UnitOfWork",
]
