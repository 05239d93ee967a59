"""Ports for persisting schedules, series items and their audit trail."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from retentory.domain.model import AuditEvent, Schedule, SeriesItem

if TYPE_CHECKING:
    from uuid import UUID

    from retentory.domain.model import EntityKind


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class ScheduleRepository(Repository[Schedule], Protocol):
    """Repository contract for retention schedules."""

    def get(self, identity: UUID) -> Schedule | None: ...

    def get_by_application_number(self, application_number: str) -> Schedule | None: ...

    def list_all(self) -> list[Schedule]: ...

    def delete(self, schedule: Schedule) -> None: ...


@runtime_checkable
class SeriesRepository(Repository[SeriesItem], Protocol):
    """Repository contract for series items."""

    def get(self, identity: UUID) -> SeriesItem | None: ...

    def get_by_key(self, schedule_id: UUID, item_number: str) -> SeriesItem | None: ...

    def list_for_schedule(self, schedule_id: UUID) -> list[SeriesItem]: ...

    def list_all(self) -> list[SeriesItem]: ...

    def delete(self, item: SeriesItem) -> None: ...


@runtime_checkable
class AuditEventRepository(Repository[AuditEvent], Protocol):
    """Append-only audit trail: events can be added and read, never changed."""

    def for_entity(self, entity: EntityKind, entity_id: UUID) -> list[AuditEvent]: ...

    def list_all(self) -> list[AuditEvent]: ...
