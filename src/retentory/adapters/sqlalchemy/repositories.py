"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from retentory.adapters.sqlalchemy.mappings import (
    audit_event_table,
    schedule_table,
    series_item_table,
)
from retentory.domain.model import AuditEvent, Schedule, SeriesItem

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.orm import Session

    from retentory.domain.model import EntityKind


class SqlAlchemyScheduleRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Schedule) -> None:
        self.session.add(entity)

    def get(self, identity: uuid.UUID) -> Schedule | None:
        return self.session.get(Schedule, identity)

    def get_by_application_number(self, application_number: str) -> Schedule | None:
        stmt = select(Schedule).where(schedule_table.c.application_number == application_number)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_all(self) -> list[Schedule]:
        stmt = select(Schedule).order_by(schedule_table.c.application_number, schedule_table.c.id)
        return list(self.session.execute(stmt).scalars())

    def delete(self, schedule: Schedule) -> None:
        self.session.delete(schedule)


class SqlAlchemySeriesRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: SeriesItem) -> None:
        self._prepare_item(entity)
        self.session.add(entity)

    def get(self, identity: uuid.UUID) -> SeriesItem | None:
        return self.session.get(SeriesItem, identity)

    def get_by_key(self, schedule_id: uuid.UUID, item_number: str) -> SeriesItem | None:
        stmt = (
            select(SeriesItem)
            .where(series_item_table.c.schedule_id == schedule_id)
            .where(series_item_table.c.item_number == item_number)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_schedule(self, schedule_id: uuid.UUID) -> list[SeriesItem]:
        stmt = select(SeriesItem).where(series_item_table.c.schedule_id == schedule_id)
        return list(self.session.execute(stmt).scalars())

    def list_all(self) -> list[SeriesItem]:
        stmt = select(SeriesItem).order_by(
            series_item_table.c.schedule_id, series_item_table.c.item_number
        )
        return list(self.session.execute(stmt).scalars())

    def delete(self, item: SeriesItem) -> None:
        self.session.delete(item)
        # series rows must be gone before their schedule row is deleted
        self.session.flush()

    def _prepare_item(self, item: SeriesItem) -> None:
        item.sync_derived()


class SqlAlchemyAuditEventRepository:
    """Append-only: no update or delete is exposed."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: AuditEvent) -> None:
        self.session.add(entity)

    def for_entity(self, entity: EntityKind, entity_id: uuid.UUID) -> list[AuditEvent]:
        stmt = (
            select(AuditEvent)
            .where(audit_event_table.c.entity == entity)
            .where(audit_event_table.c.entity_id == entity_id)
            .order_by(audit_event_table.c.at, audit_event_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def list_all(self) -> list[AuditEvent]:
        stmt = select(AuditEvent).order_by(
            audit_event_table.c.entity,
            audit_event_table.c.entity_id,
            audit_event_table.c.at,
        )
        return list(self.session.execute(stmt).scalars())
