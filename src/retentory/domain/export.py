"""Serialize the store into an interchange payload."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from retentory.domain.audit import utc_now
from retentory.domain.interchange import (
    INTERCHANGE_VERSION,
    audit_to_record,
    format_timestamp,
    schedule_to_record,
    series_to_record,
)
from retentory.domain.model import EntityKind

if TYPE_CHECKING:
    from uuid import UUID

    from retentory.domain.audit import Clock
    from retentory.domain.filters import SeriesFilter
    from retentory.domain.store import EntityStore


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Agency:
    name: str
    abbrev: str


class Exporter:
    """Produce version-2 payloads that ``Reconciler.import_payload`` accepts."""

    def __init__(self, store: EntityStore, agency: Agency, clock: Clock = utc_now) -> None:
        self.store = store
        self.agency = agency
        self._clock = clock

    def export(self, series_filter: SeriesFilter | None = None) -> dict[str, Any]:
        """Export everything, or only the series matching ``series_filter``.

        A filtered export carries the matching series, the schedules they
        belong to and the audit history of exactly those entities.
        """

        rows = self.store.series_rows()
        schedules = self.store.list_schedules()
        events = self.store.list_audit_events()

        if series_filter is not None:
            rows = series_filter.apply(rows)
            kept_schedules = {schedule.id for _, schedule in rows}
            schedules = [schedule for schedule in schedules if schedule.id in kept_schedules]
            subjects: set[tuple[EntityKind, UUID]] = {
                (EntityKind.SERIES, item.id) for item, _ in rows
            } | {(EntityKind.SCHEDULE, identity) for identity in kept_schedules}
            events = [
                event
                for event in events
                if event.entity_id is not None and (event.entity, event.entity_id) in subjects
            ]

        log.info(
            "Exporting %d schedules, %d series items, %d audit events",
            len(schedules),
            len(rows),
            len(events),
        )
        return {
            "exported_at": format_timestamp(self._clock()),
            "version": INTERCHANGE_VERSION,
            "agency": {"name": self.agency.name, "abbrev": self.agency.abbrev},
            "schedules": [schedule_to_record(schedule) for schedule in schedules],
            "series_items": [
                series_to_record(item, application_number=schedule.application_number)
                for item, schedule in rows
            ],
            "audit_events": [audit_to_record(event) for event in events],
        }
