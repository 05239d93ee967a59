"""Entity store: transactional CRUD over schedules and series items.

Every mutation runs in its own unit of work so the data write and its audit
event commit together or not at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import UUID

from retentory.domain.audit import AuditRecorder, utc_now
from retentory.domain.errors import ReferentialError
from retentory.domain.filters import natural_key, sort_series
from retentory.domain.interchange.translator import snapshot
from retentory.domain.model import APPLICATION_NUMBER_PATTERN, EntityKind

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from retentory.domain.audit import Clock
    from retentory.domain.filters import SeriesFilter, SeriesRow
    from retentory.domain.model import AuditEvent, Schedule, SeriesItem
    from retentory.domain.ports import RecordRepositories, RecordsUnitOfWork


log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], RecordsUnitOfWork]


@dataclass(frozen=True, slots=True)
class UpsertResult:
    identity: UUID
    created: bool
    changed: bool


@dataclass(frozen=True, slots=True)
class HistoryAppendResult:
    appended: int
    skipped: int


class EntityStore:
    """Schedules, series items and their audit history behind one facade."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        actor: str,
        clock: Clock = utc_now,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self.recorder = AuditRecorder(actor, clock)

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------

    def upsert_schedule(self, schedule: Schedule) -> UpsertResult:
        """Create or update ``schedule``.

        An existing schedule holding the same ``application_number`` wins over
        the identity carried by ``schedule``.
        """

        with self._unit_of_work_factory() as uow:
            repositories = uow.repositories
            target = self._match_schedule(repositories, schedule)
            now = self.recorder.now()

            if target is None:
                schedule.created_at = schedule.created_at or now
                schedule.updated_at = now
                repositories.schedules.add(schedule)
                repositories.audit_events.add(
                    self.recorder.created(EntityKind.SCHEDULE, schedule.id, snapshot(schedule))
                )
                uow.commit()
                log.debug("Created schedule %s", schedule.id)
                return UpsertResult(identity=schedule.id, created=True, changed=True)

            event = self.recorder.updated(
                EntityKind.SCHEDULE, target.id, snapshot(target), snapshot(schedule)
            )
            if event is None:
                return UpsertResult(identity=target.id, created=False, changed=False)

            target.assign(schedule.business_values())
            target.updated_at = now
            repositories.schedules.add(target)
            repositories.audit_events.add(event)
            uow.commit()
            log.debug("Updated schedule %s", target.id)
            return UpsertResult(identity=target.id, created=False, changed=True)

    def upsert_series(self, item: SeriesItem) -> UpsertResult:
        """Create or update ``item`` matched by (``schedule_id``, ``item_number``).

        Raises ``ReferentialError`` when the referenced schedule does not exist.
        """

        with self._unit_of_work_factory() as uow:
            repositories = uow.repositories
            schedule = repositories.schedules.get(item.schedule_id)
            if schedule is None:
                raise ReferentialError(
                    f"series item {item.item_number!r} references missing schedule "
                    f"{item.schedule_id}"
                )
            item.sync_derived()
            target = repositories.series.get_by_key(
                item.schedule_id, item.item_number
            ) or repositories.series.get(item.id)
            now = self.recorder.now()

            if target is None:
                item.created_at = item.created_at or now
                item.updated_at = now
                repositories.series.add(item)
                repositories.audit_events.add(
                    self.recorder.created(
                        EntityKind.SERIES,
                        item.id,
                        snapshot(item, application_number=schedule.application_number),
                    )
                )
                uow.commit()
                return UpsertResult(identity=item.id, created=True, changed=True)

            before = snapshot(target, application_number=schedule.application_number)
            after = snapshot(item, application_number=schedule.application_number)
            if target.schedule_id != schedule.id:
                previous = repositories.schedules.get(target.schedule_id)
                before["application_number"] = previous.application_number if previous else None
                before["schedule"] = _schedule_label(previous)
                after["schedule"] = _schedule_label(schedule)
            event = self.recorder.updated(EntityKind.SERIES, target.id, before, after)
            if event is None:
                return UpsertResult(identity=target.id, created=False, changed=False)

            target.assign(item.business_values())
            target.updated_at = now
            repositories.series.add(target)
            repositories.audit_events.add(event)
            uow.commit()
            return UpsertResult(identity=target.id, created=False, changed=True)

    def delete(self, kind: EntityKind, identity: UUID) -> tuple[AuditEvent, ...]:
        """Delete one entity; a schedule takes its series items with it."""

        with self._unit_of_work_factory() as uow:
            repositories = uow.repositories
            events: list[AuditEvent] = []
            if kind is EntityKind.SERIES:
                item = repositories.series.get(identity)
                if item is None:
                    raise ReferentialError(f"no series item {identity}")
                schedule = repositories.schedules.get(item.schedule_id)
                events.append(self._delete_series(repositories, item, schedule))
            else:
                schedule = repositories.schedules.get(identity)
                if schedule is None:
                    raise ReferentialError(f"no schedule {identity}")
                for item in repositories.series.list_for_schedule(schedule.id):
                    events.append(self._delete_series(repositories, item, schedule))
                before = snapshot(schedule)
                repositories.schedules.delete(schedule)
                events.append(self.recorder.deleted(EntityKind.SCHEDULE, schedule.id, before))

            for event in events:
                repositories.audit_events.add(event)
            uow.commit()
            log.info("Deleted %s %s (%d audit events)", kind, identity, len(events))
            return tuple(events)

    def append_history(self, events: Iterable[AuditEvent]) -> HistoryAppendResult:
        """Append imported audit events, skipping ones already on record."""

        with self._unit_of_work_factory() as uow:
            repositories = uow.repositories
            seen = {event.fingerprint() for event in repositories.audit_events.list_all()}
            appended = skipped = 0
            for event in events:
                fingerprint = event.fingerprint()
                if fingerprint in seen:
                    skipped += 1
                    continue
                seen.add(fingerprint)
                repositories.audit_events.add(event)
                appended += 1
            uow.commit()
            return HistoryAppendResult(appended=appended, skipped=skipped)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def get_schedule(self, key: UUID | str) -> Schedule | None:
        """Look up a schedule by identity or by application number."""

        with self._unit_of_work_factory() as uow:
            schedules = uow.repositories.schedules
            if isinstance(key, UUID):
                return schedules.get(key)
            if APPLICATION_NUMBER_PATTERN.fullmatch(key):
                return schedules.get_by_application_number(key)
            try:
                identity = UUID(key)
            except ValueError:
                return None
            return schedules.get(identity)

    def list_schedules(self) -> list[Schedule]:
        with self._unit_of_work_factory() as uow:
            schedules = uow.repositories.schedules.list_all()
        return sorted(
            schedules,
            key=lambda schedule: (
                schedule.application_number is None,
                natural_key(schedule.application_number),
                schedule.title or "",
            ),
        )

    def get_series(self, identity: UUID) -> SeriesItem | None:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.series.get(identity)

    def get_series_for_schedule(self, schedule_id: UUID) -> list[SeriesItem]:
        with self._unit_of_work_factory() as uow:
            return sort_series(uow.repositories.series.list_for_schedule(schedule_id))

    def list_series(self) -> list[SeriesItem]:
        return [item for item, _ in self.series_rows()]

    def series_rows(self) -> list[SeriesRow]:
        """Every series item paired with its schedule, in schedule/item order."""

        with self._unit_of_work_factory() as uow:
            schedules = {schedule.id: schedule for schedule in uow.repositories.schedules.list_all()}
            items = uow.repositories.series.list_all()
        rows = [(item, schedules[item.schedule_id]) for item in items]
        rows.sort(
            key=lambda row: (
                row[1].application_number is None,
                natural_key(row[1].application_number),
                str(row[1].id),
                natural_key(row[0].item_number),
            )
        )
        return rows

    def scan_series(self, predicate: Callable[[SeriesItem], bool]) -> list[SeriesItem]:
        return [item for item in self.list_series() if predicate(item)]

    def find_series(self, series_filter: SeriesFilter) -> list[SeriesItem]:
        return [item for item, _ in series_filter.apply(self.series_rows())]

    def history(self, kind: EntityKind, identity: UUID) -> list[AuditEvent]:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.audit_events.for_entity(kind, identity)

    def list_audit_events(self) -> list[AuditEvent]:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.audit_events.list_all()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _match_schedule(repositories: RecordRepositories, schedule: Schedule) -> Schedule | None:
        if schedule.application_number is not None:
            by_key = repositories.schedules.get_by_application_number(schedule.application_number)
            if by_key is not None:
                return by_key
        return repositories.schedules.get(schedule.id)

    def _delete_series(
        self,
        repositories: RecordRepositories,
        item: SeriesItem,
        schedule: Schedule | None,
    ) -> AuditEvent:
        before = snapshot(
            item, application_number=schedule.application_number if schedule else None
        )
        repositories.series.delete(item)
        return self.recorder.deleted(EntityKind.SERIES, item.id, before)


def _schedule_label(schedule: Schedule | None) -> dict[str, str | None] | None:
    # Names the owning schedule in a move without leaking its store identity.
    if schedule is None:
        return None
    return {"application_number": schedule.application_number, "title": schedule.title}
