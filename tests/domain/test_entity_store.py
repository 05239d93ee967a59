from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

import pytest
from sqlalchemy.exc import OperationalError

from retentory.adapters.sqlalchemy.repositories import SqlAlchemyAuditEventRepository
from retentory.domain.errors import ReferentialError, StoreError
from retentory.domain.filters import SeriesFilter
from retentory.domain.interchange import schedule_from_record, series_from_record, snapshot
from retentory.domain.model import AuditAction, AuditEvent, EntityKind, new_id
from tests.helpers.records import make_schedule_record, make_series_record

if TYPE_CHECKING:
    from retentory.domain.model import Schedule, SeriesItem
    from retentory.domain.store import EntityStore


def _schedule(application_number: str | None = "25-012", **overrides: Any) -> Schedule:
    return schedule_from_record(
        make_schedule_record(application_number, **overrides), identity=new_id()
    )


def _series(schedule_id: UUID, item_number: str = "1", **overrides: Any) -> SeriesItem:
    return series_from_record(
        make_series_record(item_number, **overrides), identity=new_id(), schedule_id=schedule_id
    )


def _permanent_retention() -> dict[str, Any]:
    return {
        "trigger": "creation",
        "stages": [{"where": "office", "years": 5}],
        "final_disposition": "permanent",
    }


def test_create_schedule_records_create_event(store: EntityStore) -> None:
    schedule = _schedule()

    result = store.upsert_schedule(schedule)

    assert result.created is True
    assert result.identity == schedule.id
    stored = store.get_schedule(schedule.id)
    assert stored is not None
    assert stored.created_at is not None
    assert stored.created_at == stored.updated_at
    (event,) = store.history(EntityKind.SCHEDULE, schedule.id)
    assert event.action is AuditAction.CREATE
    assert event.actor == "tester"
    assert event.payload == {"after": snapshot(schedule)}


def test_identical_upsert_is_a_no_op(store: EntityStore) -> None:
    first = store.upsert_schedule(_schedule())

    result = store.upsert_schedule(_schedule())

    assert result.identity == first.identity
    assert result.created is False
    assert result.changed is False
    assert len(store.list_audit_events()) == 1


def test_update_records_only_changed_fields(store: EntityStore) -> None:
    first = store.upsert_schedule(_schedule())
    before = store.get_schedule(first.identity)
    assert before is not None

    result = store.upsert_schedule(_schedule(title="Administrative Records (revised)"))

    assert result.changed is True
    after = store.get_schedule(first.identity)
    assert after is not None
    assert after.title == "Administrative Records (revised)"
    assert after.created_at == before.created_at
    assert after.updated_at is not None
    assert before.updated_at is not None
    assert after.updated_at > before.updated_at

    events = store.history(EntityKind.SCHEDULE, first.identity)
    assert [event.action for event in events] == [AuditAction.CREATE, AuditAction.UPDATE]
    assert events[1].payload == {
        "before": {"title": "General Administrative Records"},
        "after": {"title": "Administrative Records (revised)"},
        "changed": ["title"],
    }


def test_application_number_wins_over_incoming_identity(store: EntityStore) -> None:
    first = store.upsert_schedule(_schedule())
    stranger = _schedule(notes="Same key, different identity")

    result = store.upsert_schedule(stranger)

    assert result.identity == first.identity
    assert stranger.id != first.identity
    assert [schedule.id for schedule in store.list_schedules()] == [first.identity]


def test_series_requires_existing_schedule(store: EntityStore) -> None:
    with pytest.raises(ReferentialError):
        store.upsert_series(_series(new_id()))

    assert store.list_series() == []
    assert store.list_audit_events() == []


def test_series_matches_on_schedule_and_item_number(store: EntityStore) -> None:
    schedule = store.upsert_schedule(_schedule())
    first = store.upsert_series(_series(schedule.identity))

    result = store.upsert_series(
        _series(schedule.identity, record_series_title="Correspondence (all formats)")
    )

    assert result.identity == first.identity
    assert result.changed is True
    (item,) = store.list_series()
    assert item.record_series_title == "Correspondence (all formats)"


def test_permanent_flag_follows_retention(store: EntityStore) -> None:
    schedule = store.upsert_schedule(_schedule())
    store.upsert_series(_series(schedule.identity, "1"))
    store.upsert_series(
        _series(
            schedule.identity,
            "2",
            retention=_permanent_retention(),
            retention_is_permanent=True,
        )
    )

    permanent = store.find_series(SeriesFilter(permanent=True))

    assert [item.item_number for item in permanent] == ["2"]
    assert permanent[0].retention_is_permanent is True


def test_series_move_names_both_schedules(store: EntityStore) -> None:
    old = store.upsert_schedule(_schedule("25-012"))
    new = store.upsert_schedule(_schedule("25-013", title="Finance Records"))
    item = _series(old.identity)
    store.upsert_series(item)

    moved = _series(new.identity)
    moved.id = item.id
    result = store.upsert_series(moved)

    assert result.identity == item.id
    stored = store.get_series(item.id)
    assert stored is not None
    assert stored.schedule_id == new.identity
    update = store.history(EntityKind.SERIES, item.id)[-1]
    assert update.action is AuditAction.UPDATE
    assert update.payload["changed"] == ["application_number", "schedule"]
    assert update.payload["before"] == {
        "application_number": "25-012",
        "schedule": {"application_number": "25-012", "title": "General Administrative Records"},
    }
    assert update.payload["after"] == {
        "application_number": "25-013",
        "schedule": {"application_number": "25-013", "title": "Finance Records"},
    }


def test_deleting_schedule_cascades_to_series(store: EntityStore) -> None:
    schedule = store.upsert_schedule(_schedule())
    first = store.upsert_series(_series(schedule.identity, "1"))
    second = store.upsert_series(_series(schedule.identity, "2"))

    events = store.delete(EntityKind.SCHEDULE, schedule.identity)

    assert [(event.entity, event.action) for event in events] == [
        (EntityKind.SERIES, AuditAction.DELETE),
        (EntityKind.SERIES, AuditAction.DELETE),
        (EntityKind.SCHEDULE, AuditAction.DELETE),
    ]
    assert store.list_schedules() == []
    assert store.list_series() == []
    for identity in (first.identity, second.identity):
        history = store.history(EntityKind.SERIES, identity)
        assert history[-1].action is AuditAction.DELETE
        assert history[-1].payload["before"]["application_number"] == "25-012"


def test_deleting_unknown_entity_raises(store: EntityStore) -> None:
    with pytest.raises(ReferentialError):
        store.delete(EntityKind.SERIES, new_id())
    with pytest.raises(ReferentialError):
        store.delete(EntityKind.SCHEDULE, new_id())


def test_get_schedule_accepts_identity_text_or_application_number(store: EntityStore) -> None:
    result = store.upsert_schedule(_schedule())

    by_uuid = store.get_schedule(result.identity)
    by_text = store.get_schedule(str(result.identity))
    by_number = store.get_schedule("25-012")

    assert by_uuid is not None
    assert by_text is not None
    assert by_number is not None
    assert by_uuid.id == by_text.id == by_number.id == result.identity
    assert store.get_schedule("not-an-id") is None
    assert store.get_schedule("99-999") is None


def test_listing_uses_natural_order(store: EntityStore) -> None:
    draft = store.upsert_schedule(_schedule(None, title="Unnumbered draft"))
    later = store.upsert_schedule(_schedule("25-012"))
    earlier = store.upsert_schedule(_schedule("09-100"))
    for item_number in ("10", "3.1", "2", "3"):
        store.upsert_series(_series(later.identity, item_number))

    schedules = [schedule.id for schedule in store.list_schedules()]
    items = [item.item_number for item in store.get_series_for_schedule(later.identity)]

    assert schedules == [earlier.identity, later.identity, draft.identity]
    assert items == ["2", "3", "3.1", "10"]


def test_storage_failure_rolls_back_data_and_event(
    store: EntityStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    def failing_add(self: SqlAlchemyAuditEventRepository, entity: AuditEvent) -> None:
        raise OperationalError("INSERT INTO audit_event", {}, Exception("disk I/O error"))

    monkeypatch.setattr(SqlAlchemyAuditEventRepository, "add", failing_add)

    with pytest.raises(StoreError) as excinfo:
        store.upsert_schedule(_schedule())

    assert excinfo.value.systemic is True
    assert "disk I/O error" in str(excinfo.value)
    monkeypatch.undo()
    assert store.list_schedules() == []
    assert store.list_audit_events() == []


def test_append_history_skips_events_already_on_record(store: EntityStore) -> None:
    result = store.upsert_schedule(_schedule())
    (existing,) = store.list_audit_events()
    copy_of_existing = AuditEvent(
        entity=existing.entity,
        entity_id=existing.entity_id,
        action=existing.action,
        actor=existing.actor,
        at=existing.at,
        payload=existing.payload,
    )
    note = AuditEvent(
        entity=EntityKind.SCHEDULE,
        entity_id=result.identity,
        action=AuditAction.UPDATE,
        actor="someone-else",
        at=existing.at,
        payload={"changed": ["notes"], "before": {"notes": None}, "after": {"notes": "x"}},
    )

    appended = store.append_history([copy_of_existing, note, note])

    assert appended.appended == 1
    assert appended.skipped == 2
    assert len(store.list_audit_events()) == 2
