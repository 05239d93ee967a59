from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from retentory.adapters.sqlalchemy.repositories import (
    SqlAlchemyAuditEventRepository,
    SqlAlchemySeriesRepository,
)
from retentory.domain.model import AuditAction, EntityKind
from retentory.domain.reconciliation import (
    CANCELLED,
    ImportOptions,
    ImportState,
    Reconciler,
    WarningKind,
)
from tests.helpers.records import (
    make_payload,
    make_schedule_record,
    make_series_record,
    scenario_a_payload,
)

if TYPE_CHECKING:
    from retentory.domain.store import EntityStore


def _history_record(**overrides: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "_id": "evt-1",
        "entity": "schedule",
        "entity_id": "sched-25-012",
        "action": "update",
        "actor": "former-clerk",
        "at": "2024-06-01T12:00:00Z",
        "payload": {"changed": ["notes"], "before": {"notes": None}, "after": {"notes": "x"}},
    }
    record.update(overrides)
    return record


def test_first_import_creates_schedule_series_and_audit(
    reconciler: Reconciler, store: EntityStore
) -> None:
    summary = reconciler.import_payload(scenario_a_payload())

    assert summary.state is ImportState.COMPLETED
    assert summary.schedules.created == 1
    assert summary.series.created == 1
    assert summary.audit_events_recorded == 2
    assert summary.rejected == []
    assert len(store.list_audit_events()) == 2
    (schedule,) = store.list_schedules()
    (item,) = store.list_series()
    assert item.schedule_id == schedule.id


def test_reimport_of_same_payload_changes_nothing(
    reconciler: Reconciler, store: EntityStore
) -> None:
    reconciler.import_payload(scenario_a_payload())

    summary = reconciler.import_payload(scenario_a_payload())

    assert summary.completed
    assert summary.created == 0
    assert summary.updated == 0
    assert summary.unchanged == 2
    assert summary.audit_events_recorded == 0
    assert len(store.list_audit_events()) == 2


def test_repeated_application_number_merges_into_one_schedule(
    reconciler: Reconciler, store: EntityStore
) -> None:
    payload = make_payload(
        [
            make_schedule_record("25-012", local_id="first", title="Old title"),
            make_schedule_record("25-012", local_id="second", title="New title"),
        ],
        [make_series_record("1", schedule_id="first")],
    )

    summary = reconciler.import_payload(payload)

    (schedule,) = store.list_schedules()
    assert schedule.title == "New title"
    assert summary.schedules.created == 1
    assert summary.schedules.updated == 1
    (conflict,) = summary.conflicts
    assert conflict.local_id == "second"
    (item,) = store.list_series()
    assert item.schedule_id == schedule.id


def test_series_of_rejected_schedule_is_rejected_as_referential(
    reconciler: Reconciler, store: EntityStore
) -> None:
    payload = make_payload(
        [make_schedule_record("2025-12", local_id="bad")],
        [make_series_record("1", schedule_id="bad")],
    )

    summary = reconciler.import_payload(payload)

    assert summary.completed
    assert [(warning.kind, warning.entity) for warning in summary.rejected] == [
        (WarningKind.VALIDATION, "schedule"),
        (WarningKind.REFERENTIAL, "series"),
    ]
    assert summary.rejected[0].errors[0].field == "application_number"
    assert store.list_schedules() == []
    assert store.list_series() == []


def test_drafts_with_same_title_stay_distinct(reconciler: Reconciler, store: EntityStore) -> None:
    payload = make_payload(
        [
            make_schedule_record(None, local_id="draft-a"),
            make_schedule_record(None, local_id="draft-b"),
        ],
        [],
    )

    summary = reconciler.import_payload(payload)

    assert summary.schedules.created == 2
    assert len({schedule.id for schedule in store.list_schedules()}) == 2


def test_draft_imported_twice_is_created_twice(reconciler: Reconciler, store: EntityStore) -> None:
    payload = make_payload([make_schedule_record(None)], [])

    reconciler.import_payload(payload)
    reconciler.import_payload(payload)

    assert len(store.list_schedules()) == 2


def test_title_merge_option_reuses_stored_draft(store: EntityStore) -> None:
    reconciler = Reconciler(store, ImportOptions(merge_drafts_by_title=True))
    payload = make_payload([make_schedule_record(None)], [])

    reconciler.import_payload(payload)
    summary = reconciler.import_payload(payload)

    assert summary.schedules.unchanged == 1
    assert len(store.list_schedules()) == 1


def test_incoming_ids_never_become_store_identities(
    reconciler: Reconciler, store: EntityStore
) -> None:
    schedule_id = "0b6f7a52-5f2c-4c3e-9d3a-1f1f1f1f1f1f"
    payload = make_payload(
        [make_schedule_record("25-012", local_id=schedule_id)],
        [make_series_record("1", schedule_id=schedule_id)],
    )

    reconciler.import_payload(payload)

    (schedule,) = store.list_schedules()
    assert str(schedule.id) != schedule_id


def test_series_falls_back_to_application_number(
    reconciler: Reconciler, store: EntityStore
) -> None:
    reconciler.import_payload(make_payload([make_schedule_record("25-012")], []))
    orphan = make_series_record("4", schedule_id="not-in-this-payload", application_number="25-012")

    summary = reconciler.import_payload(make_payload([], [orphan]))

    assert summary.series.created == 1
    (schedule,) = store.list_schedules()
    (item,) = store.list_series()
    assert item.schedule_id == schedule.id


def test_series_without_resolvable_schedule_is_rejected(
    reconciler: Reconciler, store: EntityStore
) -> None:
    summary = reconciler.import_payload(
        make_payload([], [make_series_record("1", schedule_id="ghost")])
    )

    (rejection,) = summary.rejected
    assert rejection.kind is WarningKind.REFERENTIAL
    assert "ghost" in rejection.message
    assert store.list_series() == []


def test_invalid_series_is_rejected_with_field_errors(reconciler: Reconciler) -> None:
    payload = make_payload(
        [make_schedule_record("25-012")],
        [make_series_record("1"), make_series_record("x9", record_series_title="")],
    )

    summary = reconciler.import_payload(payload)

    assert summary.series.created == 1
    (rejection,) = summary.rejected
    assert rejection.kind is WarningKind.VALIDATION
    assert {error.field for error in rejection.errors} == {"item_number", "record_series_title"}


def test_repeated_series_key_in_payload_is_reported(
    reconciler: Reconciler, store: EntityStore
) -> None:
    payload = make_payload(
        [make_schedule_record("25-012")],
        [
            make_series_record("1", local_id="one"),
            make_series_record("1", local_id="one-again", record_series_title="Letters"),
        ],
    )

    summary = reconciler.import_payload(payload)

    assert summary.series.created == 1
    assert summary.series.updated == 1
    (conflict,) = summary.conflicts
    assert conflict.entity == "series"
    assert conflict.local_id == "one-again"
    (item,) = store.list_series()
    assert item.record_series_title == "Letters"


@pytest.mark.parametrize(
    ("payload", "reason"),
    [
        ([], "payload must be a JSON object"),
        ({"version": 1, "schedules": [], "series_items": []}, "unsupported interchange version"),
        ({"version": True, "schedules": [], "series_items": []}, "unsupported interchange version"),
        ({"version": 2, "schedules": []}, "series_items"),
        ({"version": 2, "schedules": "none", "series_items": []}, "schedules"),
    ],
)
def test_structural_problems_abort_before_any_write(
    reconciler: Reconciler, store: EntityStore, payload: object, reason: str
) -> None:
    summary = reconciler.import_payload(payload)

    assert summary.state is ImportState.ABORTED
    assert summary.abort_reason is not None
    assert reason in summary.abort_reason
    assert store.list_schedules() == []


def test_cancelled_import_keeps_completed_work(reconciler: Reconciler, store: EntityStore) -> None:
    checks = 0

    def cancel_once_series_start() -> bool:
        nonlocal checks
        checks += 1
        # before parsing, after parsing, one schedule; the next check is the first series
        return checks > 3

    summary = reconciler.import_payload(
        scenario_a_payload(), should_cancel=cancel_once_series_start
    )

    assert summary.state is ImportState.ABORTED
    assert summary.abort_reason == CANCELLED
    assert summary.schedules.created == 1
    assert summary.series.created == 0
    assert len(store.list_schedules()) == 1
    assert store.list_series() == []


def test_systemic_storage_failure_aborts_import(
    reconciler: Reconciler, store: EntityStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    def failing_add(self: SqlAlchemyAuditEventRepository, entity: object) -> None:
        raise OperationalError("INSERT INTO audit_event", {}, Exception("database is locked"))

    monkeypatch.setattr(SqlAlchemyAuditEventRepository, "add", failing_add)

    summary = reconciler.import_payload(scenario_a_payload())

    assert summary.state is ImportState.ABORTED
    assert summary.abort_reason == "database is locked"
    (rejection,) = summary.rejected
    assert rejection.kind is WarningKind.STORE
    monkeypatch.undo()
    assert store.list_schedules() == []


def test_history_is_remapped_to_store_identities(
    reconciler: Reconciler, store: EntityStore
) -> None:
    payload = scenario_a_payload()
    payload["audit_events"] = [_history_record()]

    summary = reconciler.import_payload(payload)

    assert summary.history_imported == 1
    (schedule,) = store.list_schedules()
    history = store.history(EntityKind.SCHEDULE, schedule.id)
    assert [event.actor for event in history] == ["former-clerk", "tester"]
    assert history[0].action is AuditAction.UPDATE


def test_history_is_not_duplicated_on_reimport(reconciler: Reconciler) -> None:
    payload = scenario_a_payload()
    payload["audit_events"] = [_history_record()]
    reconciler.import_payload(payload)

    summary = reconciler.import_payload(payload)

    assert summary.history_imported == 0
    assert summary.history_skipped == 1


def test_history_with_unknown_subject_is_kept_unlinked(
    reconciler: Reconciler, store: EntityStore
) -> None:
    payload = scenario_a_payload()
    payload["audit_events"] = [_history_record(entity_id="deleted-long-ago")]

    reconciler.import_payload(payload)

    unlinked = [event for event in store.list_audit_events() if event.entity_id is None]
    assert [event.actor for event in unlinked] == ["former-clerk"]


def test_malformed_history_is_rejected(reconciler: Reconciler) -> None:
    payload = scenario_a_payload()
    payload["audit_events"] = [
        _history_record(at="last tuesday"),
        _history_record(_id="evt-2", action="rename"),
    ]

    summary = reconciler.import_payload(payload)

    assert summary.completed
    assert [(warning.entity, warning.local_id) for warning in summary.rejected] == [
        ("audit_event", "evt-1"),
        ("audit_event", "evt-2"),
    ]
    assert summary.history_imported == 0


def test_rejected_write_does_not_stop_the_import(
    reconciler: Reconciler, store: EntityStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    original_add = SqlAlchemySeriesRepository.add

    def add_except_item_two(self: SqlAlchemySeriesRepository, entity: Any) -> None:
        if entity.item_number == "2":
            raise IntegrityError("INSERT INTO series_item", {}, Exception("constraint failed"))
        original_add(self, entity)

    monkeypatch.setattr(SqlAlchemySeriesRepository, "add", add_except_item_two)
    payload = make_payload(
        [make_schedule_record("25-012")],
        [make_series_record("1"), make_series_record("2"), make_series_record("3")],
    )

    summary = reconciler.import_payload(payload)

    assert summary.state is ImportState.COMPLETED
    (rejection,) = summary.rejected
    assert rejection.kind is WarningKind.STORE
    assert rejection.local_id == "series-sched-25-012-2"
    assert summary.series.created == 2
    assert sorted(item.item_number for item in store.list_series()) == ["1", "3"]


def test_oversized_byte_count_is_rejected_and_import_continues(
    reconciler: Reconciler, store: EntityStore
) -> None:
    payload = make_payload(
        [make_schedule_record("25-012")],
        [make_series_record("1", volume_electronic_bytes=10**20), make_series_record("2")],
    )

    summary = reconciler.import_payload(payload)

    assert summary.completed
    (rejection,) = summary.rejected
    assert rejection.kind is WarningKind.VALIDATION
    assert [error.field for error in rejection.errors] == ["volume_electronic_bytes"]
    assert [item.item_number for item in store.list_series()] == ["2"]


def test_not_a_number_quantity_is_rejected(reconciler: Reconciler, store: EntityStore) -> None:
    payload = make_payload(
        [make_schedule_record("25-012")],
        [make_series_record("1", volume_paper_cubic_feet=float("nan"))],
    )

    first = reconciler.import_payload(payload)
    second = reconciler.import_payload(payload)

    assert [warning.kind for warning in first.rejected] == [WarningKind.VALIDATION]
    assert store.list_series() == []
    assert second.updated == 0
    assert second.audit_events_recorded == 0


def test_series_messages_name_the_owning_schedule(reconciler: Reconciler) -> None:
    payload = make_payload([make_schedule_record("25-012")], [make_series_record("1-b")])

    summary = reconciler.import_payload(payload)

    (rejection,) = summary.rejected
    assert "on schedule 25-012" in rejection.message
