from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any

import pytest

from retentory.domain.filters import SeriesFilter, SortKey, natural_key, sort_rows
from retentory.domain.interchange import schedule_from_record, series_from_record
from retentory.domain.model import ApprovalStatus, Schedule, SeriesItem, new_id
from tests.helpers.records import make_schedule_record, make_series_record


def _schedule(application_number: str | None = "25-012", **overrides: Any) -> Schedule:
    return schedule_from_record(
        make_schedule_record(application_number, **overrides), identity=new_id()
    )


def _row(
    schedule: Schedule, item_number: str = "1", **overrides: Any
) -> tuple[SeriesItem, Schedule]:
    item = series_from_record(
        make_series_record(item_number, **overrides), identity=new_id(), schedule_id=schedule.id
    )
    return item, schedule


@pytest.mark.parametrize(
    ("values", "expected"),
    [
        (["10", "2", "1"], ["1", "2", "10"]),
        (["3.1", "3", "12a", "12"], ["3", "3.1", "12", "12a"]),
        (["25-012", "09-100", "25-003"], ["09-100", "25-003", "25-012"]),
    ],
)
def test_natural_key_orders_numbers_numerically(values: list[str], expected: list[str]) -> None:
    assert sorted(values, key=natural_key) == expected


def test_empty_filter_matches_everything() -> None:
    schedule = _schedule()

    assert SeriesFilter().matches(*_row(schedule))


def test_filter_by_schedule_division_and_status() -> None:
    approved = _schedule("25-012")
    draft = _schedule(None)
    rows = [
        _row(approved, "1", division="Finance"),
        _row(approved, "2", division="Legal"),
        _row(draft, "1", division="Finance"),
    ]

    by_schedule = SeriesFilter(application_number="25-012").apply(rows)
    by_division = SeriesFilter(division="Finance").apply(rows)
    by_status = SeriesFilter(approval_status=ApprovalStatus.DRAFT).apply(rows)

    assert [item.item_number for item, _ in by_schedule] == ["1", "2"]
    assert [schedule for _, schedule in by_division] == [approved, draft]
    assert [schedule for _, schedule in by_status] == [draft]


def test_tags_and_media_types_match_any_value() -> None:
    general = _schedule("25-012", tags=["general"])
    finance = _schedule("25-013", tags=["finance", "audit"])
    rows = [
        _row(general, "1", media_types=["paper"]),
        _row(finance, "1", media_types=["electronic"]),
    ]

    assert len(SeriesFilter(tags=("audit", "hr")).apply(rows)) == 1
    assert len(SeriesFilter(media_types=("paper", "electronic")).apply(rows)) == 2
    assert SeriesFilter(tags=("hr",)).apply(rows) == []


def test_boolean_filters() -> None:
    schedule = _schedule()
    held = _row(schedule, "1", legal_hold=True)
    free = _row(schedule, "2")

    assert SeriesFilter(legal_hold=True).apply([held, free]) == [held]
    assert SeriesFilter(legal_hold=False).apply([held, free]) == [free]
    assert SeriesFilter(permanent=False).apply([held, free]) == [held, free]


def test_text_search_requires_every_term() -> None:
    schedule = _schedule("25-012", tags=["administration"])
    rows = [
        _row(schedule, "1", record_series_title="Board Minutes"),
        _row(schedule, "2", record_series_title="Travel Vouchers", notes="reimbursement"),
    ]

    assert [item.item_number for item, _ in SeriesFilter(search_text="board").apply(rows)] == ["1"]
    assert [
        item.item_number
        for item, _ in SeriesFilter(search_text="VOUCHERS reimbursement").apply(rows)
    ] == ["2"]
    assert SeriesFilter(search_text="board reimbursement").apply(rows) == []
    assert len(SeriesFilter(search_text="25-012 administration").apply(rows)) == 2


def test_sort_by_schedule_and_item_puts_drafts_last() -> None:
    later = _schedule("25-012")
    earlier = _schedule("09-100")
    draft = _schedule(None)
    rows = [_row(draft, "1"), _row(later, "10"), _row(later, "2"), _row(earlier, "5")]

    ordered = sort_rows(rows, SortKey.SCHEDULE_ITEM)

    assert [(schedule.application_number, item.item_number) for item, schedule in ordered] == [
        ("09-100", "5"),
        ("25-012", "2"),
        ("25-012", "10"),
        (None, "1"),
    ]


def test_descending_sort_keeps_missing_values_last() -> None:
    schedule = _schedule()
    old = _row(schedule, "1", dates_covered_start="1990-01-01")
    new = _row(schedule, "2", dates_covered_start="2015-06-30")
    undated = _row(schedule, "3")
    undated[0].dates_covered_start = None

    ordered = sort_rows([old, undated, new], SortKey.DATES_COVERED_START, descending=True)

    assert ordered == [new, old, undated]
    assert ordered[0][0].dates_covered_start == date(2015, 6, 30)


def test_filter_applies_requested_sort() -> None:
    schedule = _schedule()
    first = _row(schedule, "1")
    second = _row(schedule, "2")
    first[0].updated_at = datetime(2026, 1, 1, tzinfo=UTC)
    second[0].updated_at = datetime(2026, 2, 1, tzinfo=UTC)

    ordered = SeriesFilter(sort_by=SortKey.UPDATED_AT, descending=True).apply([first, second])

    assert ordered == [second, first]
