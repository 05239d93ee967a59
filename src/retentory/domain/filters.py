"""Series search criteria and ordering.

Text search is a plain all-terms substring match; no ranking is attempted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from retentory.domain.model import ApprovalStatus, Schedule, SeriesItem


_DIGITS = re.compile(r"(\d+)")

type SeriesRow = tuple[SeriesItem, Schedule]


class SortKey(StrEnum):
    SCHEDULE_ITEM = "schedule_item"
    DATES_COVERED_START = "dates_covered_start"
    APPROVAL_DATE = "approval_date"
    UPDATED_AT = "updated_at"


@dataclass(frozen=True, kw_only=True)
class SeriesFilter:
    """Criteria for narrowing the series list.

    ``tags`` and ``media_types`` match when any listed value is present;
    every term of ``search_text`` must appear somewhere in the item.
    """

    application_number: str | None = None
    division: str | None = None
    approval_status: ApprovalStatus | None = None
    tags: tuple[str, ...] = field(default=())
    media_types: tuple[str, ...] = field(default=())
    permanent: bool | None = None
    legal_hold: bool | None = None
    search_text: str | None = None
    sort_by: SortKey | None = None
    descending: bool = False

    def matches(self, item: SeriesItem, schedule: Schedule) -> bool:
        if self.application_number and schedule.application_number != self.application_number:
            return False
        if self.division and item.division != self.division:
            return False
        if self.approval_status is not None and schedule.approval_status != self.approval_status:
            return False
        if self.tags and not set(self.tags) & set(schedule.tags):
            return False
        if self.media_types and not set(self.media_types) & set(item.media_types):
            return False
        if self.permanent is not None and item.retention_is_permanent is not self.permanent:
            return False
        if self.legal_hold is not None and item.legal_hold is not self.legal_hold:
            return False
        if self.search_text:
            haystack = searchable_text(item, schedule).lower()
            terms = self.search_text.lower().split()
            if not all(term in haystack for term in terms):
                return False
        return True

    def apply(self, rows: Iterable[SeriesRow]) -> list[SeriesRow]:
        selected = [row for row in rows if self.matches(*row)]
        if self.sort_by is None:
            return selected
        return sort_rows(selected, self.sort_by, descending=self.descending)


def searchable_text(item: SeriesItem, schedule: Schedule) -> str:
    parts: list[str | None] = [
        item.record_series_title,
        schedule.application_number,
        item.item_number,
        item.division,
        item.retention_text,
        item.notes,
        item.description,
        item.contact,
        item.arrangement,
        " ".join(schedule.tags),
        " ".join(item.media_types),
        " ".join(item.omb_or_statute_refs),
    ]
    return " ".join(part for part in parts if part)


def natural_key(value: str | None) -> tuple[tuple[int, int | str], ...]:
    """Sort key that orders ``2`` before ``10`` and ``3.1`` after ``3``."""

    if value is None:
        return ()
    key: list[tuple[int, int | str]] = []
    for chunk in _DIGITS.split(value):
        if not chunk:
            continue
        key.append((0, int(chunk)) if chunk.isdigit() else (1, chunk.lower()))
    return tuple(key)


def sort_series(items: Iterable[SeriesItem]) -> list[SeriesItem]:
    return sorted(items, key=lambda item: natural_key(item.item_number))


_ROW_KEYS: dict[SortKey, Callable[[SeriesRow], object]] = {
    SortKey.SCHEDULE_ITEM: lambda row: (
        None
        if row[1].application_number is None
        else (natural_key(row[1].application_number), natural_key(row[0].item_number))
    ),
    SortKey.DATES_COVERED_START: lambda row: row[0].dates_covered_start,
    SortKey.APPROVAL_DATE: lambda row: row[1].approval_date,
    SortKey.UPDATED_AT: lambda row: row[0].updated_at,
}


def sort_rows(rows: Sequence[SeriesRow], sort_by: SortKey, *, descending: bool = False) -> list[SeriesRow]:
    """Order rows by ``sort_by``; rows without a value always come last."""

    key = _ROW_KEYS[sort_by]
    present = [row for row in rows if key(row) is not None]
    missing = [row for row in rows if key(row) is None]
    present.sort(key=key, reverse=descending)  # type: ignore[arg-type]
    return present + missing
