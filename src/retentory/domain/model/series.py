"""Record series: numbered rows that belong to exactly one schedule."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from retentory.domain.model.entity import Entity
from retentory.domain.model.enums import EntityKind

if TYPE_CHECKING:
    from datetime import date, datetime
    from uuid import UUID

    from retentory.domain.model.primitives import ItemNumber, Retention


@dataclass(eq=False, kw_only=True)
class SeriesItem(Entity):
    """One record series.

    Owned by the schedule referenced through ``schedule_id``; the pair
    (``schedule_id``, ``item_number``) is the composite business key.
    """

    ENTITY_TYPE: ClassVar[EntityKind] = EntityKind.SERIES
    BUSINESS_FIELDS: ClassVar[tuple[str, ...]] = (
        "schedule_id",
        "item_number",
        "record_series_title",
        "description",
        "dates_covered_start",
        "dates_covered_end",
        "open_ended",
        "arrangement",
        "division",
        "contact",
        "location",
        "retention",
        "retention_text",
        "volume_paper_cubic_feet",
        "volume_electronic_bytes",
        "annual_accumulation_paper_cubic_feet",
        "annual_accumulation_electronic_bytes",
        "media_types",
        "omb_or_statute_refs",
        "related_series",
        "legal_hold",
        "audit_hold",
        "representative_name",
        "representative_title",
        "representative_email",
        "records_officer_name",
        "records_officer_email",
        "notes",
    )

    schedule_id: UUID
    item_number: ItemNumber
    record_series_title: str
    retention: Retention

    description: str | None = None
    dates_covered_start: date | None = None
    dates_covered_end: date | None = None
    open_ended: bool = False
    arrangement: str | None = None
    division: str | None = None
    contact: str | None = None
    location: str | None = None
    retention_text: str | None = None

    volume_paper_cubic_feet: float | None = None
    volume_electronic_bytes: int | None = None
    annual_accumulation_paper_cubic_feet: float | None = None
    annual_accumulation_electronic_bytes: int | None = None

    media_types: list[str] = field(default_factory=list[str])
    omb_or_statute_refs: list[str] = field(default_factory=list[str])
    related_series: list[str] = field(default_factory=list[str])

    legal_hold: bool = False
    audit_hold: bool = False

    representative_name: str | None = None
    representative_title: str | None = None
    representative_email: str | None = None
    records_officer_name: str | None = None
    records_officer_email: str | None = None

    notes: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Denormalized copy of ``retention.is_permanent`` kept for filtering.
    _retention_is_permanent: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.sync_derived()

    @property
    def retention_is_permanent(self) -> bool:
        return self.retention.is_permanent

    def sync_derived(self) -> None:
        """Re-materialize derived columns from their source fields."""
        self._retention_is_permanent = self.retention.is_permanent
