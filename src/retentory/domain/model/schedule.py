"""Retention schedules: the approved (or draft) rulebooks series items belong to."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from retentory.domain.model.entity import Entity
from retentory.domain.model.enums import ApprovalStatus, EntityKind

if TYPE_CHECKING:
    from datetime import date, datetime

    from retentory.domain.model.primitives import ApplicationNumber, PdfReference


@dataclass(eq=False, kw_only=True)
class Schedule(Entity):
    """A retention schedule.

    ``application_number`` is the business key. It is only assigned once approval
    is formalized, so drafts carry ``None`` and never collide with each other.
    """

    ENTITY_TYPE: ClassVar[EntityKind] = EntityKind.SCHEDULE
    BUSINESS_FIELDS: ClassVar[tuple[str, ...]] = (
        "application_number",
        "title",
        "approving_body",
        "approval_status",
        "approval_date",
        "retention_statement",
        "notes",
        "pdf",
        "tags",
    )

    application_number: ApplicationNumber | None = None
    title: str | None = None
    approving_body: str | None = None
    approval_status: ApprovalStatus = ApprovalStatus.DRAFT
    approval_date: date | None = None
    retention_statement: str | None = None
    notes: str | None = None
    pdf: PdfReference | None = None
    tags: list[str] = field(default_factory=list[str])

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_draft(self) -> bool:
        return self.application_number is None
