"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    """Discriminator for the entities that carry audit history."""

    SCHEDULE = "schedule"
    SERIES = "series"


class ApprovalStatus(StrEnum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    SUPERSEDED = "superseded"
    DENIED = "denied"


class RetentionTrigger(StrEnum):
    """Event that starts the retention clock."""

    CREATION = "creation"
    END_OF_CALENDAR_YEAR = "end_of_calendar_year"
    END_OF_FISCAL_YEAR = "end_of_fiscal_year"
    CASE_CLOSED = "case_closed"
    SUPERSEDED = "superseded"
    SEPARATION = "separation"
    EVENT = "event"


class StageLocation(StrEnum):
    OFFICE = "office"
    RECORDS_CENTER = "records_center"
    SYSTEM = "system"


class FinalDisposition(StrEnum):
    DESTROY = "destroy"
    TRANSFER_ARCHIVES = "transfer_archives"
    PERMANENT = "permanent"


class AuditAction(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
