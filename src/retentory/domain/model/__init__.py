"""Public domain model surface."""

from __future__ import annotations

from retentory.domain.model.audit import AuditEvent
from retentory.domain.model.entity import Entity, new_id
from retentory.domain.model.enums import (
    ApprovalStatus,
    AuditAction,
    EntityKind,
    FinalDisposition,
    RetentionTrigger,
    StageLocation,
)
from retentory.domain.model.primitives import (
    APPLICATION_NUMBER_PATTERN,
    ITEM_NUMBER_PATTERN,
    ApplicationNumber,
    ItemNumber,
    PdfReference,
    Retention,
    RetentionStage,
)
from retentory.domain.model.schedule import Schedule
from retentory.domain.model.series import SeriesItem

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    # entities
    "Schedule",
    "SeriesItem",
    # audit
    "AuditEvent",
    # enums
    "ApprovalStatus",
    "AuditAction",
    "EntityKind",
    "FinalDisposition",
    "RetentionTrigger",
    "StageLocation",
    # primitives
    "APPLICATION_NUMBER_PATTERN",
    "ITEM_NUMBER_PATTERN",
    "ApplicationNumber",
    "ItemNumber",
    "PdfReference",
    "Retention",
    "RetentionStage",
]
