"""Shared import contracts.

This module holds only:
- import states and warning kinds
- identity decisions produced by the resolver
- the per-import summary handed back to callers
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from retentory.domain.store import UpsertResult
    from retentory.domain.validation import ValidationError


class ImportState(StrEnum):
    """Where an import currently is; ``COMPLETED`` and ``ABORTED`` are terminal."""

    PENDING = "pending"
    RESOLVING_IDENTITIES = "resolving_identities"
    UPSERTING_SCHEDULES = "upserting_schedules"
    REMAPPING_SERIES_FOREIGN_KEYS = "remapping_series_foreign_keys"
    UPSERTING_SERIES_ITEMS = "upserting_series_items"
    RECORDING_AUDIT = "recording_audit"
    SUMMARIZING = "summarizing"
    COMPLETED = "completed"
    ABORTED = "aborted"


class WarningKind(StrEnum):
    VALIDATION = "validation"
    REFERENTIAL = "referential"
    CONFLICT = "conflict"
    STORE = "store"


class MatchKind(StrEnum):
    """How an incoming schedule was tied to an identity."""

    APPLICATION_NUMBER = "application_number"
    TITLE = "title"
    DUPLICATE = "duplicate"


@dataclass(frozen=True, slots=True, kw_only=True)
class RecordWarning:
    """One rejected record or one conflict worth a human look."""

    kind: WarningKind
    entity: str
    local_id: str
    message: str
    errors: tuple[ValidationError, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class IdentityDecision:
    local_id: str
    identity: UUID
    is_new: bool
    matched_by: MatchKind | None = None


@dataclass(slots=True, kw_only=True)
class IdentityResolution:
    """Local id -> store identity for every schedule in one payload."""

    mapping: dict[str, UUID] = field(default_factory=dict[str, "UUID"])
    decisions: list[IdentityDecision] = field(default_factory=list[IdentityDecision])
    conflicts: list[RecordWarning] = field(default_factory=list[RecordWarning])


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportOptions:
    merge_drafts_by_title: bool = False


@dataclass(slots=True, kw_only=True)
class EntityCounts:
    created: int = 0
    updated: int = 0
    unchanged: int = 0

    def count(self, result: UpsertResult) -> None:
        if result.created:
            self.created += 1
        elif result.changed:
            self.updated += 1
        else:
            self.unchanged += 1


@dataclass(slots=True, kw_only=True)
class ImportSummary:
    """Outcome of one import, including everything done before an abort."""

    state: ImportState = ImportState.PENDING
    schedules: EntityCounts = field(default_factory=EntityCounts)
    series: EntityCounts = field(default_factory=EntityCounts)
    rejected: list[RecordWarning] = field(default_factory=list[RecordWarning])
    warnings: list[RecordWarning] = field(default_factory=list[RecordWarning])
    audit_events_recorded: int = 0
    history_imported: int = 0
    history_skipped: int = 0
    abort_reason: str | None = None

    @property
    def completed(self) -> bool:
        return self.state is ImportState.COMPLETED

    @property
    def created(self) -> int:
        return self.schedules.created + self.series.created

    @property
    def updated(self) -> int:
        return self.schedules.updated + self.series.updated

    @property
    def unchanged(self) -> int:
        return self.schedules.unchanged + self.series.unchanged

    @property
    def conflicts(self) -> list[RecordWarning]:
        return [warning for warning in self.warnings if warning.kind is WarningKind.CONFLICT]

    def abort(self, reason: str) -> ImportSummary:
        self.state = ImportState.ABORTED
        self.abort_reason = reason
        return self
