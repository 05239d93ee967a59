"""Import orchestration: merge one interchange payload into the store.

Schedules are written before any series that references them, and every
series foreign key is rewritten through the identities the store actually
assigned. Incoming ``_id`` values only ever serve as payload-local keys.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from retentory.domain.errors import ReferentialError, StoreError, StructuralError
from retentory.domain.interchange import (
    audit_from_record,
    local_id,
    parse_envelope,
    schedule_from_record,
    series_from_record,
)
from retentory.domain.model import EntityKind
from retentory.domain.validation import validate_schedule, validate_series

from .contracts import ImportOptions, ImportState, ImportSummary, RecordWarning, WarningKind
from .resolve import mint_identity, resolve_schedule_identities

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from typing import Any
    from uuid import UUID

    from retentory.domain.interchange import InterchangePayload
    from retentory.domain.model import AuditEvent
    from retentory.domain.store import EntityStore

    type CancelCheck = Callable[[], bool]


log = getLogger(__name__)

CANCELLED = "cancelled"


class ImportCancelledError(Exception):
    """Raised inside an import run when the caller asked to stop."""


class ImportAbortedError(Exception):
    """Raised inside an import run when storage became unusable."""


class Reconciler:
    """Merge interchange payloads into an ``EntityStore``."""

    def __init__(self, store: EntityStore, options: ImportOptions | None = None) -> None:
        self.store = store
        self.options = options or ImportOptions()

    def import_payload(
        self,
        payload: object,
        *,
        should_cancel: CancelCheck | None = None,
    ) -> ImportSummary:
        """Import ``payload`` and report what happened.

        Never raises for bad input: structural problems, systemic storage
        failures and cancellation all end in an ``ABORTED`` summary that still
        reports the work completed up to that point.
        """

        run = _ImportRun(self.store, self.options, should_cancel or _never)
        return run.execute(payload)


def _never() -> bool:
    return False


class _ImportRun:
    def __init__(
        self, store: EntityStore, options: ImportOptions, should_cancel: CancelCheck
    ) -> None:
        self.store = store
        self.options = options
        self.should_cancel = should_cancel
        self.summary = ImportSummary()
        self.schedule_ids: dict[str, UUID] = {}
        self.series_ids: dict[str, UUID] = {}

    def execute(self, payload: object) -> ImportSummary:
        summary = self.summary
        try:
            self._checkpoint()
            try:
                envelope = parse_envelope(payload)
            except StructuralError as exc:
                log.warning("Import aborted: %s", exc)
                return summary.abort(str(exc))
            self._checkpoint()

            log.info(
                "Importing %d schedules, %d series items, %d audit events",
                len(envelope.schedules),
                len(envelope.series_items),
                len(envelope.audit_events),
            )
            self._import_schedules(envelope)
            self._import_series(envelope)
            self._import_history(envelope)
        except ImportCancelledError:
            log.warning("Import cancelled in state %s", summary.state)
            return summary.abort(CANCELLED)
        except ImportAbortedError as exc:
            return summary.abort(str(exc))

        summary.state = ImportState.SUMMARIZING
        summary.audit_events_recorded = summary.created + summary.updated
        summary.state = ImportState.COMPLETED
        log.info(
            "Import completed: %d created, %d updated, %d unchanged, %d rejected, %d warnings",
            summary.created,
            summary.updated,
            summary.unchanged,
            len(summary.rejected),
            len(summary.warnings),
        )
        return summary

    # ------------------------------------------------------------------
    # stages
    # ------------------------------------------------------------------

    def _import_schedules(self, envelope: InterchangePayload) -> None:
        self.summary.state = ImportState.RESOLVING_IDENTITIES
        resolution = resolve_schedule_identities(
            self.store.list_schedules(),
            envelope.schedules,
            merge_drafts_by_title=self.options.merge_drafts_by_title,
        )
        for conflict in resolution.conflicts:
            self._warn(conflict)

        self.summary.state = ImportState.UPSERTING_SCHEDULES
        seen: set[str] = set()
        for index, record in enumerate(envelope.schedules):
            self._checkpoint()
            record_id = local_id(record, index)
            if record_id in seen:
                continue
            seen.add(record_id)

            errors = validate_schedule(record)
            if errors:
                self._reject(WarningKind.VALIDATION, "schedule", record_id, errors=errors)
                continue

            schedule = schedule_from_record(record, identity=resolution.mapping[record_id])
            try:
                result = self.store.upsert_schedule(schedule)
            except StoreError as exc:
                self._store_failure("schedule", record_id, exc)
                continue
            self.schedule_ids[record_id] = result.identity
            self.summary.schedules.count(result)

    def _import_series(self, envelope: InterchangePayload) -> None:
        self.summary.state = ImportState.REMAPPING_SERIES_FOREIGN_KEYS
        remapped: list[tuple[str, Mapping[str, Any], UUID | None]] = []
        for index, record in enumerate(envelope.series_items):
            self._checkpoint()
            remapped.append((local_id(record, index), record, self._remap_schedule(record)))

        self.summary.state = ImportState.UPSERTING_SERIES_ITEMS
        first_by_key: dict[tuple[UUID, str], str] = {}
        for record_id, record, schedule_id in remapped:
            self._checkpoint()
            if schedule_id is None:
                self._reject(
                    WarningKind.REFERENTIAL,
                    "series",
                    record_id,
                    message=_unresolved_message(record),
                )
                continue

            errors = validate_series(record, self.store.get_schedule(schedule_id))
            if errors:
                self._reject(WarningKind.VALIDATION, "series", record_id, errors=errors)
                continue

            key = (schedule_id, record["item_number"])
            first = first_by_key.setdefault(key, record_id)
            if first != record_id:
                self._warn(
                    RecordWarning(
                        kind=WarningKind.CONFLICT,
                        entity="series",
                        local_id=record_id,
                        message=(
                            f"item {record['item_number']!r} repeats {first!r} on the same "
                            "schedule; updated in place"
                        ),
                    )
                )

            item = series_from_record(record, identity=mint_identity(), schedule_id=schedule_id)
            try:
                result = self.store.upsert_series(item)
            except ReferentialError as exc:
                self._reject(WarningKind.REFERENTIAL, "series", record_id, message=str(exc))
                continue
            except StoreError as exc:
                self._store_failure("series", record_id, exc)
                continue
            self.series_ids.setdefault(record_id, result.identity)
            self.summary.series.count(result)

    def _import_history(self, envelope: InterchangePayload) -> None:
        self.summary.state = ImportState.RECORDING_AUDIT
        events: list[AuditEvent] = []
        for index, record in enumerate(envelope.audit_events):
            self._checkpoint()
            try:
                event = audit_from_record(record, entity_id=self._remap_subject(record))
            except (KeyError, ValueError) as exc:
                self._reject(
                    WarningKind.VALIDATION, "audit_event", local_id(record, index), message=str(exc)
                )
                continue
            events.append(event)

        if not events:
            return
        self._checkpoint()
        try:
            result = self.store.append_history(events)
        except StoreError as exc:
            self._store_failure("audit_event", "*", exc)
            return
        self.summary.history_imported = result.appended
        self.summary.history_skipped = result.skipped

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _remap_schedule(self, record: Mapping[str, Any]) -> UUID | None:
        raw = record.get("schedule_id")
        if raw is not None and str(raw) in self.schedule_ids:
            return self.schedule_ids[str(raw)]
        number = record.get("application_number")
        if isinstance(number, str) and number:
            schedule = self.store.get_schedule(number)
            if schedule is not None:
                return schedule.id
        return None

    def _remap_subject(self, record: Mapping[str, Any]) -> UUID | None:
        raw = record.get("entity_id")
        if raw is None:
            return None
        mapping = {
            EntityKind.SCHEDULE.value: self.schedule_ids,
            EntityKind.SERIES.value: self.series_ids,
        }.get(record.get("entity"), {})
        return mapping.get(str(raw))

    def _checkpoint(self) -> None:
        if self.should_cancel():
            raise ImportCancelledError

    def _warn(self, warning: RecordWarning) -> None:
        log.warning("%s %s: %s", warning.entity, warning.local_id, warning.message)
        self.summary.warnings.append(warning)

    def _reject(
        self,
        kind: WarningKind,
        entity: str,
        record_id: str,
        *,
        message: str | None = None,
        errors: tuple[Any, ...] = (),
    ) -> None:
        if message is None:
            message = "; ".join(f"{error.field}: {error.message}" for error in errors)
        warning = RecordWarning(
            kind=kind, entity=entity, local_id=record_id, message=message, errors=errors
        )
        log.warning("Rejected %s %s (%s): %s", entity, record_id, kind, message)
        self.summary.rejected.append(warning)

    def _store_failure(self, entity: str, record_id: str, exc: StoreError) -> None:
        self._reject(WarningKind.STORE, entity, record_id, message=str(exc))
        if exc.systemic:
            log.error("Import aborted after storage failure: %s", exc)
            raise ImportAbortedError(str(exc)) from exc


def _unresolved_message(record: Mapping[str, Any]) -> str:
    return (
        f"schedule {record.get('schedule_id')!r} "
        f"(application number {record.get('application_number')!r}) is not in this import "
        "or the store"
    )
