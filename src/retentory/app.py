"""Application orchestration entry points."""

from __future__ import annotations

import json
from collections.abc import Callable
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import UUID

from retentory.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyRecordsUnitOfWork,
    is_started,
    startup,
)
from retentory.config import get_agency_config, get_import_config
from retentory.domain.errors import ConflictError, RecordValidationError, ReferentialError
from retentory.domain.export import Agency, Exporter
from retentory.domain.interchange import schedule_from_record, series_from_record
from retentory.domain.ports.unit_of_work import RecordsUnitOfWork
from retentory.domain.reconciliation import (
    ImportOptions,
    ImportSummary,
    Reconciler,
    mint_identity,
)
from retentory.domain.store import EntityStore
from retentory.domain.validation import validate_schedule, validate_series

if TYPE_CHECKING:
    from collections.abc import Mapping

    from retentory.domain.filters import SeriesFilter
    from retentory.domain.model import AuditEvent, EntityKind, SeriesItem
    from retentory.domain.store import UpsertResult

UnitOfWorkFactory = Callable[[], RecordsUnitOfWork]


log = getLogger(__name__)


def build_store(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    actor: str | None = None,
) -> EntityStore:
    """Return an ``EntityStore`` over the configured database."""

    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyRecordsUnitOfWork
    return EntityStore(unit_of_work_factory, actor=actor or get_import_config().actor)


# ---------------------------------------------------------------------------
# import / export
# ---------------------------------------------------------------------------


def import_payload(
    payload: object,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    merge_drafts_by_title: bool | None = None,
    should_cancel: Callable[[], bool] | None = None,
) -> ImportSummary:
    """Merge an already-decoded interchange payload into the store."""

    config = get_import_config()
    store = build_store(unit_of_work_factory=unit_of_work_factory, actor=config.actor)
    options = ImportOptions(
        merge_drafts_by_title=(
            config.merge_drafts_by_title
            if merge_drafts_by_title is None
            else merge_drafts_by_title
        )
    )
    return Reconciler(store, options).import_payload(payload, should_cancel=should_cancel)


def import_backup(
    path: Path | str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    merge_drafts_by_title: bool | None = None,
    should_cancel: Callable[[], bool] | None = None,
) -> ImportSummary:
    """Read a JSON backup file and merge it into the store."""

    backup_path = Path(path)
    log.info("Importing backup %s", backup_path)
    try:
        payload = json.loads(
            backup_path.read_text(encoding="utf-8"), parse_constant=_reject_constant
        )
    except ValueError as exc:
        log.warning("Backup %s is not valid JSON: %s", backup_path, exc)
        return ImportSummary().abort(f"{backup_path} is not valid JSON: {exc}")
    return import_payload(
        payload,
        unit_of_work_factory=unit_of_work_factory,
        merge_drafts_by_title=merge_drafts_by_title,
        should_cancel=should_cancel,
    )


def _reject_constant(token: str) -> float:
    raise ValueError(f"{token} is not a JSON number")


def export_payload(
    series_filter: SeriesFilter | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> dict[str, Any]:
    agency_config = get_agency_config()
    exporter = Exporter(
        build_store(unit_of_work_factory=unit_of_work_factory),
        Agency(name=agency_config.name, abbrev=agency_config.abbrev),
    )
    return exporter.export(series_filter)


def export_backup(
    path: Path | str,
    series_filter: SeriesFilter | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> dict[str, Any]:
    """Write an interchange payload to ``path`` and return it."""

    payload = export_payload(series_filter, unit_of_work_factory=unit_of_work_factory)
    backup_path = Path(path)
    backup_path.parent.mkdir(parents=True, exist_ok=True)
    backup_path.write_text(json.dumps(payload, indent=2, allow_nan=False) + "\n", encoding="utf-8")
    log.info("Wrote backup %s", backup_path)
    return payload


# ---------------------------------------------------------------------------
# single-record edits
# ---------------------------------------------------------------------------


def save_schedule(
    record: Mapping[str, Any],
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> UpsertResult:
    """Validate and save one edited schedule record."""

    errors = validate_schedule(record)
    if errors:
        raise RecordValidationError(errors)
    store = build_store(unit_of_work_factory=unit_of_work_factory)
    identity = _identity_of(record)
    number = record.get("application_number")
    if isinstance(number, str) and number:
        holder = store.get_schedule(number)
        if (
            holder is not None
            and holder.id != identity
            and store.get_schedule(identity) is not None
        ):
            raise ConflictError(
                f"application number {number} belongs to schedule {holder.id}, "
                f"not to the edited schedule {identity}"
            )
    schedule = schedule_from_record(record, identity=identity)
    return store.upsert_schedule(schedule)


def save_series(
    record: Mapping[str, Any],
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> UpsertResult:
    """Validate and save one edited series record.

    The owning schedule is named by store identity (``schedule_id``) or by
    ``application_number``.
    """

    store = build_store(unit_of_work_factory=unit_of_work_factory)
    schedule = None
    raw_schedule = record.get("schedule_id")
    if raw_schedule is not None:
        schedule = store.get_schedule(str(raw_schedule))
    if schedule is None and isinstance(record.get("application_number"), str):
        schedule = store.get_schedule(record["application_number"])
    if schedule is None:
        raise ReferentialError(
            f"no schedule {raw_schedule or record.get('application_number')!r} for this series"
        )

    errors = validate_series(record, schedule)
    if errors:
        raise RecordValidationError(errors)
    item = series_from_record(record, identity=_identity_of(record), schedule_id=schedule.id)
    return store.upsert_series(item)


def delete_record(
    kind: EntityKind,
    identity: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> tuple[AuditEvent, ...]:
    return build_store(unit_of_work_factory=unit_of_work_factory).delete(kind, identity)


def record_history(
    kind: EntityKind,
    identity: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[AuditEvent]:
    return build_store(unit_of_work_factory=unit_of_work_factory).history(kind, identity)


def search_series(
    series_filter: SeriesFilter,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[SeriesItem]:
    return build_store(unit_of_work_factory=unit_of_work_factory).find_series(series_filter)


def _identity_of(record: Mapping[str, Any]) -> UUID:
    # An edit names its target by store identity; anything else is a new record.
    raw = record.get("_id")
    if raw is not None:
        try:
            return UUID(str(raw))
        except ValueError:
            log.debug("Ignoring non-store id %r", raw)
    return mint_identity()
