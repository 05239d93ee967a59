"""Translate between interchange records and domain entities.

Interchange records carry foreign ``_id`` values that are only meaningful
inside the payload. They are read as local ids for matching and are never
adopted as store identities.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import Enum
from logging import getLogger
from typing import TYPE_CHECKING, Any
from uuid import UUID

from retentory.domain.model import (
    ApprovalStatus,
    AuditAction,
    AuditEvent,
    EntityKind,
    FinalDisposition,
    PdfReference,
    Retention,
    RetentionStage,
    RetentionTrigger,
    Schedule,
    SeriesItem,
    StageLocation,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from retentory.domain.model import Entity


log = getLogger(__name__)

# Fields that identify a record inside the store rather than describe it.
_SERIES_SNAPSHOT_EXCLUDED = frozenset({"schedule_id"})


def local_id(record: Mapping[str, object], index: int) -> str:
    """Payload-local id of ``record``: its ``_id`` or its position."""

    raw = record.get("_id")
    if raw is None or raw == "":
        return f"#{index}"
    return str(raw)


# ---------------------------------------------------------------------------
# record -> domain
# ---------------------------------------------------------------------------


def schedule_from_record(record: Mapping[str, Any], *, identity: UUID) -> Schedule:
    """Build a schedule from a validated record under a store-minted identity."""

    return Schedule(
        id=identity,
        application_number=record.get("application_number"),
        title=record.get("title"),
        approving_body=record.get("approving_body"),
        approval_status=ApprovalStatus(record.get("approval_status", ApprovalStatus.DRAFT)),
        approval_date=_parse_date(record.get("approval_date")),
        retention_statement=record.get("retention_statement"),
        notes=record.get("notes"),
        pdf=pdf_from_record(record.get("pdf")),
        tags=list(record.get("tags") or []),
        created_at=parse_timestamp(record.get("created_at")),
    )


def series_from_record(
    record: Mapping[str, Any],
    *,
    identity: UUID,
    schedule_id: UUID,
) -> SeriesItem:
    """Build a series item from a validated record with a rewritten schedule reference."""

    return SeriesItem(
        id=identity,
        schedule_id=schedule_id,
        item_number=record["item_number"],
        record_series_title=record["record_series_title"],
        retention=retention_from_record(record["retention"]),
        description=record.get("description"),
        dates_covered_start=_parse_date(record.get("dates_covered_start")),
        dates_covered_end=_parse_date(record.get("dates_covered_end")),
        open_ended=bool(record.get("open_ended", False)),
        arrangement=record.get("arrangement"),
        division=record.get("division"),
        contact=record.get("contact"),
        location=record.get("location"),
        retention_text=record.get("retention_text"),
        volume_paper_cubic_feet=record.get("volume_paper_cubic_feet"),
        volume_electronic_bytes=record.get("volume_electronic_bytes"),
        annual_accumulation_paper_cubic_feet=record.get("annual_accumulation_paper_cubic_feet"),
        annual_accumulation_electronic_bytes=record.get("annual_accumulation_electronic_bytes"),
        media_types=list(record.get("media_types") or []),
        omb_or_statute_refs=list(record.get("omb_or_statute_refs") or []),
        related_series=list(record.get("related_series") or []),
        legal_hold=bool(record.get("legal_hold", False)),
        audit_hold=bool(record.get("audit_hold", False)),
        representative_name=record.get("representative_name"),
        representative_title=record.get("representative_title"),
        representative_email=record.get("representative_email"),
        records_officer_name=record.get("records_officer_name"),
        records_officer_email=record.get("records_officer_email"),
        notes=record.get("notes"),
        created_at=parse_timestamp(record.get("created_at")),
    )


def retention_from_record(raw: Mapping[str, Any]) -> Retention:
    return Retention(
        trigger=RetentionTrigger(raw["trigger"]),
        stages=tuple(
            RetentionStage(where=StageLocation(stage["where"]), years=stage["years"])
            for stage in raw["stages"]
        ),
        final_disposition=FinalDisposition(raw["final_disposition"]),
    )


def pdf_from_record(raw: Mapping[str, Any] | None) -> PdfReference | None:
    if raw is None:
        return None
    reference = PdfReference(
        name=raw.get("name"), url=raw.get("url"), page_count=raw.get("page_count")
    )
    if reference == PdfReference():
        return None
    return reference


def audit_from_record(record: Mapping[str, Any], *, entity_id: UUID | None) -> AuditEvent:
    """Build an imported audit event; raises ``ValueError`` on malformed records."""

    at = parse_timestamp(record.get("at"))
    if at is None:
        raise ValueError(f"audit event timestamp {record.get('at')!r} is not an ISO datetime")
    actor = record.get("actor")
    if not isinstance(actor, str) or not actor:
        raise ValueError("audit event actor is required")
    payload = record.get("payload") or {}
    if not isinstance(payload, dict):
        raise ValueError("audit event payload must be an object")
    return AuditEvent(
        entity=EntityKind(record.get("entity")),
        entity_id=entity_id,
        action=AuditAction(record.get("action")),
        actor=actor,
        at=at,
        payload=dict(payload),
    )


# ---------------------------------------------------------------------------
# domain -> record
# ---------------------------------------------------------------------------


def schedule_to_record(schedule: Schedule) -> dict[str, Any]:
    record: dict[str, Any] = {"_id": str(schedule.id)}
    record.update(snapshot(schedule))
    record["created_at"] = format_timestamp(schedule.created_at)
    record["updated_at"] = format_timestamp(schedule.updated_at)
    return record


def series_to_record(item: SeriesItem, *, application_number: str | None) -> dict[str, Any]:
    record: dict[str, Any] = {"_id": str(item.id), "schedule_id": str(item.schedule_id)}
    record.update(snapshot(item, application_number=application_number))
    record["retention_is_permanent"] = item.retention_is_permanent
    record["created_at"] = format_timestamp(item.created_at)
    record["updated_at"] = format_timestamp(item.updated_at)
    return record


def audit_to_record(event: AuditEvent) -> dict[str, Any]:
    return {
        "_id": str(event.id),
        "entity": event.entity.value,
        "entity_id": str(event.entity_id) if event.entity_id is not None else None,
        "action": event.action.value,
        "actor": event.actor,
        "at": format_timestamp(event.at),
        "payload": event.payload,
    }


def snapshot(entity: Entity, *, application_number: str | None = None) -> dict[str, Any]:
    """JSON-ready business values of ``entity`` without any store identity.

    Series snapshots name their schedule by ``application_number`` instead.
    """

    values = entity.business_values()
    if isinstance(entity, SeriesItem):
        values = {
            name: value for name, value in values.items() if name not in _SERIES_SNAPSHOT_EXCLUDED
        }
        values = {"application_number": application_number, **values}
    return {name: to_json_value(value) for name, value in values.items()}


def to_json_value(value: object) -> Any:
    if value is None or isinstance(value, bool | int | float | str):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Retention):
        return {
            "trigger": value.trigger.value,
            "stages": [{"where": stage.where.value, "years": stage.years} for stage in value.stages],
            "final_disposition": value.final_disposition.value,
        }
    if isinstance(value, PdfReference):
        return {"name": value.name, "url": value.url, "page_count": value.page_count}
    if isinstance(value, list | tuple):
        return [to_json_value(entry) for entry in value]
    raise TypeError(f"cannot serialize {type(value).__name__}")


# ---------------------------------------------------------------------------
# scalars
# ---------------------------------------------------------------------------


def _parse_date(value: object) -> date | None:
    if value is None:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO timestamp into an aware UTC datetime; ``None`` when unusable."""

    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            log.debug("Ignoring unparsable timestamp %r", value)
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")
