"""SQLAlchemy mapping metadata for the retention inventory."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import Any, cast

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from retentory.domain.interchange.translator import (
    pdf_from_record,
    retention_from_record,
    to_json_value,
)
from retentory.domain.model import (
    ApprovalStatus,
    AuditAction,
    AuditEvent,
    EntityKind,
    PdfReference,
    Retention,
    Schedule,
    SeriesItem,
)

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class StringListType(TypeDecorator[list[str]]):
    """Ordered list of strings stored as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps(list(value or []))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[str]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        return [item for item in cast(list[Any], loaded) if isinstance(item, str)]


class RetentionType(TypeDecorator[Retention]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Retention | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(to_json_value(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> Retention | None:
        _ = dialect
        if value is None:
            return None
        return retention_from_record(json.loads(value))


class PdfReferenceType(TypeDecorator[PdfReference]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: PdfReference | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(to_json_value(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> PdfReference | None:
        _ = dialect
        if value is None:
            return None
        return pdf_from_record(json.loads(value))


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Core tables -----------------------------------------------------------------

schedule_table = Table(
    "schedule",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("application_number", String(16), nullable=True, unique=True),
    Column("title", String, nullable=True),
    Column("approving_body", String, nullable=True),
    Column("approval_status", Enum(ApprovalStatus, native_enum=False), nullable=False),
    Column("approval_date", Date, nullable=True),
    Column("retention_statement", Text, nullable=True),
    Column("notes", Text, nullable=True),
    Column("pdf", PdfReferenceType, nullable=True),
    Column("tags", StringListType, nullable=False),
    Column("created_at", UTCDateTime, nullable=True),
    Column("updated_at", UTCDateTime, nullable=True),
)

series_item_table = Table(
    "series_item",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("schedule_id", UUIDColumnType, ForeignKey("schedule.id"), nullable=False),
    Column("item_number", String(32), nullable=False),
    Column("record_series_title", String, nullable=False),
    Column("description", Text, nullable=True),
    Column("dates_covered_start", Date, nullable=True),
    Column("dates_covered_end", Date, nullable=True),
    Column("open_ended", Boolean, nullable=False),
    Column("arrangement", String, nullable=True),
    Column("division", String, nullable=True),
    Column("contact", String, nullable=True),
    Column("location", String, nullable=True),
    Column("retention", RetentionType, nullable=False),
    Column(
        "retention_is_permanent",
        Boolean,
        key="_retention_is_permanent",
        nullable=False,
    ),
    Column("retention_text", Text, nullable=True),
    Column("volume_paper_cubic_feet", Float, nullable=True),
    Column("volume_electronic_bytes", BigInteger, nullable=True),
    Column("annual_accumulation_paper_cubic_feet", Float, nullable=True),
    Column("annual_accumulation_electronic_bytes", BigInteger, nullable=True),
    Column("media_types", StringListType, nullable=False),
    Column("omb_or_statute_refs", StringListType, nullable=False),
    Column("related_series", StringListType, nullable=False),
    Column("legal_hold", Boolean, nullable=False),
    Column("audit_hold", Boolean, nullable=False),
    Column("representative_name", String, nullable=True),
    Column("representative_title", String, nullable=True),
    Column("representative_email", String, nullable=True),
    Column("records_officer_name", String, nullable=True),
    Column("records_officer_email", String, nullable=True),
    Column("notes", Text, nullable=True),
    Column("created_at", UTCDateTime, nullable=True),
    Column("updated_at", UTCDateTime, nullable=True),
    UniqueConstraint("schedule_id", "item_number", name="uq_series_item_schedule_item"),
    Index("ix_series_item_division", "division"),
)

audit_event_table = Table(
    "audit_event",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("entity", Enum(EntityKind, native_enum=False), nullable=False),
    # No foreign key: events outlive the entity they describe.
    Column("entity_id", UUIDColumnType, nullable=True),
    Column("action", Enum(AuditAction, native_enum=False), nullable=False),
    Column("actor", String, nullable=False),
    Column("at", UTCDateTime, nullable=False),
    Column("payload", JSON, nullable=False),
    Index("ix_audit_event_subject", "entity", "entity_id", "at"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Schedule, schedule_table)
    mapper_registry.map_imperatively(SeriesItem, series_item_table)
    mapper_registry.map_imperatively(AuditEvent, audit_event_table)

    configure_mappers()
    return mapper_registry

