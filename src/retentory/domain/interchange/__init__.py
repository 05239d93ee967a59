"""Interchange (backup file) envelope and record translation."""

from __future__ import annotations

from .envelope import (
    INTERCHANGE_VERSION,
    AgencyPayload,
    InterchangePayload,
    RawRecord,
    parse_envelope,
)
from .translator import (
    audit_from_record,
    audit_to_record,
    format_timestamp,
    local_id,
    parse_timestamp,
    schedule_from_record,
    schedule_to_record,
    series_from_record,
    series_to_record,
    snapshot,
)

__all__ = [
    "INTERCHANGE_VERSION",
    "AgencyPayload",
    "InterchangePayload",
    "RawRecord",
    "audit_from_record",
    "audit_to_record",
    "format_timestamp",
    "local_id",
    "parse_envelope",
    "parse_timestamp",
    "schedule_from_record",
    "schedule_to_record",
    "series_from_record",
    "series_to_record",
    "snapshot",
]
