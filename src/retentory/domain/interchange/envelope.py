"""Pydantic models describing the interchange (backup) envelope.

Only the top-level shape is checked here. Individual records stay plain
mappings so the validator can report every field-level problem per record
instead of failing the whole payload.
"""

from __future__ import annotations

from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from retentory.domain.errors import StructuralError

INTERCHANGE_VERSION: Final = 2

type RawRecord = dict[str, Any]


class InterchangeBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AgencyPayload(InterchangeBaseModel):
    name: str | None = None
    abbrev: str | None = None


class InterchangePayload(InterchangeBaseModel):
    version: int
    exported_at: str | None = None
    agency: AgencyPayload | None = None
    schedules: list[RawRecord]
    series_items: list[RawRecord]
    audit_events: list[RawRecord] = Field(default_factory=list[RawRecord])

    @field_validator("version", mode="before")
    @classmethod
    def _require_supported_version(cls, value: object) -> object:
        if isinstance(value, bool) or value != INTERCHANGE_VERSION:
            raise ValueError(f"unsupported interchange version {value!r}")
        return value


def parse_envelope(payload: object) -> InterchangePayload:
    """Check the top-level shape of ``payload`` or raise ``StructuralError``."""

    if isinstance(payload, InterchangePayload):
        return payload
    if not isinstance(payload, dict):
        raise StructuralError("payload must be a JSON object")
    try:
        return InterchangePayload.model_validate(payload)
    except ValidationError as exc:
        raise StructuralError(_describe(exc)) from exc


def _describe(exc: ValidationError) -> str:
    problems = [
        f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
        for error in exc.errors()
    ]
    return "malformed payload: " + "; ".join(problems)
