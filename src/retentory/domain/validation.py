"""Pure field-level validation of schedule and series records.

Records are interchange-shaped mappings (what a payload or an edit form
carries). Every violation is collected; nothing here consults the store, so
composite-key and foreign-key rules are enforced elsewhere.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from retentory.domain.model import (
    APPLICATION_NUMBER_PATTERN,
    ITEM_NUMBER_PATTERN,
    ApprovalStatus,
    FinalDisposition,
    RetentionTrigger,
    StageLocation,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from retentory.domain.model import Schedule


EMAIL_PATTERN: Final[re.Pattern[str]] = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

SCHEDULE_TEXT_FIELDS: Final = ("title", "approving_body", "retention_statement", "notes")
SERIES_TEXT_FIELDS: Final = (
    "description",
    "arrangement",
    "division",
    "contact",
    "location",
    "retention_text",
    "representative_name",
    "representative_title",
    "records_officer_name",
    "notes",
)
SERIES_EMAIL_FIELDS: Final = ("representative_email", "records_officer_email")
SERIES_LIST_FIELDS: Final = ("media_types", "omb_or_statute_refs", "related_series")
SERIES_FLAG_FIELDS: Final = ("open_ended", "legal_hold", "audit_hold")
SERIES_VOLUME_FIELDS: Final = ("volume_paper_cubic_feet", "annual_accumulation_paper_cubic_feet")
SERIES_BYTE_FIELDS: Final = ("volume_electronic_bytes", "annual_accumulation_electronic_bytes")
# largest value a signed 64-bit integer column holds
MAX_BYTE_COUNT: Final = 2**63 - 1


class ValidationCode(StrEnum):
    MISSING = "missing"
    WRONG_TYPE = "wrong_type"
    BAD_FORMAT = "bad_format"
    UNKNOWN_VALUE = "unknown_value"
    NEGATIVE = "negative"
    INCONSISTENT = "inconsistent"


@dataclass(frozen=True, slots=True)
class ValidationError:
    code: ValidationCode
    field: str
    message: str


def validate_schedule(record: Mapping[str, object]) -> tuple[ValidationError, ...]:
    """Return every field-level violation of a schedule record."""

    errors: list[ValidationError] = []

    status = record.get("approval_status")
    if status is None:
        errors.append(_error(ValidationCode.MISSING, "approval_status", "is required"))
    else:
        _check_enum(errors, "approval_status", status, ApprovalStatus)

    application_number = record.get("application_number")
    if application_number is not None:
        if not isinstance(application_number, str):
            errors.append(
                _error(ValidationCode.WRONG_TYPE, "application_number", "must be a string")
            )
        elif not APPLICATION_NUMBER_PATTERN.fullmatch(application_number):
            errors.append(
                _error(
                    ValidationCode.BAD_FORMAT,
                    "application_number",
                    f"{application_number!r} does not look like NN-NNN",
                )
            )

    _check_optional_date(errors, "approval_date", record.get("approval_date"))
    _check_text_fields(errors, record, SCHEDULE_TEXT_FIELDS)
    _check_string_list(errors, "tags", record.get("tags"))
    _check_pdf(errors, record.get("pdf"))
    return tuple(errors)


def validate_series(
    record: Mapping[str, object],
    schedule: Schedule | None = None,
) -> tuple[ValidationError, ...]:
    """Return every field-level violation of a series record.

    ``schedule`` only adds context to messages; whether it exists is a
    referential question answered by the store.
    """

    errors: list[ValidationError] = []

    item_number = record.get("item_number")
    if item_number is None or item_number == "":
        errors.append(_error(ValidationCode.MISSING, "item_number", "is required"))
    elif not isinstance(item_number, str):
        errors.append(_error(ValidationCode.WRONG_TYPE, "item_number", "must be a string"))
    elif not ITEM_NUMBER_PATTERN.fullmatch(item_number):
        where = f" on schedule {schedule.application_number}" if schedule is not None else ""
        errors.append(
            _error(
                ValidationCode.BAD_FORMAT,
                "item_number",
                f"{item_number!r}{where} must look like 1, 12a or 3.1",
            )
        )

    title = record.get("record_series_title")
    if not isinstance(title, str) or not title.strip():
        errors.append(_error(ValidationCode.MISSING, "record_series_title", "is required"))

    _check_retention(errors, record.get("retention"), record.get("retention_is_permanent"))
    _check_coverage(errors, record)
    _check_text_fields(errors, record, SERIES_TEXT_FIELDS)
    for name in SERIES_LIST_FIELDS:
        _check_string_list(errors, name, record.get(name))
    for name in SERIES_FLAG_FIELDS:
        value = record.get(name)
        if value is not None and not isinstance(value, bool):
            errors.append(_error(ValidationCode.WRONG_TYPE, name, "must be true or false"))
    for name in SERIES_VOLUME_FIELDS:
        _check_non_negative(errors, name, record.get(name))
    for name in SERIES_BYTE_FIELDS:
        _check_byte_count(errors, name, record.get(name))
    for name in SERIES_EMAIL_FIELDS:
        value = record.get(name)
        if value is None or value == "":
            continue
        if not isinstance(value, str) or not EMAIL_PATTERN.fullmatch(value):
            errors.append(
                _error(ValidationCode.BAD_FORMAT, name, "must be a valid e-mail address")
            )
    return tuple(errors)


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _error(code: ValidationCode, field: str, message: str) -> ValidationError:
    return ValidationError(code=code, field=field, message=message)


def _check_enum(
    errors: list[ValidationError],
    name: str,
    value: object,
    enum_type: type[StrEnum],
) -> None:
    allowed = {member.value for member in enum_type}
    if not isinstance(value, str) or value not in allowed:
        errors.append(
            _error(
                ValidationCode.UNKNOWN_VALUE,
                name,
                f"{value!r} is not one of {', '.join(sorted(allowed))}",
            )
        )


def _parse_date(value: object) -> date | None:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _check_optional_date(errors: list[ValidationError], name: str, value: object) -> None:
    if value is None:
        return
    if _parse_date(value) is None:
        errors.append(_error(ValidationCode.BAD_FORMAT, name, "must be an ISO date (YYYY-MM-DD)"))


def _check_text_fields(
    errors: list[ValidationError],
    record: Mapping[str, object],
    names: Iterable[str],
) -> None:
    for name in names:
        value = record.get(name)
        if value is not None and not isinstance(value, str):
            errors.append(_error(ValidationCode.WRONG_TYPE, name, "must be text"))


def _check_string_list(errors: list[ValidationError], name: str, value: object) -> None:
    if value is None:
        return
    if not isinstance(value, list) or not all(isinstance(entry, str) for entry in value):
        errors.append(_error(ValidationCode.WRONG_TYPE, name, "must be a list of strings"))


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _check_non_negative(errors: list[ValidationError], name: str, value: object) -> None:
    if value is None:
        return
    if not _is_number(value):
        errors.append(_error(ValidationCode.WRONG_TYPE, name, "must be a number"))
    elif not math.isfinite(value):  # type: ignore[arg-type]
        errors.append(_error(ValidationCode.BAD_FORMAT, name, "must be a finite number"))
    elif value < 0:  # type: ignore[operator]
        errors.append(_error(ValidationCode.NEGATIVE, name, "must not be negative"))


def _check_byte_count(errors: list[ValidationError], name: str, value: object) -> None:
    if value is None:
        return
    if not isinstance(value, int) or isinstance(value, bool):
        errors.append(_error(ValidationCode.WRONG_TYPE, name, "must be a whole number of bytes"))
    elif value < 0:
        errors.append(_error(ValidationCode.NEGATIVE, name, "must not be negative"))
    elif value > MAX_BYTE_COUNT:
        errors.append(_error(ValidationCode.BAD_FORMAT, name, f"must not exceed {MAX_BYTE_COUNT}"))


def _check_pdf(errors: list[ValidationError], value: object) -> None:
    if value is None:
        return
    if not isinstance(value, dict):
        errors.append(_error(ValidationCode.WRONG_TYPE, "pdf", "must be an object or null"))
        return
    for key in ("name", "url"):
        entry = value.get(key)
        if entry is not None and not isinstance(entry, str):
            errors.append(_error(ValidationCode.WRONG_TYPE, f"pdf.{key}", "must be text"))
    page_count = value.get("page_count")
    if page_count is not None and (not isinstance(page_count, int) or isinstance(page_count, bool)):
        errors.append(_error(ValidationCode.WRONG_TYPE, "pdf.page_count", "must be an integer"))
    elif page_count is not None and page_count < 0:
        errors.append(_error(ValidationCode.NEGATIVE, "pdf.page_count", "must not be negative"))


def _check_retention(
    errors: list[ValidationError],
    retention: object,
    permanent_flag: object,
) -> None:
    if retention is None:
        errors.append(_error(ValidationCode.MISSING, "retention", "is required"))
        return
    if not isinstance(retention, dict):
        errors.append(_error(ValidationCode.WRONG_TYPE, "retention", "must be an object"))
        return

    trigger = retention.get("trigger")
    if trigger is None:
        errors.append(_error(ValidationCode.MISSING, "retention.trigger", "is required"))
    else:
        _check_enum(errors, "retention.trigger", trigger, RetentionTrigger)

    stages = retention.get("stages")
    if not isinstance(stages, list) or not stages:
        errors.append(
            _error(ValidationCode.MISSING, "retention.stages", "needs at least one stage")
        )
    else:
        for index, stage in enumerate(stages):
            prefix = f"retention.stages[{index}]"
            if not isinstance(stage, dict):
                errors.append(_error(ValidationCode.WRONG_TYPE, prefix, "must be an object"))
                continue
            _check_enum(errors, f"{prefix}.where", stage.get("where"), StageLocation)
            years = stage.get("years")
            if years is None:
                errors.append(_error(ValidationCode.MISSING, f"{prefix}.years", "is required"))
            else:
                _check_non_negative(errors, f"{prefix}.years", years)

    disposition = retention.get("final_disposition")
    if disposition is None:
        errors.append(
            _error(ValidationCode.MISSING, "retention.final_disposition", "is required")
        )
        return
    _check_enum(errors, "retention.final_disposition", disposition, FinalDisposition)

    if permanent_flag is not None and permanent_flag != (
        disposition == FinalDisposition.PERMANENT.value
    ):
        errors.append(
            _error(
                ValidationCode.INCONSISTENT,
                "retention_is_permanent",
                "disagrees with retention.final_disposition",
            )
        )


def _check_coverage(errors: list[ValidationError], record: Mapping[str, object]) -> None:
    raw_start = record.get("dates_covered_start")
    raw_end = record.get("dates_covered_end")
    open_ended = record.get("open_ended", False)

    start = _parse_date(raw_start)
    if raw_start is None:
        errors.append(_error(ValidationCode.MISSING, "dates_covered_start", "is required"))
    elif start is None:
        errors.append(
            _error(ValidationCode.BAD_FORMAT, "dates_covered_start", "must be an ISO date")
        )

    end = _parse_date(raw_end)
    if raw_end is not None and end is None:
        errors.append(_error(ValidationCode.BAD_FORMAT, "dates_covered_end", "must be an ISO date"))

    if raw_end is None and open_ended is not True:
        errors.append(
            _error(
                ValidationCode.INCONSISTENT,
                "dates_covered_end",
                "is required unless the series is open ended",
            )
        )
    if raw_end is not None and open_ended is True:
        errors.append(
            _error(
                ValidationCode.INCONSISTENT,
                "open_ended",
                "an open-ended series cannot have an end date",
            )
        )
    if start is not None and end is not None and end < start:
        errors.append(
            _error(ValidationCode.INCONSISTENT, "dates_covered_end", "is before the start date")
        )
