"""Domain exceptions shared by the store, the reconciler and the app layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from retentory.domain.validation import ValidationError


class StructuralError(ValueError):
    """Interchange payload does not have the required top-level shape."""


class ReferentialError(LookupError):
    """A series item references a schedule that does not exist in the store."""


class StoreError(RuntimeError):
    """Persistent storage failed.

    ``systemic`` marks failures that make further writes pointless (lost
    connection, locked or unreadable database) as opposed to a single rejected
    row.
    """

    def __init__(self, message: str, *, systemic: bool = False) -> None:
        super().__init__(message)
        self.systemic = systemic


class RecordValidationError(ValueError):
    """A single edited record failed validation."""

    def __init__(self, errors: tuple[ValidationError, ...]) -> None:
        self.errors = errors
        summary = "; ".join(f"{error.field}: {error.message}" for error in errors)
        super().__init__(f"record is invalid: {summary}")


class ConflictError(ValueError):
    """An edit would give a record a business key another record already holds."""
