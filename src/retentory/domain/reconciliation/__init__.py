"""Import reconciliation: identity resolution and payload merging."""

from __future__ import annotations

from .contracts import (
    EntityCounts,
    IdentityDecision,
    IdentityResolution,
    ImportOptions,
    ImportState,
    ImportSummary,
    MatchKind,
    RecordWarning,
    WarningKind,
)
from .engine import CANCELLED, Reconciler
from .resolve import mint_identity, resolve_schedule_identities

__all__ = [
    "CANCELLED",
    "EntityCounts",
    "IdentityDecision",
    "IdentityResolution",
    "ImportOptions",
    "ImportState",
    "ImportSummary",
    "MatchKind",
    "Reconciler",
    "RecordWarning",
    "WarningKind",
    "mint_identity",
    "resolve_schedule_identities",
]
