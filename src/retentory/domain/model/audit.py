"""Append-only audit records for schedule and series mutations."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from retentory.domain.model.entity import new_id

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from .enums import AuditAction, EntityKind


@dataclass(eq=False, kw_only=True)
class AuditEvent:
    """Immutable fact about one mutation.

    ``entity_id`` is a non-owning back-reference; the event survives later
    changes to (or deletion of) the entity it describes. It is ``None`` for
    imported history whose subject could not be mapped into this store.
    """

    entity: EntityKind
    entity_id: UUID | None
    action: AuditAction
    actor: str
    at: datetime
    payload: dict[str, object] = field(default_factory=dict[str, object])
    id: UUID = field(default_factory=new_id)

    def fingerprint(self) -> tuple[object, ...]:
        """Identity-free equality key used to recognise already-imported history."""
        return (
            self.entity,
            self.entity_id,
            self.action,
            self.actor,
            self.at,
            json.dumps(self.payload, sort_keys=True, default=str),
        )
