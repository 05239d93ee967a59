"""Audit recorder: turns effective mutations into append-only events."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from retentory.domain.model import AuditAction, AuditEvent

if TYPE_CHECKING:
    from uuid import UUID

    from retentory.domain.model import EntityKind

type Clock = Callable[[], datetime]
type Snapshot = dict[str, Any]


def utc_now() -> datetime:
    return datetime.now(UTC)


def changed_keys(before: Snapshot, after: Snapshot) -> list[str]:
    """Keys whose values differ between two snapshots, in ``after`` order."""

    keys = list(after)
    keys.extend(key for key in before if key not in after)
    return [key for key in keys if before.get(key) != after.get(key)]


class AuditRecorder:
    """Build one audit event per effective change.

    Updates that change nothing yield no event. Payloads carry business
    snapshots only, so they stay meaningful after export to another store.
    """

    def __init__(self, actor: str, clock: Clock = utc_now) -> None:
        self.actor = actor
        self._clock = clock

    def created(self, entity: EntityKind, entity_id: UUID, after: Snapshot) -> AuditEvent:
        return self._event(entity, entity_id, AuditAction.CREATE, {"after": after})

    def updated(
        self,
        entity: EntityKind,
        entity_id: UUID,
        before: Snapshot,
        after: Snapshot,
    ) -> AuditEvent | None:
        changed = changed_keys(before, after)
        if not changed:
            return None
        payload: dict[str, object] = {
            "before": {key: before.get(key) for key in changed},
            "after": {key: after.get(key) for key in changed},
            "changed": changed,
        }
        return self._event(entity, entity_id, AuditAction.UPDATE, payload)

    def deleted(self, entity: EntityKind, entity_id: UUID, before: Snapshot) -> AuditEvent:
        return self._event(entity, entity_id, AuditAction.DELETE, {"before": before})

    def now(self) -> datetime:
        return self._clock()

    def _event(
        self,
        entity: EntityKind,
        entity_id: UUID,
        action: AuditAction,
        payload: dict[str, object],
    ) -> AuditEvent:
        return AuditEvent(
            entity=entity,
            entity_id=entity_id,
            action=action,
            actor=self.actor,
            at=self._clock(),
            payload=payload,
        )
