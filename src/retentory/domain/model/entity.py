"""
Base building blocks:
store identity and the entity-kind contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from collections.abc import Mapping

    from retentory.domain.model.enums import EntityKind


def new_id() -> UUID:
    return uuid4()


@dataclass(eq=False, kw_only=True)
class Entity:
    """Store identity exists immediately in the domain.

    Identities are opaque handles local to one store. They are never compared
    with identities taken from another store or from an interchange payload.
    """

    id: UUID = field(default_factory=new_id)

    # class-level discriminator; subclasses must override
    ENTITY_TYPE: ClassVar[EntityKind]
    # fields compared for change detection and captured in audit snapshots
    BUSINESS_FIELDS: ClassVar[tuple[str, ...]]

    @property
    def entity_type(self) -> EntityKind:
        return self.ENTITY_TYPE

    def business_values(self) -> dict[str, object]:
        return {name: getattr(self, name) for name in self.BUSINESS_FIELDS}

    def assign(self, values: Mapping[str, object]) -> None:
        """Overwrite business fields in place (identity and timestamps untouched)."""

        for name, value in values.items():
            if name not in self.BUSINESS_FIELDS:
                raise KeyError(f"{name} is not a business field of {type(self).__name__}")
            setattr(self, name, value)
