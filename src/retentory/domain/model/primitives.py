"""Domain primitives: scalar aliases + small value objects.

Scalar aliases may be promoted to proper value objects later without changing imports.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from retentory.domain.model.enums import FinalDisposition, RetentionTrigger, StageLocation

type ApplicationNumber = str
type ItemNumber = str

APPLICATION_NUMBER_PATTERN: Final[re.Pattern[str]] = re.compile(r"\d{2}-\d{3}")
ITEM_NUMBER_PATTERN: Final[re.Pattern[str]] = re.compile(r"\d+(?:[A-Za-z]|\.\d+)?")


@dataclass(frozen=True)
class PdfReference:
    """Pointer to the approved schedule document. The PDF itself is never stored."""

    name: str | None = None
    url: str | None = None
    page_count: int | None = None


@dataclass(frozen=True)
class RetentionStage:
    where: StageLocation
    years: float


@dataclass(frozen=True)
class Retention:
    trigger: RetentionTrigger
    stages: tuple[RetentionStage, ...]
    final_disposition: FinalDisposition

    @property
    def is_permanent(self) -> bool:
        return self.final_disposition is FinalDisposition.PERMANENT

    @property
    def total_years(self) -> float:
        return sum(stage.years for stage in self.stages)
