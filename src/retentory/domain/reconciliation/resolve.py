"""Schedule identity resolution for one incoming payload.

Responsibilities of this stage:
- map every incoming schedule's local id to a store identity
- match on the business key (``application_number``) only
- report duplicates inside the payload as conflicts

Out of scope for this stage:
- validation
- persistence
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from retentory.domain.interchange.translator import local_id
from retentory.domain.model import new_id

from .contracts import (
    IdentityDecision,
    IdentityResolution,
    MatchKind,
    RecordWarning,
    WarningKind,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence
    from uuid import UUID

    from retentory.domain.model import Schedule


def mint_identity() -> UUID:
    """Mint a fresh store identity. Incoming ids are never adopted."""
    return new_id()


def resolve_schedule_identities(
    existing: Iterable[Schedule],
    incoming: Sequence[Mapping[str, object]],
    *,
    merge_drafts_by_title: bool = False,
    mint: Callable[[], UUID] = mint_identity,
) -> IdentityResolution:
    """Resolve incoming schedule records against schedules already stored.

    Matching policy:
    - non-null ``application_number`` found in the store -> that schedule's identity
    - repeated ``application_number`` in the payload -> identity of the first occurrence
      plus a conflict warning
    - drafts (no ``application_number``) -> fresh identity, unless title merging is
      enabled and exactly one stored draft carries the identical title
    - anything else -> fresh identity
    """

    by_number: dict[str, Schedule] = {}
    drafts_by_title: dict[str, list[Schedule]] = defaultdict(list)
    for schedule in existing:
        if schedule.application_number is not None:
            by_number[schedule.application_number] = schedule
        elif schedule.title:
            drafts_by_title[schedule.title].append(schedule)

    resolution = IdentityResolution()
    claimed_numbers: dict[str, IdentityDecision] = {}
    claimed_drafts: dict[UUID, str] = {}

    for index, record in enumerate(incoming):
        record_id = local_id(record, index)
        if record_id in resolution.mapping:
            resolution.conflicts.append(
                _conflict(record_id, f"local id {record_id!r} appears more than once; first kept")
            )
            continue

        number = record.get("application_number")
        if isinstance(number, str) and number:
            decision = _resolve_by_number(record_id, number, by_number, claimed_numbers, mint)
            if decision.matched_by is MatchKind.DUPLICATE:
                first = claimed_numbers[number]
                resolution.conflicts.append(
                    _conflict(
                        record_id,
                        f"application number {number} already used by {first.local_id!r}; "
                        "both records resolve to the same schedule",
                    )
                )
            else:
                claimed_numbers[number] = decision
        elif merge_drafts_by_title and isinstance(title := record.get("title"), str) and title:
            decision = _resolve_draft_by_title(
                record_id, title, drafts_by_title.get(title, []), claimed_drafts, resolution, mint
            )
        else:
            decision = IdentityDecision(local_id=record_id, identity=mint(), is_new=True)

        resolution.mapping[record_id] = decision.identity
        resolution.decisions.append(decision)

    return resolution


def _resolve_by_number(
    record_id: str,
    number: str,
    by_number: Mapping[str, Schedule],
    claimed_numbers: Mapping[str, IdentityDecision],
    mint: Callable[[], UUID],
) -> IdentityDecision:
    first = claimed_numbers.get(number)
    if first is not None:
        return IdentityDecision(
            local_id=record_id,
            identity=first.identity,
            is_new=first.is_new,
            matched_by=MatchKind.DUPLICATE,
        )
    stored = by_number.get(number)
    if stored is not None:
        return IdentityDecision(
            local_id=record_id,
            identity=stored.id,
            is_new=False,
            matched_by=MatchKind.APPLICATION_NUMBER,
        )
    return IdentityDecision(local_id=record_id, identity=mint(), is_new=True)


def _resolve_draft_by_title(
    record_id: str,
    title: str,
    candidates: Sequence[Schedule],
    claimed_drafts: dict[UUID, str],
    resolution: IdentityResolution,
    mint: Callable[[], UUID],
) -> IdentityDecision:
    if len(candidates) > 1:
        resolution.conflicts.append(
            _conflict(
                record_id,
                f"{len(candidates)} stored drafts are titled {title!r}; imported as a new draft",
            )
        )
    elif len(candidates) == 1:
        target = candidates[0]
        previous = claimed_drafts.get(target.id)
        if previous is not None:
            resolution.conflicts.append(
                _conflict(
                    record_id,
                    f"draft {title!r} was already merged from {previous!r}; "
                    "imported as a new draft",
                )
            )
        else:
            claimed_drafts[target.id] = record_id
            return IdentityDecision(
                local_id=record_id,
                identity=target.id,
                is_new=False,
                matched_by=MatchKind.TITLE,
            )
    return IdentityDecision(local_id=record_id, identity=mint(), is_new=True)


def _conflict(record_id: str, message: str) -> RecordWarning:
    return RecordWarning(
        kind=WarningKind.CONFLICT,
        entity="schedule",
        local_id=record_id,
        message=message,
    )
