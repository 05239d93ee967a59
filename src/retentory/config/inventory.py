"""Inventory defaults: audit actor, agency identity, and import policy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_flag, env_str

DEFAULT_ACTOR: Final[str] = "local-user"
DEFAULT_AGENCY_NAME: Final[str] = "Records Management Office"
DEFAULT_AGENCY_ABBREV: Final[str] = "RMO"


@dataclass(frozen=True, slots=True)
class AgencyConfig:
    name: str = DEFAULT_AGENCY_NAME
    abbrev: str = DEFAULT_AGENCY_ABBREV


@dataclass(frozen=True, slots=True)
class ImportConfig:
    actor: str = DEFAULT_ACTOR
    merge_drafts_by_title: bool = False


def get_agency_config() -> AgencyConfig:
    return AgencyConfig(
        name=env_str("RETENTORY_AGENCY_NAME", DEFAULT_AGENCY_NAME),
        abbrev=env_str("RETENTORY_AGENCY_ABBREV", DEFAULT_AGENCY_ABBREV),
    )


def get_import_config() -> ImportConfig:
    return ImportConfig(
        actor=env_str("RETENTORY_ACTOR", DEFAULT_ACTOR),
        merge_drafts_by_title=env_flag("RETENTORY_MERGE_DRAFTS_BY_TITLE"),
    )
