"""Data models for teams."""

from __future__ import annotations

from typing import Any, TypedDict

from bson import ObjectId

from bracketeer.core.constants import DEFAULT_RATING
from bracketeer.core.types import MongoDocument

TEAM_NAME_MIN_LENGTH = 3
TEAM_NAME_MAX_LENGTH = 30
TEAM_TAG_MIN_LENGTH = 2
TEAM_TAG_MAX_LENGTH = 5


class TeamStats(TypedDict):
    """Denormalized performance counters for a team."""

    wins: int
    losses: int
    tournamentsPlayed: int
    rankPoints: int


class Team(MongoDocument, total=False):
    """A team document in MongoDB."""

    name: str
    tag: str
    game: ObjectId
    captain: ObjectId
    members: list[ObjectId]
    avatar: str
    stats: TeamStats


def default_stats() -> TeamStats:
    return {
        "wins": 0,
        "losses": 0,
        "tournamentsPlayed": 0,
        "rankPoints": DEFAULT_RATING,
    }


def validate_team(team: dict[str, Any]) -> None:
    """Check the rules every persisted team must satisfy.

    Raises:
        ValueError: If the team is malformed.
    """
    name = team.get("name") or ""
    if not TEAM_NAME_MIN_LENGTH <= len(name) <= TEAM_NAME_MAX_LENGTH:
        raise ValueError(
            f"Team name must be {TEAM_NAME_MIN_LENGTH}-{TEAM_NAME_MAX_LENGTH} characters."
        )
    tag = team.get("tag") or ""
    if not TEAM_TAG_MIN_LENGTH <= len(tag) <= TEAM_TAG_MAX_LENGTH:
        raise ValueError(
            f"Team tag must be {TEAM_TAG_MIN_LENGTH}-{TEAM_TAG_MAX_LENGTH} characters."
        )
    if tag != tag.upper():
        raise ValueError("Team tag must be upper case.")
    if team.get("captain") not in team.get("members", []):
        raise ValueError("The team captain must always be a member of the team.")
