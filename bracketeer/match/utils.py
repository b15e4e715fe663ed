"""Helpers for resolving who stands behind a match participant."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from bracketeer.core.constants import TEAMS_COLLECTION
from bracketeer.core.types import ParticipantRef

if TYPE_CHECKING:
    from bson import ObjectId
    from pymongo.client_session import ClientSession
    from pymongo.database import Database


def expand_to_user_ids(
    db: Database,
    participants: list[dict[str, Any]],
    session: ClientSession | None = None,
) -> list[ObjectId]:
    """Return the users behind a list of participants; teams expand to members."""
    user_ids: list[ObjectId] = []
    team_ids: list[ObjectId] = []
    for entry in participants:
        ref = ParticipantRef.from_document(entry)
        if ref.is_team:
            team_ids.append(ref.id)
        else:
            user_ids.append(ref.id)
    if team_ids:
        for team in db[TEAMS_COLLECTION].find(
            {"_id": {"$in": team_ids}}, {"members": 1}, session=session
        ):
            user_ids.extend(team.get("members", []))
    return list(dict.fromkeys(user_ids))


def participant_for_user(
    db: Database,
    match: dict[str, Any],
    user_id: ObjectId,
    session: ClientSession | None = None,
) -> ParticipantRef | None:
    """Return the participant a user plays as in a match, if any.

    A user plays as themselves in individual matches and as their team
    in team matches.
    """
    for entry in match.get("participants", []):
        ref = ParticipantRef.from_document(entry)
        if not ref.is_team:
            if ref.id == user_id:
                return ref
        elif db[TEAMS_COLLECTION].find_one(
            {"_id": ref.id, "members": user_id}, {"_id": 1}, session=session
        ):
            return ref
    return None


def opponent_of(match: dict[str, Any], ref: ParticipantRef) -> ParticipantRef | None:
    """Return the other side of a head-to-head match."""
    for entry in match.get("participants", []):
        other = ParticipantRef.from_document(entry)
        if other != ref:
            return other
    return None
