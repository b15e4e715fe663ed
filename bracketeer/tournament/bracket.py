"""Single-elimination bracket construction."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Any

from bracketeer.core.constants import (
    MATCH_COMPLETED,
    MATCH_PENDING,
    SINGLE_ELIMINATION,
)
from bracketeer.core.types import ParticipantRef
from bracketeer.errors import InvalidStateError, ValidationError
from bracketeer.match.models import check_match_integrity
from bracketeer.utils import utcnow

if TYPE_CHECKING:
    import datetime

    from bson import ObjectId


class BracketGenerator:
    """Utility class for generating bracket rounds."""

    MIN_PARTICIPANTS = 2

    @staticmethod
    def ensure_supported(structure: str) -> None:
        """Fail loudly for structures without a generator."""
        if structure != SINGLE_ELIMINATION:
            raise ValidationError(
                f"Bracket generation for '{structure}' is not implemented."
            )

    @staticmethod
    def participants_from_registrations(
        registrations: list[dict[str, Any]], team_size: int
    ) -> list[ParticipantRef]:
        """Pick the team or the user of each registration as the participant."""
        if team_size > 1:
            if any(reg.get("team") is None for reg in registrations):
                raise InvalidStateError(
                    "Every entry in a team tournament must be registered with a team."
                )
            return [ParticipantRef.team(reg["team"]) for reg in registrations]
        return [ParticipantRef.user(reg["user"]) for reg in registrations]

    @staticmethod
    def seed(
        participants: list[ParticipantRef], rng: random.Random | None = None
    ) -> list[ParticipantRef]:
        """Return the participants in a uniformly random order."""
        seeded = list(participants)
        (rng or random).shuffle(seeded)
        return seeded

    @staticmethod
    def pair(
        participants: list[ParticipantRef],
    ) -> tuple[list[tuple[ParticipantRef, ParticipantRef]], ParticipantRef | None]:
        """Pair consecutive participants; an odd one out gets a bye."""
        pairs = [
            (participants[i], participants[i + 1])
            for i in range(0, len(participants) - 1, 2)
        ]
        bye = participants[-1] if len(participants) % 2 else None
        return pairs, bye

    @staticmethod
    def _new_match(
        tournament: dict[str, Any],
        bracket_id: ObjectId,
        round_number: int,
        match_number: int,
        scheduled_time: datetime.datetime | None,
        now: datetime.datetime,
    ) -> dict[str, Any]:
        return {
            "tournament": tournament["_id"],
            "bracket": bracket_id,
            "game": tournament.get("game"),
            "round": round_number,
            "matchNumber": match_number,
            "scores": [],
            "results": [],
            "reportedBy": None,
            "scheduledTime": scheduled_time,
            "lobbyDetails": {"isPublished": False},
            "createdAt": now,
            "updatedAt": now,
        }

    @staticmethod
    def build_round(
        tournament: dict[str, Any],
        bracket_id: ObjectId,
        round_number: int,
        participants: list[ParticipantRef],
        scheduled_time: datetime.datetime | None,
    ) -> list[dict[str, Any]]:
        """Build the match documents of one round, in bracket order."""
        pairs, bye = BracketGenerator.pair(participants)
        now = utcnow()
        matches = []
        for number, (first, second) in enumerate(pairs, start=1):
            match = BracketGenerator._new_match(
                tournament, bracket_id, round_number, number, scheduled_time, now
            )
            match.update(
                status=MATCH_PENDING,
                participants=[first.to_document(), second.to_document()],
                winner=None,
            )
            matches.append(match)
        if bye is not None:
            match = BracketGenerator._new_match(
                tournament, bracket_id, round_number, len(pairs) + 1, scheduled_time, now
            )
            match.update(
                status=MATCH_COMPLETED,
                participants=[bye.to_document()],
                winner=bye.to_document(),
                completedAt=now,
            )
            matches.append(match)
        for match in matches:
            check_match_integrity(match)
        return matches
