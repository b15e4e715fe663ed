"""Data models for the match blueprint."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Optional, TypedDict

from bson import ObjectId

from bracketeer.core.constants import MATCH_COMPLETED
from bracketeer.core.types import MongoDocument
from bracketeer.errors import MatchIntegrityError, ValidationError
from bracketeer.utils import parse_datetime, parse_int, to_object_id


class ParticipantEntry(TypedDict):
    """Stored form of a participant reference."""

    participantId: ObjectId
    participantModel: str


class ScoreEntry(TypedDict):
    """A head-to-head score line."""

    participantId: ObjectId
    score: int


class ResultEntry(TypedDict):
    """A placement line for free-for-all formats."""

    participantId: ObjectId
    rank: int
    kills: int


class LobbyDetails(TypedDict, total=False):
    """In-game lobby information shared with participants."""

    code: str
    password: str
    isPublished: bool


class Match(MongoDocument, total=False):
    """A match document in MongoDB."""

    tournament: ObjectId
    bracket: ObjectId
    game: ObjectId
    round: int
    matchNumber: int
    status: str
    participants: list[ParticipantEntry]
    winner: Optional[ParticipantEntry]
    scores: list[ScoreEntry]
    results: list[ResultEntry]
    reportedBy: Optional[ObjectId]
    scheduledTime: Optional[datetime.datetime]
    completedAt: Optional[datetime.datetime]
    lobbyDetails: LobbyDetails


def check_match_integrity(match: dict[str, Any]) -> None:
    """Refuse to persist a match that breaks the structural rules.

    A completed match must carry its outcome: a winner, scores, or results.
    """
    participants = match.get("participants") or []
    if not 1 <= len(participants) <= 2:  # noqa: PLR2004
        raise MatchIntegrityError("A match must have one or two participants.")
    if match.get("status") == MATCH_COMPLETED and not (
        match.get("winner") or match.get("scores") or match.get("results")
    ):
        raise MatchIntegrityError(
            "A completed match needs a winner, scores, or results."
        )


@dataclass
class ResultReport:
    """A result submitted by one of the match participants."""

    scores: Optional[list[ScoreEntry]] = None
    results: Optional[list[ResultEntry]] = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> ResultReport:
        """Parse a report payload, converting ids and numbers."""
        has_scores = data.get("scores") is not None
        has_results = data.get("results") is not None
        if has_scores and has_results:
            raise ValidationError("Provide either scores or results, not both.")
        if not has_scores and not has_results:
            raise ValidationError("Either scores or results is required.")

        entries = data["scores"] if has_scores else data["results"]
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise ValidationError("Scores and results must be lists of objects.")

        if has_scores:
            scores: list[ScoreEntry] = [
                {
                    "participantId": to_object_id(e.get("participantId"), "participant id"),
                    "score": parse_int(e.get("score"), "score"),
                }
                for e in entries
            ]
            return cls(scores=scores)
        results: list[ResultEntry] = [
            {
                "participantId": to_object_id(e.get("participantId"), "participant id"),
                "rank": parse_int(e.get("rank"), "rank"),
                "kills": parse_int(e.get("kills", 0), "kills"),
            }
            for e in entries
        ]
        return cls(results=results)

    def validate(self) -> None:
        """Validate the shape of the report.

        Raises:
            ValueError: If the report is malformed.
        """
        if self.scores is not None:
            if len(self.scores) != 2:  # noqa: PLR2004
                raise ValueError("Scores must contain exactly 2 participants.")
            if any(entry["score"] < 0 for entry in self.scores):
                raise ValueError("Scores cannot be negative.")
        else:
            if not self.results:
                raise ValueError("Results must contain at least one entry.")
            if any(entry["rank"] < 1 for entry in self.results):
                raise ValueError("Rank must be a positive integer.")
            if any(entry["kills"] < 0 for entry in self.results):
                raise ValueError("Kills cannot be negative.")
        ids = self.participant_ids()
        if len(ids) != len(set(ids)):
            raise ValueError("Participant ids in a report must be unique.")

    def participant_ids(self) -> list[ObjectId]:
        entries = self.scores if self.scores is not None else self.results or []
        return [entry["participantId"] for entry in entries]

    def is_tie(self) -> bool:
        return self.scores is not None and self.scores[0]["score"] == self.scores[1]["score"]


def winner_from_report(match: dict[str, Any]) -> ObjectId | None:
    """Return the participant id the stored report names as winner."""
    if match.get("scores"):
        best = max(match["scores"], key=lambda entry: entry["score"])
        if sum(1 for e in match["scores"] if e["score"] == best["score"]) > 1:
            return None
        return best["participantId"]
    if match.get("results"):
        return min(match["results"], key=lambda entry: entry["rank"])["participantId"]
    return None


@dataclass
class LobbyUpdate:
    """Organizer changes to a match's lobby and schedule."""

    code: Optional[str] = None
    password: Optional[str] = None
    is_published: Optional[bool] = None
    scheduled_time: Optional[datetime.datetime] = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> LobbyUpdate:
        is_published = data.get("isPublished")
        if is_published is not None and not isinstance(is_published, bool):
            raise ValidationError("isPublished must be a boolean.")
        for key in ("code", "password"):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise ValidationError(f"Lobby {key} must be a string.")
        scheduled = data.get("scheduledTime")
        return cls(
            code=data["code"].strip() if data.get("code") is not None else None,
            password=data["password"].strip() if data.get("password") is not None else None,
            is_published=is_published,
            scheduled_time=parse_datetime(scheduled, "scheduledTime") if scheduled else None,
        )
