"""Core data types for the bracketeer application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypedDict

from bson import ObjectId

from .constants import PARTICIPANT_MODELS, PARTICIPANT_TEAM, PARTICIPANT_USER


class _MongoDocumentBase(TypedDict):
    _id: ObjectId
    createdAt: Any


class MongoDocument(_MongoDocumentBase, total=False):
    """Generic MongoDB document structure."""

    updatedAt: Any


class PaginatedResult(TypedDict):
    """A page of documents plus the totals needed to render pagination."""

    results: list[dict[str, Any]]
    page: int
    limit: int
    totalPages: int
    totalResults: int


@dataclass(frozen=True)
class ParticipantRef:
    """A tagged reference to whoever plays in a match: a user or a team."""

    kind: str
    id: ObjectId

    def __post_init__(self) -> None:
        if self.kind not in PARTICIPANT_MODELS:
            raise ValueError(f"Unknown participant kind: {self.kind!r}")

    @property
    def is_team(self) -> bool:
        return self.kind == PARTICIPANT_TEAM

    @classmethod
    def user(cls, user_id: ObjectId) -> ParticipantRef:
        return cls(PARTICIPANT_USER, user_id)

    @classmethod
    def team(cls, team_id: ObjectId) -> ParticipantRef:
        return cls(PARTICIPANT_TEAM, team_id)

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> ParticipantRef:
        return cls(data["participantModel"], data["participantId"])

    def to_document(self) -> dict[str, Any]:
        return {"participantId": self.id, "participantModel": self.kind}
