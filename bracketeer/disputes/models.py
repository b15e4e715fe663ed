"""Data models for the disputes blueprint."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Optional, TypedDict

from bson import ObjectId

from bracketeer.core.constants import (
    DISPUTE_DECISIONS,
    DISPUTE_FINAL_COMMENT_MAX_LENGTH,
)
from bracketeer.core.types import MongoDocument


class Evidence(TypedDict):
    """A piece of evidence attached to a dispute."""

    uploader: ObjectId
    url: str
    description: str
    uploadedAt: datetime.datetime


class Comment(TypedDict):
    """One message in a dispute's thread."""

    author: ObjectId
    content: str
    timestamp: datetime.datetime


class Resolution(TypedDict):
    """The administrator's ruling on a dispute."""

    decision: str
    finalComment: str


class Dispute(MongoDocument, total=False):
    """A dispute document in MongoDB."""

    match: ObjectId
    tournament: ObjectId
    reporter: ObjectId
    reason: str
    status: str
    evidence: list[Evidence]
    comments: list[Comment]
    assignedTo: Optional[ObjectId]
    resolution: Optional[Resolution]


@dataclass
class DisputeResolution:
    """Represents a ruling before it is applied."""

    decision: str
    final_comment: str = ""

    def validate(self) -> None:
        """Validate the ruling.

        Raises:
            ValueError: If the decision is unknown or the comment is too long.
        """
        if self.decision not in DISPUTE_DECISIONS:
            raise ValueError(f"Unknown decision: {self.decision}")
        if len(self.final_comment) > DISPUTE_FINAL_COMMENT_MAX_LENGTH:
            raise ValueError(
                f"Final comment cannot exceed {DISPUTE_FINAL_COMMENT_MAX_LENGTH} characters."
            )

    def to_document(self) -> Resolution:
        return {"decision": self.decision, "finalComment": self.final_comment}
