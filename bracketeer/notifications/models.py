"""Data models for notifications."""

from __future__ import annotations

from typing import Any

from bson import ObjectId

from bracketeer.core.types import MongoDocument


class Notification(MongoDocument, total=False):
    """A message addressed to one user, rendered from a template."""

    recipient: ObjectId
    templateKey: str
    params: dict[str, Any]
    entityId: ObjectId
    entityModel: str
    isRead: bool
