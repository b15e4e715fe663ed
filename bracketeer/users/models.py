"""Data models for users."""

from __future__ import annotations

from typing import Any, TypedDict

from bson import ObjectId

from bracketeer.core.types import MongoDocument


class EloRating(TypedDict):
    """A user's rating in one game."""

    game: ObjectId
    rating: int


class User(MongoDocument, total=False):
    """A user document in MongoDB."""

    username: str
    email: str
    avatar: str
    role: str
    status: str
    walletBalance: int
    eloRating: list[EloRating]
    teams: list[ObjectId]
    lastLogin: Any


PUBLIC_USER_FIELDS = {
    "username": 1,
    "avatar": 1,
    "role": 1,
    "status": 1,
    "eloRating": 1,
    "teams": 1,
    "createdAt": 1,
}
