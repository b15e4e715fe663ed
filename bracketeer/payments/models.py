"""Data models for the wallet ledger."""

from __future__ import annotations

from typing import Optional

from bson import ObjectId

from bracketeer.core.types import MongoDocument


class Transaction(MongoDocument, total=False):
    """One movement of money into or out of a user's wallet."""

    user: ObjectId
    amount: int
    type: str
    status: str
    description: str
    authority: Optional[str]
    refId: Optional[str]
    relatedEntityId: Optional[ObjectId]
