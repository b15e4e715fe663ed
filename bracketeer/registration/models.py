"""Data models for the registration blueprint."""

from __future__ import annotations

import datetime
from typing import Optional

from bson import ObjectId

from bracketeer.core.types import MongoDocument


class Registration(MongoDocument, total=False):
    """A user's (and, for team events, their team's) entry in a tournament."""

    user: ObjectId
    tournament: ObjectId
    team: ObjectId
    status: str
    paymentStatus: str
    amountPaid: int
    checkedInAt: Optional[datetime.datetime]
    finalRank: Optional[int]
