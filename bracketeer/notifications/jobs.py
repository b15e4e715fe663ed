"""Background notification jobs."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING

from bracketeer.core.constants import (
    MATCH_PENDING,
    MATCHES_COLLECTION,
    NOTIFICATIONS_COLLECTION,
    NOTIFY_MATCH_REMINDER,
)
from bracketeer.match.utils import expand_to_user_ids
from bracketeer.utils import utcnow

from .services import NotificationService

if TYPE_CHECKING:
    from pymongo.database import Database

logger = logging.getLogger(__name__)

REMINDER_LEAD = datetime.timedelta(minutes=15)
REMINDER_WINDOW = datetime.timedelta(minutes=1)


def send_match_reminders(db: Database, now: datetime.datetime | None = None) -> int:
    """Remind players of pending matches starting in 15 to 16 minutes.

    Players already reminded about a match are skipped, so overlapping runs
    send each reminder once.

    Returns:
        The number of reminders sent.
    """
    now = now or utcnow()
    window_start = now + REMINDER_LEAD
    matches = db[MATCHES_COLLECTION].find(
        {
            "status": MATCH_PENDING,
            "scheduledTime": {"$gte": window_start, "$lt": window_start + REMINDER_WINDOW},
        }
    )
    sent = 0
    for match in matches:
        already = set(
            db[NOTIFICATIONS_COLLECTION].distinct(
                "recipient",
                {"templateKey": NOTIFY_MATCH_REMINDER, "entityId": match["_id"]},
            )
        )
        for user_id in expand_to_user_ids(db, match["participants"]):
            if user_id in already:
                continue
            NotificationService.send(
                user_id,
                NOTIFY_MATCH_REMINDER,
                {"round": match["round"], "scheduledTime": match["scheduledTime"]},
                match["_id"],
                "Match",
                db,
            )
            sent += 1
    if sent:
        logger.info(f"Sent {sent} match reminder(s)")
    return sent
