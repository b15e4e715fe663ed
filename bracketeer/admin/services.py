"""Service layer for admin-related operations."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any

from bracketeer.core.constants import (
    TOURNAMENT_ACTIVE,
    TOURNAMENTS_COLLECTION,
    TRANSACTIONS_COLLECTION,
    TX_COMPLETED,
    TX_WALLET_CHARGE,
    USERS_COLLECTION,
)
from bracketeer.extensions import mongo
from bracketeer.utils import utcnow

if TYPE_CHECKING:
    from pymongo.database import Database


class AdminService:
    """Service class for admin-related operations."""

    @staticmethod
    def get_dashboard_stats(db: Database | None = None) -> dict[str, Any]:
        """Fetch the headline numbers for the admin dashboard."""
        if db is None:
            db = mongo.db
        week_ago = utcnow() - datetime.timedelta(days=7)
        total_users = db[USERS_COLLECTION].count_documents({})
        new_users = db[USERS_COLLECTION].count_documents({"createdAt": {"$gte": week_ago}})
        active_tournaments = db[TOURNAMENTS_COLLECTION].count_documents(
            {"status": TOURNAMENT_ACTIVE}
        )
        revenue = list(
            db[TRANSACTIONS_COLLECTION].aggregate(
                [
                    {"$match": {"status": TX_COMPLETED, "type": TX_WALLET_CHARGE}},
                    {"$group": {"_id": None, "total": {"$sum": "$amount"}}},
                ]
            )
        )
        return {
            "users": {"total": total_users, "newLast7Days": new_users},
            "tournaments": {"active": active_tournaments},
            "revenue": {"total": revenue[0]["total"] if revenue else 0},
        }
