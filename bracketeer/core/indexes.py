"""Index definitions for every collection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pymongo import ASCENDING, DESCENDING

from .constants import (
    DISPUTES_COLLECTION,
    GAMES_COLLECTION,
    MATCHES_COLLECTION,
    NOTIFICATIONS_COLLECTION,
    REGISTRATIONS_COLLECTION,
    TEAMS_COLLECTION,
    TOURNAMENTS_COLLECTION,
    TRANSACTIONS_COLLECTION,
    USERS_COLLECTION,
)

if TYPE_CHECKING:
    from pymongo.database import Database


def ensure_indexes(db: Database | Any) -> None:
    """Create the indexes the services rely on. Safe to call repeatedly."""
    users = db[USERS_COLLECTION]
    users.create_index([("username", ASCENDING)], unique=True)
    users.create_index([("email", ASCENDING)], unique=True, sparse=True)

    games = db[GAMES_COLLECTION]
    games.create_index([("name", ASCENDING)], unique=True)
    games.create_index([("shortName", ASCENDING)], unique=True)

    teams = db[TEAMS_COLLECTION]
    teams.create_index([("name", ASCENDING), ("game", ASCENDING)], unique=True)
    teams.create_index([("tag", ASCENDING)], unique=True)
    teams.create_index([("members", ASCENDING)])

    tournaments = db[TOURNAMENTS_COLLECTION]
    tournaments.create_index([("status", ASCENDING), ("registrationStartDate", ASCENDING)])
    tournaments.create_index([("status", ASCENDING), ("registrationEndDate", ASCENDING)])
    tournaments.create_index([("tournamentStartDate", DESCENDING)])

    registrations = db[REGISTRATIONS_COLLECTION]
    registrations.create_index(
        [("user", ASCENDING), ("tournament", ASCENDING)], unique=True
    )
    registrations.create_index(
        [("team", ASCENDING), ("tournament", ASCENDING)],
        unique=True,
        partialFilterExpression={"team": {"$type": "objectId"}},
    )

    matches = db[MATCHES_COLLECTION]
    matches.create_index([("tournament", ASCENDING), ("round", ASCENDING)])
    matches.create_index([("participants.participantId", ASCENDING)])
    matches.create_index([("status", ASCENDING), ("scheduledTime", ASCENDING)])

    db[DISPUTES_COLLECTION].create_index([("match", ASCENDING)], unique=True)

    transactions = db[TRANSACTIONS_COLLECTION]
    transactions.create_index([("authority", ASCENDING)], sparse=True)
    transactions.create_index([("user", ASCENDING), ("createdAt", DESCENDING)])

    notifications = db[NOTIFICATIONS_COLLECTION]
    notifications.create_index([("recipient", ASCENDING), ("createdAt", DESCENDING)])
    notifications.create_index(
        [("entityId", ASCENDING), ("templateKey", ASCENDING), ("recipient", ASCENDING)]
    )
