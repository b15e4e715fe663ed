"""Common utilities for tests."""

from __future__ import annotations

import datetime
import unittest
from typing import Any
from unittest.mock import MagicMock

import fakeredis
import mongomock

from bracketeer import create_app
from bracketeer.auth.utils import generate_auth_token
from bracketeer.core.constants import (
    MATCH_ACTIVE,
    PAYMENT_NOT_APPLICABLE,
    REG_REGISTERED,
    ROLE_ADMIN,
    ROLE_USER,
    SINGLE_ELIMINATION,
    TOURNAMENT_REG_OPEN,
    USER_ACTIVE,
)
from bracketeer.core.types import ParticipantRef
from bracketeer.extensions import mongo, redis_store
from bracketeer.teams.models import default_stats
from bracketeer.utils import utcnow

# mongomock has no sessions; the services still pass ``session=`` everywhere
mongomock.ignore_feature("session")


class MockSession:
    """Stands in for a pymongo ClientSession and records how it was driven."""

    def __init__(self) -> None:
        self.in_transaction = False
        self.started = 0
        self.committed = 0
        self.aborted = 0
        self.ended = False

    def start_transaction(self, **kwargs: Any) -> None:
        self.in_transaction = True
        self.started += 1

    def commit_transaction(self) -> None:
        self.in_transaction = False
        self.committed += 1

    def abort_transaction(self) -> None:
        self.in_transaction = False
        self.aborted += 1

    def end_session(self) -> None:
        self.ended = True


def future(**kwargs: float) -> datetime.datetime:
    return utcnow() + datetime.timedelta(**kwargs)


def tournament_payload(game_id: Any, **overrides: Any) -> dict[str, Any]:
    """A valid camelCase tournament payload with dates in the future."""
    payload = {
        "name": "Friday Cup",
        "game": str(game_id),
        "structure": SINGLE_ELIMINATION,
        "teamSize": 1,
        "maxParticipants": 8,
        "rules": "Best of one.",
        "registrationStartDate": future(days=1).isoformat(),
        "registrationEndDate": future(days=2).isoformat(),
        "checkInStartDate": future(days=3).isoformat(),
        "tournamentStartDate": future(days=4).isoformat(),
        "entryFee": 0,
        "prizeStructure": [
            {"rank": 1, "prizes": [{"type": "wallet_credit", "description": "Cash", "amount": 5000}]}
        ],
    }
    payload.update(overrides)
    return payload


class BaseTestCase(unittest.TestCase):
    """App wired to mongomock and fakeredis, with document factories."""

    def setUp(self) -> None:
        self.mongo_client = mongomock.MongoClient(tz_aware=True)
        self.sessions: list[MockSession] = []
        self.mongo_client.start_session = MagicMock(side_effect=self._new_session)
        self.redis = fakeredis.FakeRedis(decode_responses=True)
        self.app = create_app(
            {"TESTING": True, "PAYMENT_MERCHANT_ID": "merchant-1"},
            mongo_client=self.mongo_client,
            redis_client=self.redis,
        )
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()
        self.db = mongo.db

    def tearDown(self) -> None:
        self.app_context.pop()
        mongo.client = mongo.db = None
        redis_store.client = None

    def _new_session(self, **kwargs: Any) -> MockSession:
        session = MockSession()
        self.sessions.append(session)
        return session

    def auth_headers(self, user: dict[str, Any]) -> dict[str, str]:
        return {"Authorization": f"Bearer {generate_auth_token(user['_id'])}"}

    # Factories

    def make_user(
        self,
        username: str = "player",
        role: str = ROLE_USER,
        wallet: int = 0,
        **extra: Any,
    ) -> dict[str, Any]:
        now = utcnow()
        user = {
            "username": username,
            "email": f"{username}@example.com",
            "role": role,
            "status": USER_ACTIVE,
            "walletBalance": wallet,
            "eloRating": [],
            "teams": [],
            "createdAt": now,
            "updatedAt": now,
            **extra,
        }
        user["_id"] = self.db.users.insert_one(user).inserted_id
        return user

    def make_admin(self, username: str = "admin") -> dict[str, Any]:
        return self.make_user(username, role=ROLE_ADMIN)

    def make_game(self, name: str = "Arena Clash") -> dict[str, Any]:
        now = utcnow()
        game = {
            "name": name,
            "shortName": name.lower().replace(" ", "-"),
            "platforms": ["pc"],
            "supportedModes": ["1v1"],
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        }
        game["_id"] = self.db.games.insert_one(game).inserted_id
        return game

    def make_team(
        self,
        captain: dict[str, Any],
        members: list[dict[str, Any]] | None = None,
        name: str = "Night Owls",
        tag: str = "OWL",
        game: dict[str, Any] | None = None,
        **stats: Any,
    ) -> dict[str, Any]:
        now = utcnow()
        team = {
            "name": name,
            "tag": tag,
            "game": (game or {}).get("_id"),
            "captain": captain["_id"],
            "members": [captain["_id"]] + [m["_id"] for m in members or []],
            "avatar": "/default-team-avatar.png",
            "stats": {**default_stats(), **stats},
            "createdAt": now,
            "updatedAt": now,
        }
        team["_id"] = self.db.teams.insert_one(team).inserted_id
        return team

    def make_tournament(
        self,
        organizer: dict[str, Any],
        game: dict[str, Any] | None = None,
        status: str = TOURNAMENT_REG_OPEN,
        **overrides: Any,
    ) -> dict[str, Any]:
        now = utcnow()
        tournament = {
            "name": "Friday Cup",
            "game": (game or {}).get("_id"),
            "rules": "Best of one.",
            "structure": SINGLE_ELIMINATION,
            "teamSize": 1,
            "maxParticipants": 8,
            "entryFee": 0,
            "prizeStructure": [],
            "registrationStartDate": now - datetime.timedelta(days=1),
            "registrationEndDate": now + datetime.timedelta(days=1),
            "checkInStartDate": now + datetime.timedelta(days=2),
            "tournamentStartDate": now + datetime.timedelta(days=3),
            "status": status,
            "organizer": organizer["_id"],
            "brackets": [],
            "registrationCount": 0,
            "createdAt": now,
            "updatedAt": now,
            **overrides,
        }
        tournament["_id"] = self.db.tournaments.insert_one(tournament).inserted_id
        return tournament

    def make_registration(
        self,
        tournament: dict[str, Any],
        user: dict[str, Any],
        team: dict[str, Any] | None = None,
        **overrides: Any,
    ) -> dict[str, Any]:
        now = utcnow()
        registration = {
            "user": user["_id"],
            "tournament": tournament["_id"],
            "status": REG_REGISTERED,
            "paymentStatus": PAYMENT_NOT_APPLICABLE,
            "checkedInAt": None,
            "finalRank": None,
            "createdAt": now,
            "updatedAt": now,
            **overrides,
        }
        if team is not None:
            registration["team"] = team["_id"]
        registration["_id"] = self.db.registrations.insert_one(registration).inserted_id
        return registration

    def make_match(
        self,
        tournament: dict[str, Any],
        participants: list[ParticipantRef],
        status: str = MATCH_ACTIVE,
        **overrides: Any,
    ) -> dict[str, Any]:
        now = utcnow()
        match = {
            "tournament": tournament["_id"],
            "bracket": None,
            "game": tournament.get("game"),
            "round": 1,
            "matchNumber": 1,
            "status": status,
            "participants": [ref.to_document() for ref in participants],
            "winner": None,
            "scores": [],
            "results": [],
            "reportedBy": None,
            "scheduledTime": tournament.get("tournamentStartDate"),
            "lobbyDetails": {"isPublished": False},
            "createdAt": now,
            "updatedAt": now,
            **overrides,
        }
        match["_id"] = self.db.matches.insert_one(match).inserted_id
        return match

    def principal(self, user: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": user["_id"],
            "username": user["username"],
            "role": user["role"],
            "status": user["status"],
        }
