"""Service layer for user accounts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from bracketeer.core.constants import (
    DISPUTES_COLLECTION,
    REGISTRATIONS_COLLECTION,
    ROLE_USER,
    TEAMS_COLLECTION,
    USER_ACTIVE,
    USERS_COLLECTION,
)
from bracketeer.core.transactions import transaction
from bracketeer.errors import DuplicateResourceError, NotFoundError, ValidationError
from bracketeer.extensions import mongo
from bracketeer.utils import paginate, utcnow

from .models import PUBLIC_USER_FIELDS

if TYPE_CHECKING:
    from bson import ObjectId
    from pymongo.database import Database

    from bracketeer.core.types import PaginatedResult

    from .models import User

logger = logging.getLogger(__name__)


class UserService:
    """Handles business logic and data access for users."""

    @staticmethod
    def create_user(
        username: str,
        email: str | None = None,
        role: str = ROLE_USER,
        status: str = USER_ACTIVE,
        wallet_balance: int = 0,
        db: Database | None = None,
    ) -> User:
        """Create a user account record."""
        if db is None:
            db = mongo.db
        now = utcnow()
        user: dict[str, Any] = {
            "username": username,
            "role": role,
            "status": status,
            "walletBalance": wallet_balance,
            "eloRating": [],
            "teams": [],
            "createdAt": now,
            "updatedAt": now,
        }
        if email:
            user["email"] = email.lower()
        try:
            result = db[USERS_COLLECTION].insert_one(user)
        except DuplicateKeyError as e:
            raise DuplicateResourceError("Username or email is already taken.") from e
        user["_id"] = result.inserted_id
        return user  # type: ignore[return-value]

    @staticmethod
    def get_user(
        user_id: ObjectId, db: Database | None = None, public: bool = False
    ) -> User:
        """Fetch a user by id."""
        if db is None:
            db = mongo.db
        projection = PUBLIC_USER_FIELDS if public else None
        user = db[USERS_COLLECTION].find_one({"_id": user_id}, projection)
        if user is None:
            raise NotFoundError("User not found.")
        return user

    @staticmethod
    def list_users(
        filters: dict[str, Any],
        page: int = 1,
        limit: int = 10,
        db: Database | None = None,
    ) -> PaginatedResult:
        """List users, newest first, optionally filtered by role and status."""
        if db is None:
            db = mongo.db
        query = {k: v for k, v in filters.items() if k in ("role", "status") and v}
        return paginate(
            db[USERS_COLLECTION],
            query,
            page,
            limit,
            sort=[("createdAt", -1)],
            projection={
                "username": 1,
                "email": 1,
                "role": 1,
                "status": 1,
                "createdAt": 1,
            },
        )

    @staticmethod
    def update_user(
        user_id: ObjectId, updates: dict[str, Any], db: Database | None = None
    ) -> User:
        """Apply profile or administrative changes to a user."""
        if db is None:
            db = mongo.db
        users = db[USERS_COLLECTION]
        changes = {k: v for k, v in updates.items() if v not in (None, "")}
        if "email" in changes:
            changes["email"] = changes["email"].lower()
            if users.find_one({"email": changes["email"], "_id": {"$ne": user_id}}):
                raise ValidationError("This email is already used by another user.")
        if "username" in changes and users.find_one(
            {"username": changes["username"], "_id": {"$ne": user_id}}
        ):
            raise ValidationError("This username is already taken.")
        if not changes:
            return UserService.get_user(user_id, db)
        changes["updatedAt"] = utcnow()
        user = users.find_one_and_update(
            {"_id": user_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if user is None:
            raise NotFoundError("User not found.")
        return user

    @staticmethod
    def delete_user(user_id: ObjectId, db: Database | None = None) -> None:
        """Delete a user and everything that only belongs to them.

        A captain of a team with other members must hand over captaincy first.
        Teams the user captains alone are deleted with them.
        """
        from bracketeer.teams.services import TeamService  # noqa: PLC0415

        if db is None:
            db = mongo.db
        UserService.get_user(user_id, db)

        with transaction(db) as session:
            captained = list(
                db[TEAMS_COLLECTION].find({"captain": user_id}, session=session)
            )
            for team in captained:
                if len(team.get("members", [])) > 1:
                    raise ValidationError(
                        f'Cannot delete user: they captain team "{team["name"]}". '
                        "Transfer captaincy first."
                    )
            db[REGISTRATIONS_COLLECTION].delete_many({"user": user_id}, session=session)
            db[DISPUTES_COLLECTION].delete_many({"reporter": user_id}, session=session)
            solo_team_ids = [team["_id"] for team in captained]
            if solo_team_ids:
                db[TEAMS_COLLECTION].delete_many(
                    {"_id": {"$in": solo_team_ids}}, session=session
                )
            member_of = [
                team["_id"]
                for team in db[TEAMS_COLLECTION].find(
                    {"members": user_id}, {"_id": 1}, session=session
                )
            ]
            db[TEAMS_COLLECTION].update_many(
                {"members": user_id},
                {"$pull": {"members": user_id}, "$set": {"updatedAt": utcnow()}},
                session=session,
            )
            db[USERS_COLLECTION].delete_one({"_id": user_id}, session=session)

        for team_id in solo_team_ids + member_of:
            TeamService.invalidate_cache(team_id)
        logger.info(f"Deleted user {user_id}")

