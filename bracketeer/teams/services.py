"""Service layer for team-related operations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import redis
from bson import json_util
from flask import current_app, has_app_context
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from bracketeer.core.constants import (
    GAMES_COLLECTION,
    REGISTRATIONS_COLLECTION,
    TEAM_CACHE_PREFIX,
    TEAMS_COLLECTION,
    TOURNAMENT_ACTIVE,
    TOURNAMENTS_COLLECTION,
    USERS_COLLECTION,
)
from bracketeer.errors import (
    DuplicateResourceError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from bracketeer.extensions import mongo, redis_store
from bracketeer.utils import paginate, utcnow

from .models import default_stats, validate_team

if TYPE_CHECKING:
    from bson import ObjectId
    from pymongo.database import Database

    from bracketeer.core.types import PaginatedResult

    from .models import Team

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300


class TeamService:
    """Service class for team-related operations."""

    # Cache

    @staticmethod
    def _cache_key(team_id: ObjectId) -> str:
        return f"{TEAM_CACHE_PREFIX}{team_id}"

    @staticmethod
    def _cache_ttl() -> int:
        if has_app_context():
            return current_app.config.get(
                "TEAM_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS
            )
        return DEFAULT_CACHE_TTL_SECONDS

    @staticmethod
    def invalidate_cache(team_id: ObjectId) -> None:
        """Drop a team's cached copy after it changes."""
        if redis_store.client is None:
            return
        try:
            redis_store.client.delete(TeamService._cache_key(team_id))
        except redis.RedisError as e:
            logger.warning(f"Could not invalidate cache for team {team_id}: {e}")

    # Reads

    @staticmethod
    def get_team(team_id: ObjectId, db: Database | None = None) -> Team:
        """Fetch a team, serving it from the redis cache when possible."""
        if db is None:
            db = mongo.db
        key = TeamService._cache_key(team_id)
        cache = redis_store.client
        if cache is not None:
            try:
                cached = cache.get(key)
            except redis.RedisError as e:
                logger.warning(f"Team cache read failed for {team_id}: {e}")
                cached = None
            if cached:
                return json_util.loads(cached)

        team = db[TEAMS_COLLECTION].find_one({"_id": team_id})
        if team is None:
            raise NotFoundError("Team not found.")

        if cache is not None:
            try:
                cache.setex(key, TeamService._cache_ttl(), json_util.dumps(team))
            except redis.RedisError as e:
                logger.warning(f"Team cache write failed for {team_id}: {e}")
        return team

    @staticmethod
    def list_teams(
        game_id: ObjectId | None = None,
        member_id: ObjectId | None = None,
        page: int = 1,
        limit: int = 10,
        db: Database | None = None,
    ) -> PaginatedResult:
        """List teams, optionally by game or member."""
        if db is None:
            db = mongo.db
        query: dict[str, Any] = {}
        if game_id:
            query["game"] = game_id
        if member_id:
            query["members"] = member_id
        return paginate(
            db[TEAMS_COLLECTION], query, page, limit, sort=[("stats.rankPoints", -1)]
        )

    # Writes

    @staticmethod
    def _save(
        team_id: ObjectId, team: dict[str, Any], db: Database
    ) -> Team:
        """Validate and persist a full team document, then drop its cache."""
        try:
            validate_team(team)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        team["updatedAt"] = utcnow()
        try:
            db[TEAMS_COLLECTION].replace_one({"_id": team_id}, team)
        except DuplicateKeyError as e:
            raise DuplicateResourceError(
                "A team with this name or tag already exists."
            ) from e
        TeamService.invalidate_cache(team_id)
        return team  # type: ignore[return-value]

    @staticmethod
    def _load_for_captain(
        team_id: ObjectId, actor_id: ObjectId, db: Database
    ) -> dict[str, Any]:
        team = db[TEAMS_COLLECTION].find_one({"_id": team_id})
        if team is None:
            raise NotFoundError("Team not found.")
        if team["captain"] != actor_id:
            raise ForbiddenError("Only the team captain can do this.")
        return team

    @staticmethod
    def create_team(
        captain_id: ObjectId,
        name: str,
        tag: str,
        game_id: ObjectId,
        avatar: str | None = None,
        db: Database | None = None,
    ) -> Team:
        """Create a team with its creator as captain and only member."""
        if db is None:
            db = mongo.db
        if db[GAMES_COLLECTION].find_one({"_id": game_id}, {"_id": 1}) is None:
            raise NotFoundError("Game not found.")
        now = utcnow()
        team: dict[str, Any] = {
            "name": name.strip(),
            "tag": tag.strip().upper(),
            "game": game_id,
            "captain": captain_id,
            "members": [captain_id],
            "avatar": avatar or "/default-team-avatar.png",
            "stats": default_stats(),
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            validate_team(team)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        try:
            team["_id"] = db[TEAMS_COLLECTION].insert_one(team).inserted_id
        except DuplicateKeyError as e:
            raise DuplicateResourceError(
                "A team with this name or tag already exists."
            ) from e
        db[USERS_COLLECTION].update_one(
            {"_id": captain_id}, {"$addToSet": {"teams": team["_id"]}}
        )
        return team  # type: ignore[return-value]

    @staticmethod
    def update_team(
        team_id: ObjectId,
        actor_id: ObjectId,
        changes: dict[str, Any],
        db: Database | None = None,
    ) -> Team:
        """Rename, re-tag, or change the avatar of a team (captain only)."""
        if db is None:
            db = mongo.db
        team = TeamService._load_for_captain(team_id, actor_id, db)
        if changes.get("name"):
            team["name"] = changes["name"].strip()
        if changes.get("tag"):
            team["tag"] = changes["tag"].strip().upper()
        if changes.get("avatar"):
            team["avatar"] = changes["avatar"]
        return TeamService._save(team_id, team, db)

    @staticmethod
    def add_member(
        team_id: ObjectId,
        actor_id: ObjectId,
        user_id: ObjectId,
        db: Database | None = None,
    ) -> Team:
        """Add a user to the team (captain only)."""
        if db is None:
            db = mongo.db
        team = TeamService._load_for_captain(team_id, actor_id, db)
        if db[USERS_COLLECTION].find_one({"_id": user_id}, {"_id": 1}) is None:
            raise NotFoundError("User not found.")
        if user_id in team["members"]:
            raise DuplicateResourceError("User is already a member of this team.", 400)
        team["members"].append(user_id)
        team = TeamService._save(team_id, team, db)
        db[USERS_COLLECTION].update_one({"_id": user_id}, {"$addToSet": {"teams": team_id}})
        return team

    @staticmethod
    def remove_member(
        team_id: ObjectId,
        actor_id: ObjectId,
        user_id: ObjectId,
        db: Database | None = None,
    ) -> Team:
        """Remove a member from the team (captain only; not the captain)."""
        if db is None:
            db = mongo.db
        team = TeamService._load_for_captain(team_id, actor_id, db)
        if user_id not in team["members"]:
            raise NotFoundError("User is not a member of this team.")
        if user_id == team["captain"]:
            raise InvalidStateError("The captain cannot be removed from the team.")
        team["members"].remove(user_id)
        team = TeamService._save(team_id, team, db)
        db[USERS_COLLECTION].update_one({"_id": user_id}, {"$pull": {"teams": team_id}})
        return team

    @staticmethod
    def leave_team(
        team_id: ObjectId, user_id: ObjectId, db: Database | None = None
    ) -> None:
        """Leave a team. Captains must transfer captaincy first."""
        if db is None:
            db = mongo.db
        team = db[TEAMS_COLLECTION].find_one({"_id": team_id})
        if team is None:
            raise NotFoundError("Team not found.")
        if user_id not in team["members"]:
            raise NotFoundError("You are not a member of this team.")
        if team["captain"] == user_id:
            raise InvalidStateError("Transfer captaincy before leaving the team.")
        team["members"].remove(user_id)
        TeamService._save(team_id, team, db)
        db[USERS_COLLECTION].update_one({"_id": user_id}, {"$pull": {"teams": team_id}})

    @staticmethod
    def transfer_captaincy(
        team_id: ObjectId,
        actor_id: ObjectId,
        new_captain_id: ObjectId,
        db: Database | None = None,
    ) -> Team:
        """Hand captaincy to another member (captain only)."""
        if db is None:
            db = mongo.db
        team = TeamService._load_for_captain(team_id, actor_id, db)
        if new_captain_id not in team["members"]:
            raise ValidationError("The new captain must already be a team member.")
        team["captain"] = new_captain_id
        return TeamService._save(team_id, team, db)

    @staticmethod
    def delete_team(
        team_id: ObjectId, actor_id: ObjectId, db: Database | None = None
    ) -> None:
        """Delete a team unless it is playing in an active tournament."""
        if db is None:
            db = mongo.db
        team = TeamService._load_for_captain(team_id, actor_id, db)
        tournament_ids = db[REGISTRATIONS_COLLECTION].distinct(
            "tournament", {"team": team_id}
        )
        if tournament_ids and db[TOURNAMENTS_COLLECTION].count_documents(
            {"_id": {"$in": tournament_ids}, "status": TOURNAMENT_ACTIVE}
        ):
            raise InvalidStateError(
                "Cannot delete a team that is playing in an active tournament."
            )
        db[TEAMS_COLLECTION].delete_one({"_id": team_id})
        db[USERS_COLLECTION].update_many(
            {"_id": {"$in": team["members"]}}, {"$pull": {"teams": team_id}}
        )
        TeamService.invalidate_cache(team_id)
        logger.info(f"Team {team_id} deleted by {actor_id}")
