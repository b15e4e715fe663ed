"""Service layer for games."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from bracketeer.core.constants import GAMES_COLLECTION
from bracketeer.errors import DuplicateResourceError, NotFoundError
from bracketeer.extensions import mongo
from bracketeer.utils import utcnow

from .models import make_short_name

if TYPE_CHECKING:
    from bson import ObjectId
    from pymongo.database import Database

    from .models import Game


class GameService:
    """Handles data access for games."""

    @staticmethod
    def create_game(data: dict[str, Any], db: Database | None = None) -> Game:
        """Register a game; the short name is derived from the name if omitted."""
        if db is None:
            db = mongo.db
        now = utcnow()
        game = {
            "name": data["name"].strip(),
            "shortName": (data.get("shortName") or make_short_name(data["name"])).lower(),
            "iconUrl": data.get("iconUrl"),
            "bannerUrl": data.get("bannerUrl"),
            "platforms": list(data.get("platforms") or []),
            "supportedModes": list(data.get("supportedModes") or []),
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            game["_id"] = db[GAMES_COLLECTION].insert_one(game).inserted_id
        except DuplicateKeyError as e:
            raise DuplicateResourceError("A game with this name already exists.") from e
        return game  # type: ignore[return-value]

    @staticmethod
    def get_game(game_id: ObjectId, db: Database | None = None) -> Game:
        """Fetch a game by id."""
        if db is None:
            db = mongo.db
        game = db[GAMES_COLLECTION].find_one({"_id": game_id})
        if game is None:
            raise NotFoundError("Game not found.")
        return game

    @staticmethod
    def list_games(include_inactive: bool = False, db: Database | None = None) -> list[Game]:
        """List games alphabetically."""
        if db is None:
            db = mongo.db
        query = {} if include_inactive else {"isActive": True}
        return list(db[GAMES_COLLECTION].find(query).sort("name", 1))

    @staticmethod
    def set_active(game_id: ObjectId, is_active: bool, db: Database | None = None) -> Game:
        """Enable or retire a game."""
        if db is None:
            db = mongo.db
        game = db[GAMES_COLLECTION].find_one_and_update(
            {"_id": game_id},
            {"$set": {"isActive": is_active, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if game is None:
            raise NotFoundError("Game not found.")
        return game
