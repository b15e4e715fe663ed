"""Elo rating updates for decided head-to-head matches."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from bracketeer.core.constants import (
    DEFAULT_RATING,
    ELO_K_FACTOR,
    TEAMS_COLLECTION,
    USERS_COLLECTION,
)
from bracketeer.core.types import ParticipantRef
from bracketeer.errors import AppError, NotFoundError
from bracketeer.utils import utcnow

if TYPE_CHECKING:
    from bson import ObjectId
    from pymongo.client_session import ClientSession
    from pymongo.database import Database

logger = logging.getLogger(__name__)


def expected_score(rating_a: float, rating_b: float) -> float:
    """Probability that a player rated ``rating_a`` beats one rated ``rating_b``."""
    return 1 / (1 + 10 ** ((rating_b - rating_a) / 400))


def calculate_new_ratings(
    winner_rating: float, loser_rating: float, k: int = ELO_K_FACTOR
) -> tuple[int, int]:
    """Return the rounded post-match ratings of the winner and the loser."""
    new_winner = winner_rating + k * (1 - expected_score(winner_rating, loser_rating))
    new_loser = loser_rating + k * (0 - expected_score(loser_rating, winner_rating))
    return round(new_winner), round(new_loser)


def _rating_for_game(user: dict[str, Any], game_id: ObjectId | None) -> int:
    for entry in user.get("eloRating", []):
        if entry.get("game") == game_id:
            return entry.get("rating", DEFAULT_RATING)
    return DEFAULT_RATING


def _with_rating(
    ratings: list[dict[str, Any]], game_id: ObjectId | None, rating: int
) -> list[dict[str, Any]]:
    updated = [dict(entry) for entry in ratings]
    for entry in updated:
        if entry.get("game") == game_id:
            entry["rating"] = rating
            return updated
    updated.append({"game": game_id, "rating": rating})
    return updated


class EloService:
    """Applies Elo updates to the two sides of a decided match."""

    @staticmethod
    def _load(
        db: Database, ref: ParticipantRef, session: ClientSession | None
    ) -> dict[str, Any]:
        collection = TEAMS_COLLECTION if ref.is_team else USERS_COLLECTION
        doc = db[collection].find_one({"_id": ref.id}, session=session)
        if doc is None:
            raise NotFoundError(f"{ref.kind} {ref.id} not found for rating update.")
        return doc

    @staticmethod
    def _current_rating(
        ref: ParticipantRef, doc: dict[str, Any], game_id: ObjectId | None
    ) -> int:
        if ref.is_team:
            return doc.get("stats", {}).get("rankPoints", DEFAULT_RATING)
        return _rating_for_game(doc, game_id)

    @staticmethod
    def _store_rating(
        db: Database,
        ref: ParticipantRef,
        doc: dict[str, Any],
        game_id: ObjectId | None,
        rating: int,
        won: bool,
        session: ClientSession | None,
    ) -> None:
        if ref.is_team:
            counter = "stats.wins" if won else "stats.losses"
            db[TEAMS_COLLECTION].update_one(
                {"_id": ref.id},
                {
                    "$set": {"stats.rankPoints": rating, "updatedAt": utcnow()},
                    "$inc": {counter: 1},
                },
                session=session,
            )
        else:
            db[USERS_COLLECTION].update_one(
                {"_id": ref.id},
                {
                    "$set": {
                        "eloRating": _with_rating(
                            doc.get("eloRating", []), game_id, rating
                        ),
                        "updatedAt": utcnow(),
                    }
                },
                session=session,
            )

    @staticmethod
    def update_ratings(
        db: Database,
        match: dict[str, Any],
        session: ClientSession | None = None,
    ) -> tuple[int, int] | None:
        """Update both participants' ratings after a decided match.

        Does nothing unless the match has exactly two participants and a
        winner. Writes go through the caller's session so they commit or
        abort with the workflow that decided the match.

        Returns:
            The new (winner, loser) ratings, or None if nothing changed.
        """
        participants = match.get("participants") or []
        if len(participants) != 2 or not match.get("winner"):  # noqa: PLR2004
            return None

        winner = ParticipantRef.from_document(match["winner"])
        loser = next(
            (
                ParticipantRef.from_document(p)
                for p in participants
                if p["participantId"] != winner.id
            ),
            None,
        )
        if loser is None:
            raise AppError("Loser could not be determined for rating update.", 500)

        game_id = match.get("game")
        winner_doc = EloService._load(db, winner, session)
        loser_doc = EloService._load(db, loser, session)
        new_winner, new_loser = calculate_new_ratings(
            EloService._current_rating(winner, winner_doc, game_id),
            EloService._current_rating(loser, loser_doc, game_id),
        )
        EloService._store_rating(db, winner, winner_doc, game_id, new_winner, True, session)
        EloService._store_rating(db, loser, loser_doc, game_id, new_loser, False, session)
        logger.info(
            f"Ratings updated for match {match.get('_id')}: "
            f"{winner.id} -> {new_winner}, {loser.id} -> {new_loser}"
        )
        return new_winner, new_loser
