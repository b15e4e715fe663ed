"""Service layer for the match result pipeline."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from bracketeer.core.constants import (
    DISPUTE_ACTIVE_STATUSES,
    DISPUTES_COLLECTION,
    MATCH_ACTIVE,
    MATCH_CANCELED,
    MATCH_COMPLETED,
    MATCH_DISPUTED,
    MATCH_FORFEITED,
    MATCH_PENDING,
    MATCH_READY,
    MATCHES_COLLECTION,
    ROLE_ADMIN,
    ROLE_SUPPORT,
    TOURNAMENTS_COLLECTION,
)
from bracketeer.core.transactions import transaction
from bracketeer.core.types import ParticipantRef
from bracketeer.errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from bracketeer.extensions import mongo
from bracketeer.teams.services import TeamService
from bracketeer.utils import paginate, utcnow

from .elo import EloService
from .models import ResultReport, check_match_integrity, winner_from_report
from .utils import participant_for_user

if TYPE_CHECKING:
    from bson import ObjectId
    from pymongo.client_session import ClientSession
    from pymongo.database import Database

    from bracketeer.core.types import PaginatedResult

    from .models import LobbyUpdate, Match

logger = logging.getLogger(__name__)

STAFF_ROLES = (ROLE_ADMIN, ROLE_SUPPORT)
FINISHED_MATCH_STATUSES = (MATCH_COMPLETED, MATCH_CANCELED, MATCH_FORFEITED)


class MatchService:
    """Handles match access, lobbies and the result pipeline."""

    @staticmethod
    def save(
        db: Database, match: dict[str, Any], session: ClientSession | None = None
    ) -> None:
        check_match_integrity(match)
        match["updatedAt"] = utcnow()
        db[MATCHES_COLLECTION].replace_one({"_id": match["_id"]}, match, session=session)

    @staticmethod
    def _load(
        db: Database, match_id: ObjectId, session: ClientSession | None = None
    ) -> Match:
        match = db[MATCHES_COLLECTION].find_one({"_id": match_id}, session=session)
        if match is None:
            raise NotFoundError("Match not found.")
        return match

    @staticmethod
    def _is_organizer(
        db: Database,
        match: dict[str, Any],
        principal: dict[str, Any],
        session: ClientSession | None = None,
    ) -> bool:
        if principal["role"] == ROLE_ADMIN:
            return True
        tournament = db[TOURNAMENTS_COLLECTION].find_one(
            {"_id": match["tournament"]}, {"organizer": 1}, session=session
        )
        return tournament is not None and tournament.get("organizer") == principal["id"]

    @staticmethod
    def _ensure_organizer(
        db: Database,
        match: dict[str, Any],
        principal: dict[str, Any],
        session: ClientSession | None = None,
    ) -> None:
        if not MatchService._is_organizer(db, match, principal, session):
            raise ForbiddenError("Only the tournament organizer can manage this match.")

    @staticmethod
    def invalidate_team_caches(match: dict[str, Any]) -> None:
        """Drop cached team documents whose stats a decided match changed."""
        for entry in match.get("participants", []):
            ref = ParticipantRef.from_document(entry)
            if ref.is_team:
                TeamService.invalidate_cache(ref.id)

    @staticmethod
    def complete_match(
        db: Database,
        match: dict[str, Any],
        winner: ParticipantRef,
        session: ClientSession | None = None,
    ) -> tuple[int, int] | None:
        """Record the winner, complete the match and update both ratings.

        Must run inside the caller's transaction so the outcome and the
        rating change commit together.
        """
        now = utcnow()
        match["winner"] = winner.to_document()
        match["status"] = MATCH_COMPLETED
        match["completedAt"] = now
        MatchService.save(db, match, session)
        return EloService.update_ratings(db, match, session)

    @staticmethod
    def list_matches(
        tournament_id: ObjectId | None = None,
        participant_id: ObjectId | None = None,
        status: str | None = None,
        page: int = 1,
        limit: int = 10,
        db: Database | None = None,
    ) -> PaginatedResult:
        """List matches in bracket order, optionally filtered."""
        if db is None:
            db = mongo.db
        query: dict[str, Any] = {}
        if tournament_id:
            query["tournament"] = tournament_id
        if participant_id:
            query["participants.participantId"] = participant_id
        if status:
            query["status"] = status
        return paginate(
            db[MATCHES_COLLECTION],
            query,
            page,
            limit,
            sort=[("tournament", 1), ("round", 1), ("matchNumber", 1)],
        )

    @staticmethod
    def get_match(
        match_id: ObjectId, principal: dict[str, Any], db: Database | None = None
    ) -> Match:
        """Return a match to one of its participants, its organizer or staff."""
        if db is None:
            db = mongo.db
        match = MatchService._load(db, match_id)
        if principal["role"] in STAFF_ROLES:
            return match
        if participant_for_user(db, match, principal["id"]) is not None:
            return match
        if MatchService._is_organizer(db, match, principal):
            return match
        raise ForbiddenError("You are not allowed to view this match.")

    @staticmethod
    def start_match(
        match_id: ObjectId, principal: dict[str, Any], db: Database | None = None
    ) -> Match:
        """Open a pending or ready match for play."""
        if db is None:
            db = mongo.db
        match = MatchService._load(db, match_id)
        MatchService._ensure_organizer(db, match, principal)
        if match["status"] not in (MATCH_PENDING, MATCH_READY):
            raise InvalidStateError(f"A {match['status']} match cannot be started.")
        match["status"] = MATCH_ACTIVE
        MatchService.save(db, match)
        logger.info(f"Match {match_id} started")
        return match

    @staticmethod
    def update_lobby(
        match_id: ObjectId,
        principal: dict[str, Any],
        update: LobbyUpdate,
        db: Database | None = None,
    ) -> Match:
        """Set the lobby details and schedule; publishing readies a pending match."""
        if db is None:
            db = mongo.db
        match = MatchService._load(db, match_id)
        MatchService._ensure_organizer(db, match, principal)
        if match["status"] in FINISHED_MATCH_STATUSES:
            raise InvalidStateError(f"The lobby of a {match['status']} match is closed.")

        lobby = dict(match.get("lobbyDetails") or {})
        if update.code is not None:
            lobby["code"] = update.code
        if update.password is not None:
            lobby["password"] = update.password
        if update.is_published is not None:
            lobby["isPublished"] = update.is_published
        match["lobbyDetails"] = lobby  # type: ignore[typeddict-item]
        if update.scheduled_time is not None:
            match["scheduledTime"] = update.scheduled_time
        if lobby.get("isPublished") and match["status"] == MATCH_PENDING:
            match["status"] = MATCH_READY
        MatchService.save(db, match)
        return match

    @staticmethod
    def report_result(
        match_id: ObjectId,
        reporter_id: ObjectId,
        payload: dict[str, Any],
        db: Database | None = None,
    ) -> Match:
        """Record a participant's report and hold the match for adjudication.

        A report never completes a match by itself: the match moves to
        ``disputed`` until an administrator confirms it or a dispute settles it.

        Raises:
            ValidationError: If the report is malformed, names the wrong
                participants or is a tie.
            NotFoundError: If the match does not exist.
            ForbiddenError: If the reporter does not play in the match.
            InvalidStateError: If the match is not active or already reported.
        """
        if db is None:
            db = mongo.db
        with transaction(db) as session:
            match = MatchService._load(db, match_id, session)
            if participant_for_user(db, match, reporter_id, session) is None:
                raise ForbiddenError("Only participants can report this match.")
            report = ResultReport.from_payload(payload)
            try:
                report.validate()
            except ValueError as e:
                raise ValidationError(str(e)) from e
            if match["status"] != MATCH_ACTIVE:
                raise InvalidStateError("Results can only be reported for active matches.")
            if match.get("reportedBy"):
                raise InvalidStateError("A result has already been reported for this match.")
            expected = {entry["participantId"] for entry in match["participants"]}
            if set(report.participant_ids()) != expected:
                raise ValidationError("The report must cover exactly this match's participants.")
            if report.is_tie():
                raise ValidationError("Ties are not allowed in an elimination match.")

            match["scores"] = report.scores or []
            match["results"] = report.results or []
            match["reportedBy"] = reporter_id
            match["status"] = MATCH_DISPUTED
            MatchService.save(db, match, session)

        logger.info(f"Result for match {match_id} reported by {reporter_id}")
        return match

    @staticmethod
    def confirm_result(match_id: ObjectId, db: Database | None = None) -> Match:
        """Accept the reported result of an undisputed match."""
        if db is None:
            db = mongo.db
        with transaction(db) as session:
            match = MatchService._load(db, match_id, session)
            if match["status"] != MATCH_DISPUTED or not match.get("reportedBy"):
                raise InvalidStateError("Only a reported match can be confirmed.")
            open_dispute = db[DISPUTES_COLLECTION].find_one(
                {"match": match_id, "status": {"$in": list(DISPUTE_ACTIVE_STATUSES)}},
                {"_id": 1},
                session=session,
            )
            if open_dispute is not None:
                raise InvalidStateError("This match has an open dispute; resolve it instead.")

            winner_id = winner_from_report(match)
            winner = next(
                (
                    ParticipantRef.from_document(entry)
                    for entry in match["participants"]
                    if entry["participantId"] == winner_id
                ),
                None,
            )
            if winner is None:
                raise InvalidStateError("The reported result does not name a winner.")
            MatchService.complete_match(db, match, winner, session)

        MatchService.invalidate_team_caches(match)
        logger.info(f"Result for match {match_id} confirmed")
        return match
