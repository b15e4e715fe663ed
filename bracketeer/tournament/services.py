"""Service layer for tournament business logic."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from bracketeer.core.constants import (
    BRACKETS_COLLECTION,
    DISPUTES_COLLECTION,
    GAMES_COLLECTION,
    LOCKED_TOURNAMENT_FIELDS,
    LOCKED_TOURNAMENT_STATUSES,
    MATCH_ACTIVE,
    MATCH_CANCELED,
    MATCH_COMPLETED,
    MATCH_DISPUTED,
    MATCH_FORFEITED,
    MATCH_PENDING,
    MATCH_READY,
    MATCHES_COLLECTION,
    NOTIFY_MATCH_SCHEDULED,
    NOTIFY_TOURNAMENT_CANCELED,
    PAYMENT_PAID,
    PAYMENT_REFUNDED,
    PUBLIC_TOURNAMENT_STATUSES,
    REG_COMPLETED,
    REG_DISQUALIFIED,
    REG_ELIMINATED,
    REG_PLAYING,
    REGISTRATIONS_COLLECTION,
    REGISTRATION_LOCKED_FIELDS,
    ROLE_ADMIN,
    TOURNAMENT_ACTIVE,
    TOURNAMENT_CANCELED,
    TOURNAMENT_COMPLETED,
    TOURNAMENT_DRAFT,
    TOURNAMENT_REG_CLOSED,
    TOURNAMENT_REG_OPEN,
    TOURNAMENTS_COLLECTION,
    TX_REFUND,
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
from bracketeer.match.utils import expand_to_user_ids
from bracketeer.notifications.services import NotificationService
from bracketeer.payments.services import WalletService
from bracketeer.utils import paginate, utcnow

from .bracket import BracketGenerator
from .models import TournamentDraft

if TYPE_CHECKING:
    from bson import ObjectId
    from pymongo.client_session import ClientSession
    from pymongo.database import Database

    from bracketeer.core.types import PaginatedResult

    from .models import Tournament

logger = logging.getLogger(__name__)

# Matches in these states have not produced a final outcome yet
UNDECIDED_MATCH_STATUSES = (MATCH_PENDING, MATCH_READY, MATCH_ACTIVE, MATCH_DISPUTED)

# Organizer-editable fields, in payload naming
TOURNAMENT_FIELDS = (
    "name",
    "game",
    "structure",
    "teamSize",
    "maxParticipants",
    "rules",
    "registrationStartDate",
    "registrationEndDate",
    "checkInStartDate",
    "tournamentStartDate",
    "entryFee",
    "prizeStructure",
)


def registration_filter(tournament_id: ObjectId, ref: ParticipantRef) -> dict[str, Any]:
    """Query matching the registration behind a bracket participant."""
    if ref.is_team:
        return {"tournament": tournament_id, "team": ref.id}
    return {"tournament": tournament_id, "user": ref.id}


class TournamentService:
    """Handles business logic and data access for tournaments."""

    @staticmethod
    def _draft_from(data: dict[str, Any]) -> TournamentDraft:
        draft = TournamentDraft.from_payload(data)
        try:
            draft.validate()
        except ValueError as e:
            raise ValidationError(str(e)) from e
        return draft

    @staticmethod
    def ensure_can_manage(tournament: dict[str, Any], principal: dict[str, Any]) -> None:
        """Only the organizer or an administrator may manage a tournament."""
        if principal["role"] != ROLE_ADMIN and tournament.get("organizer") != principal["id"]:
            raise ForbiddenError("Only the organizer can manage this tournament.")

    @staticmethod
    def get_tournament(
        tournament_id: ObjectId,
        db: Database | None = None,
        session: ClientSession | None = None,
    ) -> Tournament:
        """Fetch a tournament by id."""
        if db is None:
            db = mongo.db
        tournament = db[TOURNAMENTS_COLLECTION].find_one(
            {"_id": tournament_id}, session=session
        )
        if tournament is None:
            raise NotFoundError("Tournament not found.")
        return tournament

    @staticmethod
    def list_tournaments(
        page: int = 1,
        limit: int = 10,
        game_id: ObjectId | None = None,
        db: Database | None = None,
    ) -> PaginatedResult:
        """List publicly visible tournaments, latest start first."""
        if db is None:
            db = mongo.db
        query: dict[str, Any] = {"status": {"$in": list(PUBLIC_TOURNAMENT_STATUSES)}}
        if game_id:
            query["game"] = game_id
        return paginate(
            db[TOURNAMENTS_COLLECTION],
            query,
            page,
            limit,
            sort=[("tournamentStartDate", -1)],
            projection={
                "name": 1,
                "game": 1,
                "status": 1,
                "structure": 1,
                "teamSize": 1,
                "tournamentStartDate": 1,
                "entryFee": 1,
                "maxParticipants": 1,
                "registrationCount": 1,
            },
        )

    @staticmethod
    def create_tournament(
        organizer_id: ObjectId, data: dict[str, Any], db: Database | None = None
    ) -> Tournament:
        """Create a tournament in draft status."""
        if db is None:
            db = mongo.db
        draft = TournamentService._draft_from(data)
        if db[GAMES_COLLECTION].find_one({"_id": draft.game}, {"_id": 1}) is None:
            raise NotFoundError("Game not found.")
        now = utcnow()
        tournament = {
            **draft.to_document(),
            "status": TOURNAMENT_DRAFT,
            "organizer": organizer_id,
            "brackets": [],
            "registrationCount": 0,
            "createdAt": now,
            "updatedAt": now,
        }
        tournament["_id"] = db[TOURNAMENTS_COLLECTION].insert_one(tournament).inserted_id
        logger.info(f"Tournament {tournament['_id']} created by {organizer_id}")
        return tournament  # type: ignore[return-value]

    @staticmethod
    def update_tournament(
        tournament_id: ObjectId,
        principal: dict[str, Any],
        changes: dict[str, Any],
        db: Database | None = None,
    ) -> Tournament:
        """Edit a tournament; structural fields freeze once it is under way."""
        if db is None:
            db = mongo.db
        tournament = TournamentService.get_tournament(tournament_id, db)
        TournamentService.ensure_can_manage(tournament, principal)

        changes = {key: value for key, value in changes.items() if key in TOURNAMENT_FIELDS}
        current = {key: tournament.get(key) for key in TOURNAMENT_FIELDS}
        updated = TournamentService._draft_from({**current, **changes}).to_document()

        if tournament["status"] in LOCKED_TOURNAMENT_STATUSES:
            for field_name in LOCKED_TOURNAMENT_FIELDS:
                if field_name in changes and updated[field_name] != tournament.get(field_name):
                    raise InvalidStateError(
                        f"Cannot change '{field_name}' of a tournament that is "
                        f"{tournament['status']}."
                    )
        registered = db[REGISTRATIONS_COLLECTION].count_documents(
            {"tournament": tournament_id}
        )
        if registered:
            for field_name in REGISTRATION_LOCKED_FIELDS:
                if field_name in changes and updated[field_name] != tournament.get(field_name):
                    raise InvalidStateError(
                        f"Cannot change '{field_name}' once participants have registered."
                    )
            if updated["maxParticipants"] < registered:
                raise InvalidStateError(
                    f"maxParticipants cannot drop below the {registered} registered entries."
                )
        if "game" in changes and (
            db[GAMES_COLLECTION].find_one({"_id": updated["game"]}, {"_id": 1}) is None
        ):
            raise NotFoundError("Game not found.")

        updated["updatedAt"] = utcnow()
        db[TOURNAMENTS_COLLECTION].update_one({"_id": tournament_id}, {"$set": updated})
        return {**tournament, **updated}  # type: ignore[return-value]

    @staticmethod
    def delete_tournament(
        tournament_id: ObjectId, principal: dict[str, Any], db: Database | None = None
    ) -> None:
        """Delete a tournament and everything it owns in one transaction."""
        if db is None:
            db = mongo.db
        tournament = TournamentService.get_tournament(tournament_id, db)
        TournamentService.ensure_can_manage(tournament, principal)
        if tournament["status"] == TOURNAMENT_ACTIVE:
            raise InvalidStateError("An active tournament cannot be deleted.")

        with transaction(db) as session:
            for collection in (
                REGISTRATIONS_COLLECTION,
                MATCHES_COLLECTION,
                BRACKETS_COLLECTION,
                DISPUTES_COLLECTION,
            ):
                db[collection].delete_many({"tournament": tournament_id}, session=session)
            db[TOURNAMENTS_COLLECTION].delete_one({"_id": tournament_id}, session=session)
        logger.info(f"Tournament {tournament_id} deleted with its dependents")

    @staticmethod
    def close_registration(
        tournament_id: ObjectId, principal: dict[str, Any], db: Database | None = None
    ) -> Tournament:
        """Close registration ahead of the scheduled end date."""
        if db is None:
            db = mongo.db
        tournament = TournamentService.get_tournament(tournament_id, db)
        TournamentService.ensure_can_manage(tournament, principal)
        result = db[TOURNAMENTS_COLLECTION].update_one(
            {"_id": tournament_id, "status": TOURNAMENT_REG_OPEN},
            {"$set": {"status": TOURNAMENT_REG_CLOSED, "updatedAt": utcnow()}},
        )
        if result.modified_count == 0:
            raise InvalidStateError("Registration is not open for this tournament.")
        return TournamentService.get_tournament(tournament_id, db)

    @staticmethod
    def start_tournament(
        tournament_id: ObjectId,
        principal: dict[str, Any],
        db: Database | None = None,
        rng: Any = None,
    ) -> dict[str, Any]:
        """Generate the bracket and first round, and activate the tournament.

        Returns:
            The created bracket and its round-one matches.
        """
        if db is None:
            db = mongo.db
        with transaction(db) as session:
            tournament = TournamentService.get_tournament(tournament_id, db, session)
            TournamentService.ensure_can_manage(tournament, principal)
            if tournament["status"] != TOURNAMENT_REG_CLOSED:
                raise InvalidStateError(
                    "Brackets can only be generated once registration is closed."
                )
            BracketGenerator.ensure_supported(tournament["structure"])

            registrations = list(
                db[REGISTRATIONS_COLLECTION].find(
                    {"tournament": tournament_id, "status": {"$ne": REG_DISQUALIFIED}},
                    session=session,
                )
            )
            if len(registrations) < BracketGenerator.MIN_PARTICIPANTS:
                raise InvalidStateError(
                    "At least two registered participants are needed to start."
                )
            participants = BracketGenerator.seed(
                BracketGenerator.participants_from_registrations(
                    registrations, tournament["teamSize"]
                ),
                rng,
            )

            now = utcnow()
            bracket = {
                "tournament": tournament_id,
                "currentRound": 1,
                "isCompleted": False,
                "createdAt": now,
                "updatedAt": now,
            }
            bracket["_id"] = (
                db[BRACKETS_COLLECTION].insert_one(bracket, session=session).inserted_id
            )
            matches = BracketGenerator.build_round(
                tournament,
                bracket["_id"],
                1,
                participants,
                tournament.get("tournamentStartDate"),
            )
            inserted = db[MATCHES_COLLECTION].insert_many(matches, session=session)
            for match, match_id in zip(matches, inserted.inserted_ids):
                match["_id"] = match_id

            db[TOURNAMENTS_COLLECTION].update_one(
                {"_id": tournament_id},
                {
                    "$set": {"status": TOURNAMENT_ACTIVE, "updatedAt": now},
                    "$push": {"brackets": bracket["_id"]},
                },
                session=session,
            )
            db[REGISTRATIONS_COLLECTION].update_many(
                {"_id": {"$in": [reg["_id"] for reg in registrations]}},
                {"$set": {"status": REG_PLAYING, "updatedAt": now}},
                session=session,
            )

        logger.info(
            f"Tournament {tournament_id} started with {len(participants)} participants "
            f"and {len(matches)} round-one matches"
        )
        TournamentService._notify_scheduled(db, tournament, matches)
        return {"bracket": bracket, "matches": matches}

    @staticmethod
    def _notify_scheduled(
        db: Database, tournament: dict[str, Any], matches: list[dict[str, Any]]
    ) -> None:
        for match in matches:
            if match["status"] != MATCH_PENDING:
                continue
            NotificationService.send_many(
                expand_to_user_ids(db, match["participants"]),
                NOTIFY_MATCH_SCHEDULED,
                {
                    "tournamentName": tournament["name"],
                    "round": match["round"],
                    "scheduledTime": match.get("scheduledTime"),
                },
                match["_id"],
                "Match",
                db,
            )

    @staticmethod
    def advance_round(
        tournament_id: ObjectId, principal: dict[str, Any], db: Database | None = None
    ) -> dict[str, Any]:
        """Pair the winners of the finished round, or crown the champion.

        Returns:
            ``{"completed": True, "winner": ...}`` when the bracket is finished,
            otherwise ``{"completed": False, "round": n, "matches": [...]}``.
        """
        if db is None:
            db = mongo.db
        with transaction(db) as session:
            tournament = TournamentService.get_tournament(tournament_id, db, session)
            TournamentService.ensure_can_manage(tournament, principal)
            if tournament["status"] != TOURNAMENT_ACTIVE or not tournament.get("brackets"):
                raise InvalidStateError("The tournament is not in progress.")

            bracket = db[BRACKETS_COLLECTION].find_one(
                {"_id": tournament["brackets"][-1]}, session=session
            )
            if bracket is None:
                raise NotFoundError("Bracket not found.")
            current_round = bracket["currentRound"]
            round_matches = list(
                db[MATCHES_COLLECTION]
                .find({"bracket": bracket["_id"], "round": current_round}, session=session)
                .sort("matchNumber", 1)
            )
            if any(m["status"] in UNDECIDED_MATCH_STATUSES for m in round_matches):
                raise InvalidStateError(f"Round {current_round} is still in progress.")

            winners: list[ParticipantRef] = []
            eliminated: list[ParticipantRef] = []
            for match in round_matches:
                refs = [ParticipantRef.from_document(p) for p in match["participants"]]
                winner = (
                    ParticipantRef.from_document(match["winner"])
                    if match.get("winner")
                    and match["status"] in (MATCH_COMPLETED, MATCH_FORFEITED)
                    else None
                )
                if winner is not None:
                    winners.append(winner)
                eliminated.extend(ref for ref in refs if ref != winner)

            now = utcnow()
            for ref in eliminated:
                db[REGISTRATIONS_COLLECTION].update_one(
                    registration_filter(tournament_id, ref),
                    {"$set": {"status": REG_ELIMINATED, "updatedAt": now}},
                    session=session,
                )

            if len(winners) <= 1:
                champion = winners[0] if winners else None
                if champion is not None:
                    db[REGISTRATIONS_COLLECTION].update_one(
                        registration_filter(tournament_id, champion),
                        {"$set": {"status": REG_COMPLETED, "finalRank": 1, "updatedAt": now}},
                        session=session,
                    )
                db[BRACKETS_COLLECTION].update_one(
                    {"_id": bracket["_id"]},
                    {"$set": {"isCompleted": True, "updatedAt": now}},
                    session=session,
                )
                db[TOURNAMENTS_COLLECTION].update_one(
                    {"_id": tournament_id},
                    {"$set": {"status": TOURNAMENT_COMPLETED, "updatedAt": now}},
                    session=session,
                )
                outcome: dict[str, Any] = {
                    "completed": True,
                    "winner": champion.to_document() if champion else None,
                }
                matches: list[dict[str, Any]] = []
            else:
                next_round = current_round + 1
                matches = BracketGenerator.build_round(
                    tournament, bracket["_id"], next_round, winners, None
                )
                inserted = db[MATCHES_COLLECTION].insert_many(matches, session=session)
                for match, match_id in zip(matches, inserted.inserted_ids):
                    match["_id"] = match_id
                db[BRACKETS_COLLECTION].update_one(
                    {"_id": bracket["_id"]},
                    {"$set": {"currentRound": next_round, "updatedAt": now}},
                    session=session,
                )
                outcome = {"completed": False, "round": next_round, "matches": matches}

        if matches:
            TournamentService._notify_scheduled(db, tournament, matches)
        logger.info(f"Tournament {tournament_id} advanced past round {current_round}")
        return outcome

    @staticmethod
    def cancel_tournament(
        tournament_id: ObjectId, principal: dict[str, Any], db: Database | None = None
    ) -> Tournament:
        """Cancel a tournament, refunding every paid entry fee."""
        if db is None:
            db = mongo.db
        with transaction(db) as session:
            tournament = TournamentService.get_tournament(tournament_id, db, session)
            TournamentService.ensure_can_manage(tournament, principal)
            if tournament["status"] in (TOURNAMENT_COMPLETED, TOURNAMENT_CANCELED):
                raise InvalidStateError(
                    f"A {tournament['status']} tournament cannot be canceled."
                )
            now = utcnow()
            paid = list(
                db[REGISTRATIONS_COLLECTION].find(
                    {"tournament": tournament_id, "paymentStatus": PAYMENT_PAID},
                    session=session,
                )
            )
            for registration in paid:
                if registration.get("amountPaid", 0) <= 0:
                    continue
                WalletService.credit(
                    db,
                    registration["user"],
                    registration["amountPaid"],
                    TX_REFUND,
                    tournament_id,
                    f"Refund for canceled tournament {tournament['name']}",
                    session,
                )
            if paid:
                db[REGISTRATIONS_COLLECTION].update_many(
                    {"_id": {"$in": [reg["_id"] for reg in paid]}},
                    {"$set": {"paymentStatus": PAYMENT_REFUNDED, "updatedAt": now}},
                    session=session,
                )
            db[MATCHES_COLLECTION].update_many(
                {"tournament": tournament_id, "status": {"$in": list(UNDECIDED_MATCH_STATUSES)}},
                {"$set": {"status": MATCH_CANCELED, "updatedAt": now}},
                session=session,
            )
            db[TOURNAMENTS_COLLECTION].update_one(
                {"_id": tournament_id},
                {"$set": {"status": TOURNAMENT_CANCELED, "updatedAt": now}},
                session=session,
            )
            recipients = [
                reg["user"]
                for reg in db[REGISTRATIONS_COLLECTION].find(
                    {"tournament": tournament_id}, {"user": 1}, session=session
                )
            ]

        logger.info(f"Tournament {tournament_id} canceled; {len(paid)} fees refunded")
        NotificationService.send_many(
            recipients,
            NOTIFY_TOURNAMENT_CANCELED,
            {"tournamentName": tournament["name"]},
            tournament_id,
            "Tournament",
            db,
        )
        return TournamentService.get_tournament(tournament_id, db)

