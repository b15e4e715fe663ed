"""Service layer for tournament registration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from bracketeer.core.constants import (
    NOTIFY_REGISTRATION_CONFIRMED,
    PAYMENT_NOT_APPLICABLE,
    PAYMENT_PAID,
    REG_CHECKED_IN,
    REG_REGISTERED,
    REGISTRATIONS_COLLECTION,
    TEAMS_COLLECTION,
    TOURNAMENT_REG_CLOSED,
    TOURNAMENT_REG_OPEN,
    TOURNAMENTS_COLLECTION,
    TX_REFUND,
    TX_TOURNAMENT_FEE,
    USERS_COLLECTION,
)
from bracketeer.core.transactions import transaction
from bracketeer.errors import (
    DuplicateResourceError,
    ForbiddenError,
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from bracketeer.extensions import mongo
from bracketeer.notifications.services import NotificationService
from bracketeer.payments.services import WalletService
from bracketeer.utils import is_member, paginate, utcnow

if TYPE_CHECKING:
    import datetime

    from bson import ObjectId
    from pymongo.database import Database

    from bracketeer.core.types import PaginatedResult

    from .models import Registration

logger = logging.getLogger(__name__)


class RegistrationService:
    """Creates and manages tournament registrations."""

    @staticmethod
    def register(
        tournament_id: ObjectId,
        user_id: ObjectId,
        team_id: ObjectId | None = None,
        db: Database | None = None,
    ) -> Registration:
        """Register a user, or a user's team, for a tournament.

        Every check, the entry-fee debit and the insert happen in one
        transaction, so a failure at any step leaves no registration and no
        charge behind. A bump of the tournament's registration counter makes
        concurrent registrations for the same tournament conflict at commit.

        Raises:
            NotFoundError: If the tournament, user or team does not exist.
            InvalidStateError: If registration is closed or the event is full.
            DuplicateResourceError: If the user or team is already registered.
            ForbiddenError: If the user is not a member of the team.
            ValidationError: If the team id is missing, unexpected or the
                team has the wrong number of members.
            InsufficientFundsError: If the wallet cannot cover the entry fee.
        """
        if db is None:
            db = mongo.db
        with transaction(db) as session:
            registrations = db[REGISTRATIONS_COLLECTION]
            tournament = db[TOURNAMENTS_COLLECTION].find_one(
                {"_id": tournament_id}, session=session
            )
            user = db[USERS_COLLECTION].find_one(
                {"_id": user_id}, {"walletBalance": 1}, session=session
            )
            existing = registrations.find_one(
                {"user": user_id, "tournament": tournament_id}, {"_id": 1}, session=session
            )
            count = registrations.count_documents(
                {"tournament": tournament_id}, session=session
            )

            if tournament is None:
                raise NotFoundError("Tournament not found.")
            if user is None:
                raise NotFoundError("User not found.")
            if tournament["status"] != TOURNAMENT_REG_OPEN:
                raise InvalidStateError("Registration is not open for this tournament.")
            if count >= tournament["maxParticipants"]:
                raise InvalidStateError("This tournament is full.")
            if existing is not None:
                raise DuplicateResourceError(
                    "You are already registered for this tournament.", 400
                )

            team_size = tournament["teamSize"]
            if team_size > 1:
                if team_id is None:
                    raise ValidationError("A team is required to enter this tournament.")
                team = db[TEAMS_COLLECTION].find_one(
                    {"_id": team_id}, {"members": 1}, session=session
                )
                team_entry = registrations.find_one(
                    {"tournament": tournament_id, "team": team_id},
                    {"_id": 1},
                    session=session,
                )
                if team is None:
                    raise NotFoundError("Team not found.")
                if not is_member(team, user_id):
                    raise ForbiddenError("You are not a member of this team.")
                if len(team.get("members", [])) != team_size:
                    raise ValidationError(
                        f"The team must have exactly {team_size} members."
                    )
                if team_entry is not None:
                    raise DuplicateResourceError(
                        "This team is already registered for this tournament.", 400
                    )
            elif team_id is not None:
                raise ValidationError("This is an individual tournament; leave out the team.")

            fee = tournament.get("entryFee", 0)
            if fee > 0:
                if user.get("walletBalance", 0) < fee:
                    raise InsufficientFundsError()
                WalletService.debit(
                    db,
                    user_id,
                    fee,
                    TX_TOURNAMENT_FEE,
                    tournament_id,
                    f"Entry fee for {tournament['name']}",
                    session,
                )

            now = utcnow()
            db[TOURNAMENTS_COLLECTION].update_one(
                {"_id": tournament_id},
                {"$inc": {"registrationCount": 1}, "$set": {"updatedAt": now}},
                session=session,
            )
            registration: dict[str, Any] = {
                "user": user_id,
                "tournament": tournament_id,
                "status": REG_REGISTERED,
                "paymentStatus": PAYMENT_PAID if fee > 0 else PAYMENT_NOT_APPLICABLE,
                "amountPaid": fee,
                "checkedInAt": None,
                "finalRank": None,
                "createdAt": now,
                "updatedAt": now,
            }
            # Solo entries carry no team field so the partial team index skips them
            if team_size > 1:
                registration["team"] = team_id
            registration["_id"] = registrations.insert_one(
                registration, session=session
            ).inserted_id

        logger.info(f"User {user_id} registered for tournament {tournament_id}")
        NotificationService.send(
            user_id,
            NOTIFY_REGISTRATION_CONFIRMED,
            {"tournamentName": tournament["name"]},
            tournament_id,
            "Tournament",
            db,
        )
        return registration  # type: ignore[return-value]

    @staticmethod
    def cancel_registration(
        tournament_id: ObjectId, user_id: ObjectId, db: Database | None = None
    ) -> None:
        """Withdraw from a tournament while registration is open, refunding any fee."""
        if db is None:
            db = mongo.db
        with transaction(db) as session:
            tournament = db[TOURNAMENTS_COLLECTION].find_one(
                {"_id": tournament_id}, session=session
            )
            if tournament is None:
                raise NotFoundError("Tournament not found.")
            if tournament["status"] != TOURNAMENT_REG_OPEN:
                raise InvalidStateError("Registration is no longer open for this tournament.")
            registration = db[REGISTRATIONS_COLLECTION].find_one(
                {"user": user_id, "tournament": tournament_id}, session=session
            )
            if registration is None:
                raise NotFoundError("Registration not found.")

            refund = registration.get("amountPaid", 0)
            if registration.get("paymentStatus") == PAYMENT_PAID and refund > 0:
                WalletService.credit(
                    db,
                    user_id,
                    refund,
                    TX_REFUND,
                    tournament_id,
                    f"Refund for withdrawing from {tournament['name']}",
                    session,
                )
            db[REGISTRATIONS_COLLECTION].delete_one(
                {"_id": registration["_id"]}, session=session
            )
            db[TOURNAMENTS_COLLECTION].update_one(
                {"_id": tournament_id},
                {"$inc": {"registrationCount": -1}, "$set": {"updatedAt": utcnow()}},
                session=session,
            )
        logger.info(f"User {user_id} withdrew from tournament {tournament_id}")

    @staticmethod
    def check_in(
        tournament_id: ObjectId,
        user_id: ObjectId,
        now: datetime.datetime | None = None,
        db: Database | None = None,
    ) -> Registration:
        """Confirm attendance between check-in opening and the tournament start."""
        if db is None:
            db = mongo.db
        now = now or utcnow()
        tournament = db[TOURNAMENTS_COLLECTION].find_one({"_id": tournament_id})
        if tournament is None:
            raise NotFoundError("Tournament not found.")
        if tournament["status"] not in (TOURNAMENT_REG_OPEN, TOURNAMENT_REG_CLOSED):
            raise InvalidStateError("Check-in is not available for this tournament.")
        if not tournament["checkInStartDate"] <= now < tournament["tournamentStartDate"]:
            raise InvalidStateError("Check-in is not open right now.")

        registration = db[REGISTRATIONS_COLLECTION].find_one(
            {"user": user_id, "tournament": tournament_id}
        )
        if registration is None:
            raise NotFoundError("Registration not found.")
        result = db[REGISTRATIONS_COLLECTION].update_one(
            {"_id": registration["_id"], "status": REG_REGISTERED},
            {"$set": {"status": REG_CHECKED_IN, "checkedInAt": now, "updatedAt": now}},
        )
        if result.modified_count == 0:
            raise InvalidStateError(
                f"Cannot check in a registration that is {registration['status']}."
            )
        return db[REGISTRATIONS_COLLECTION].find_one({"_id": registration["_id"]})

    @staticmethod
    def list_registrations(
        tournament_id: ObjectId,
        page: int = 1,
        limit: int = 10,
        db: Database | None = None,
    ) -> PaginatedResult:
        """List a tournament's registrations in sign-up order."""
        if db is None:
            db = mongo.db
        if db[TOURNAMENTS_COLLECTION].find_one({"_id": tournament_id}, {"_id": 1}) is None:
            raise NotFoundError("Tournament not found.")
        return paginate(
            db[REGISTRATIONS_COLLECTION],
            {"tournament": tournament_id},
            page,
            limit,
            sort=[("createdAt", 1)],
        )
