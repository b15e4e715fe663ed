"""Service layer for the dispute resolution workflow."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pymongo import ReturnDocument

from bracketeer.core.constants import (
    DECISION_AWARD_OPPONENT,
    DECISION_AWARD_REPORTER,
    DECISION_CANCEL_MATCH,
    DECISION_RESET_MATCH,
    DISPUTE_ACTIVE_STATUSES,
    DISPUTE_CANCELED,
    DISPUTE_OPEN,
    DISPUTE_RESOLVED,
    DISPUTE_UNDER_REVIEW,
    DISPUTES_COLLECTION,
    MATCH_ACTIVE,
    MATCH_CANCELED,
    MATCH_DISPUTED,
    MATCHES_COLLECTION,
    NOTIFY_DISPUTE_OPENED,
    NOTIFY_DISPUTE_RESOLVED,
    ROLE_ADMIN,
    ROLE_SUPPORT,
)
from bracketeer.core.transactions import transaction
from bracketeer.errors import (
    DuplicateResourceError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from bracketeer.extensions import mongo
from bracketeer.match.services import FINISHED_MATCH_STATUSES, MatchService
from bracketeer.match.utils import expand_to_user_ids, opponent_of, participant_for_user
from bracketeer.notifications.services import NotificationService
from bracketeer.utils import utcnow

from .models import DisputeResolution

if TYPE_CHECKING:
    from bson import ObjectId
    from pymongo.client_session import ClientSession
    from pymongo.database import Database

    from bracketeer.core.types import ParticipantRef

    from .models import Dispute

logger = logging.getLogger(__name__)

STAFF_ROLES = (ROLE_ADMIN, ROLE_SUPPORT)


class DisputeService:
    """Handles the life of a dispute, from filing to ruling."""

    @staticmethod
    def _load(
        db: Database, dispute_id: ObjectId, session: ClientSession | None = None
    ) -> Dispute:
        dispute = db[DISPUTES_COLLECTION].find_one({"_id": dispute_id}, session=session)
        if dispute is None:
            raise NotFoundError("Dispute not found.")
        return dispute

    @staticmethod
    def _load_match(
        db: Database, match_id: ObjectId, session: ClientSession | None = None
    ) -> dict[str, Any]:
        match = db[MATCHES_COLLECTION].find_one({"_id": match_id}, session=session)
        if match is None:
            raise NotFoundError("Match associated with the dispute not found.")
        return match

    @staticmethod
    def _ensure_access(
        db: Database, dispute: dict[str, Any], principal: dict[str, Any]
    ) -> None:
        """Let staff and the match's participants through."""
        if principal["role"] in STAFF_ROLES:
            return
        match = DisputeService._load_match(db, dispute["match"])
        if participant_for_user(db, match, principal["id"]) is None:
            raise ForbiddenError("You are not a participant of this dispute.")

    @staticmethod
    def create_dispute(
        match_id: ObjectId,
        reporter_id: ObjectId,
        reason: str,
        db: Database | None = None,
    ) -> Dispute:
        """Open a dispute and hold the match in ``disputed`` until it is ruled on."""
        if db is None:
            db = mongo.db
        with transaction(db) as session:
            match = db[MATCHES_COLLECTION].find_one({"_id": match_id}, session=session)
            if match is None:
                raise NotFoundError("Match not found.")
            if participant_for_user(db, match, reporter_id, session) is None:
                raise ForbiddenError(
                    "Only participants of the match can open a dispute for it."
                )
            existing = db[DISPUTES_COLLECTION].find_one(
                {"match": match_id}, {"_id": 1}, session=session
            )
            if existing is not None:
                raise DuplicateResourceError("A dispute already exists for this match.", 400)
            if match["status"] in FINISHED_MATCH_STATUSES:
                raise InvalidStateError("This match cannot be disputed.")

            now = utcnow()
            db[MATCHES_COLLECTION].update_one(
                {"_id": match_id},
                {"$set": {"status": MATCH_DISPUTED, "updatedAt": now}},
                session=session,
            )
            dispute: dict[str, Any] = {
                "match": match_id,
                "tournament": match["tournament"],
                "reporter": reporter_id,
                "reason": reason.strip(),
                "status": DISPUTE_OPEN,
                "evidence": [],
                "comments": [],
                "assignedTo": None,
                "resolution": None,
                "createdAt": now,
                "updatedAt": now,
            }
            dispute["_id"] = (
                db[DISPUTES_COLLECTION].insert_one(dispute, session=session).inserted_id
            )

        logger.info(f"Dispute {dispute['_id']} opened on match {match_id} by {reporter_id}")
        NotificationService.send_many(
            expand_to_user_ids(db, match["participants"]),
            NOTIFY_DISPUTE_OPENED,
            {"matchId": match_id, "reason": dispute["reason"]},
            dispute["_id"],
            "Dispute",
            db,
        )
        return dispute  # type: ignore[return-value]

    @staticmethod
    def get_dispute(
        dispute_id: ObjectId, principal: dict[str, Any], db: Database | None = None
    ) -> Dispute:
        """Return a dispute to staff or the match's participants."""
        if db is None:
            db = mongo.db
        dispute = DisputeService._load(db, dispute_id)
        DisputeService._ensure_access(db, dispute, principal)
        return dispute

    @staticmethod
    def add_comment(
        dispute_id: ObjectId,
        principal: dict[str, Any],
        content: str,
        db: Database | None = None,
    ) -> Dispute:
        """Append a message to the dispute thread."""
        if db is None:
            db = mongo.db
        dispute = DisputeService._load(db, dispute_id)
        DisputeService._ensure_access(db, dispute, principal)
        if dispute["status"] not in DISPUTE_ACTIVE_STATUSES:
            raise InvalidStateError("Comments are closed on this dispute.")
        now = utcnow()
        return db[DISPUTES_COLLECTION].find_one_and_update(
            {"_id": dispute_id},
            {
                "$push": {
                    "comments": {
                        "author": principal["id"],
                        "content": content.strip(),
                        "timestamp": now,
                    }
                },
                "$set": {"updatedAt": now},
            },
            return_document=ReturnDocument.AFTER,
        )

    @staticmethod
    def add_evidence(
        dispute_id: ObjectId,
        principal: dict[str, Any],
        url: str,
        description: str = "",
        db: Database | None = None,
    ) -> Dispute:
        """Attach evidence; only the match's participants may do so."""
        if db is None:
            db = mongo.db
        dispute = DisputeService._load(db, dispute_id)
        match = DisputeService._load_match(db, dispute["match"])
        if participant_for_user(db, match, principal["id"]) is None:
            raise ForbiddenError("Only participants can add evidence.")
        if dispute["status"] not in DISPUTE_ACTIVE_STATUSES:
            raise InvalidStateError("Evidence can no longer be added to this dispute.")
        now = utcnow()
        return db[DISPUTES_COLLECTION].find_one_and_update(
            {"_id": dispute_id},
            {
                "$push": {
                    "evidence": {
                        "uploader": principal["id"],
                        "url": url,
                        "description": description or "",
                        "uploadedAt": now,
                    }
                },
                "$set": {"updatedAt": now},
            },
            return_document=ReturnDocument.AFTER,
        )

    @staticmethod
    def start_review(
        dispute_id: ObjectId, staff_id: ObjectId, db: Database | None = None
    ) -> Dispute:
        """Assign an open dispute to a staff member."""
        if db is None:
            db = mongo.db
        dispute = db[DISPUTES_COLLECTION].find_one_and_update(
            {"_id": dispute_id, "status": DISPUTE_OPEN},
            {
                "$set": {
                    "status": DISPUTE_UNDER_REVIEW,
                    "assignedTo": staff_id,
                    "updatedAt": utcnow(),
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if dispute is None:
            DisputeService._load(db, dispute_id)
            raise InvalidStateError("Only an open dispute can be taken under review.")
        return dispute

    @staticmethod
    def cancel_dispute(
        dispute_id: ObjectId, principal: dict[str, Any], db: Database | None = None
    ) -> Dispute:
        """Withdraw a dispute; the reporter or an administrator may do so."""
        if db is None:
            db = mongo.db
        dispute = DisputeService._load(db, dispute_id)
        if principal["role"] != ROLE_ADMIN and dispute["reporter"] != principal["id"]:
            raise ForbiddenError("Only the reporter can cancel this dispute.")
        with transaction(db) as session:
            now = utcnow()
            updated = db[DISPUTES_COLLECTION].find_one_and_update(
                {"_id": dispute_id, "status": {"$in": list(DISPUTE_ACTIVE_STATUSES)}},
                {"$set": {"status": DISPUTE_CANCELED, "updatedAt": now}},
                return_document=ReturnDocument.AFTER,
                session=session,
            )
            if updated is None:
                raise InvalidStateError(
                    f"A {dispute['status']} dispute cannot be canceled."
                )
            # An unreported match returns to play; a reported one awaits confirmation
            db[MATCHES_COLLECTION].update_one(
                {"_id": dispute["match"], "status": MATCH_DISPUTED, "reportedBy": None},
                {"$set": {"status": MATCH_ACTIVE, "updatedAt": now}},
                session=session,
            )
        logger.info(f"Dispute {dispute_id} canceled by {principal['id']}")
        return updated

    @staticmethod
    def _apply_decision(
        db: Database,
        match: dict[str, Any],
        dispute: dict[str, Any],
        decision: str,
        session: ClientSession,
    ) -> None:
        if decision in (DECISION_AWARD_REPORTER, DECISION_AWARD_OPPONENT):
            reporter_side: ParticipantRef | None = participant_for_user(
                db, match, dispute["reporter"], session
            )
            if reporter_side is None:
                raise InvalidStateError("The reporter no longer plays in this match.")
            winner = (
                reporter_side
                if decision == DECISION_AWARD_REPORTER
                else opponent_of(match, reporter_side)
            )
            if winner is None:
                raise InvalidStateError("This match has no opponent to award.")
            MatchService.complete_match(db, match, winner, session)
        elif decision == DECISION_CANCEL_MATCH:
            match["status"] = MATCH_CANCELED
            match["winner"] = None
            MatchService.save(db, match, session)
        elif decision == DECISION_RESET_MATCH:
            match.update(
                status=MATCH_ACTIVE,
                scores=[],
                results=[],
                reportedBy=None,
                winner=None,
                completedAt=None,
            )
            MatchService.save(db, match, session)

    @staticmethod
    def resolve(
        dispute_id: ObjectId,
        admin_id: ObjectId,
        ruling: DisputeResolution,
        db: Database | None = None,
    ) -> Dispute:
        """Apply an administrator's ruling to the match and close the dispute.

        The match change, any rating update and the dispute's closure commit
        together. Warnings and ``no_action`` leave the match untouched.
        """
        if db is None:
            db = mongo.db
        try:
            ruling.validate()
        except ValueError as e:
            raise ValidationError(str(e)) from e

        with transaction(db) as session:
            dispute = DisputeService._load(db, dispute_id, session)
            if dispute["status"] not in DISPUTE_ACTIVE_STATUSES:
                raise InvalidStateError(
                    f"Cannot resolve a dispute with status '{dispute['status']}'."
                )
            match = DisputeService._load_match(db, dispute["match"], session)
            DisputeService._apply_decision(db, match, dispute, ruling.decision, session)

            dispute.update(
                status=DISPUTE_RESOLVED,
                assignedTo=admin_id,
                resolution=ruling.to_document(),
                updatedAt=utcnow(),
            )
            db[DISPUTES_COLLECTION].replace_one(
                {"_id": dispute_id}, dispute, session=session
            )

        MatchService.invalidate_team_caches(match)
        logger.info(f"Dispute {dispute_id} resolved with {ruling.decision} by {admin_id}")
        NotificationService.send(
            dispute["reporter"],
            NOTIFY_DISPUTE_RESOLVED,
            {"decision": ruling.decision, "finalComment": ruling.final_comment},
            dispute_id,
            "Dispute",
            db,
        )
        return dispute
