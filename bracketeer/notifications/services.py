"""Service layer for notifications."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from bracketeer.core.constants import NOTIFICATIONS_COLLECTION
from bracketeer.errors import NotFoundError
from bracketeer.extensions import mongo
from bracketeer.utils import paginate, utcnow

if TYPE_CHECKING:
    from bson import ObjectId
    from pymongo.database import Database

    from bracketeer.core.types import PaginatedResult

    from .models import Notification

logger = logging.getLogger(__name__)

DELIVERY_CHANNELS = ("sms", "email")


class NotificationService:
    """Persists notifications and hands them to the delivery channels."""

    @staticmethod
    def _dispatch(notification: dict[str, Any]) -> None:
        for channel in DELIVERY_CHANNELS:
            logger.info(
                f"Dispatching {notification['templateKey']} to "
                f"{notification['recipient']} via {channel}"
            )

    @staticmethod
    def send(
        recipient_id: ObjectId,
        template_key: str,
        params: dict[str, Any] | None = None,
        entity_id: ObjectId | None = None,
        entity_model: str | None = None,
        db: Database | None = None,
    ) -> Notification | None:
        """Record a notification and hand it to the delivery channels.

        Failures are logged and swallowed: a notification must never undo
        the workflow that triggered it.
        """
        if db is None:
            db = mongo.db
        notification: dict[str, Any] = {
            "recipient": recipient_id,
            "templateKey": template_key,
            "params": params or {},
            "entityId": entity_id,
            "entityModel": entity_model,
            "isRead": False,
            "createdAt": utcnow(),
        }
        try:
            notification["_id"] = (
                db[NOTIFICATIONS_COLLECTION].insert_one(notification).inserted_id
            )
        except PyMongoError as e:
            logger.error(f"Failed to store {template_key} for {recipient_id}: {e}")
            return None

        NotificationService._dispatch(notification)
        return notification  # type: ignore[return-value]

    @staticmethod
    def send_many(
        recipient_ids: list[ObjectId],
        template_key: str,
        params: dict[str, Any] | None = None,
        entity_id: ObjectId | None = None,
        entity_model: str | None = None,
        db: Database | None = None,
    ) -> None:
        """Send the same notification to several users."""
        for recipient_id in dict.fromkeys(recipient_ids):
            NotificationService.send(
                recipient_id, template_key, params, entity_id, entity_model, db
            )

    @staticmethod
    def list_for_user(
        user_id: ObjectId,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 10,
        db: Database | None = None,
    ) -> PaginatedResult:
        """List a user's notifications, newest first."""
        if db is None:
            db = mongo.db
        query: dict[str, Any] = {"recipient": user_id}
        if unread_only:
            query["isRead"] = False
        return paginate(
            db[NOTIFICATIONS_COLLECTION], query, page, limit, sort=[("createdAt", -1)]
        )

    @staticmethod
    def mark_read(
        notification_id: ObjectId, user_id: ObjectId, db: Database | None = None
    ) -> Notification:
        """Mark one of the user's notifications as read."""
        if db is None:
            db = mongo.db
        notification = db[NOTIFICATIONS_COLLECTION].find_one_and_update(
            {"_id": notification_id, "recipient": user_id},
            {"$set": {"isRead": True}},
            return_document=ReturnDocument.AFTER,
        )
        if notification is None:
            raise NotFoundError("Notification not found.")
        return notification

    @staticmethod
    def mark_all_read(user_id: ObjectId, db: Database | None = None) -> int:
        """Mark every unread notification of the user as read."""
        if db is None:
            db = mongo.db
        result = db[NOTIFICATIONS_COLLECTION].update_many(
            {"recipient": user_id, "isRead": False}, {"$set": {"isRead": True}}
        )
        return result.modified_count
