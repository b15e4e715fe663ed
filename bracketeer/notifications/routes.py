"""Routes for the notifications blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from bracketeer.auth.decorators import login_required
from bracketeer.utils import parse_pagination, to_object_id

from . import bp
from .services import NotificationService


@bp.route("", methods=["GET"])
@login_required
def list_notifications() -> Any:
    """List the caller's notifications."""
    page, limit = parse_pagination(request.args)
    unread_only = request.args.get("unread") == "1"
    return jsonify(
        NotificationService.list_for_user(g.user["id"], unread_only, page, limit)
    )


@bp.route("/<notification_id>/read", methods=["POST"])
@login_required
def mark_read(notification_id: str) -> Any:
    """Mark one notification as read."""
    notification = NotificationService.mark_read(
        to_object_id(notification_id, "notification id"), g.user["id"]
    )
    return jsonify(notification)


@bp.route("/read", methods=["POST"])
@login_required
def mark_all_read() -> Any:
    """Mark all of the caller's notifications as read."""
    return jsonify({"updated": NotificationService.mark_all_read(g.user["id"])})
