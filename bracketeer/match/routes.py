"""Routes for the match blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from bracketeer.auth.decorators import admin_required, login_required
from bracketeer.utils import get_json_body, parse_pagination, to_object_id

from . import bp
from .models import LobbyUpdate
from .services import MatchService


@bp.route("", methods=["GET"])
@login_required
def list_matches() -> Any:
    """List matches, filtered by tournament, participant or status."""
    page, limit = parse_pagination(request.args)
    tournament = request.args.get("tournament")
    participant = request.args.get("participant")
    matches = MatchService.list_matches(
        to_object_id(tournament, "tournament id") if tournament else None,
        to_object_id(participant, "participant id") if participant else None,
        request.args.get("status"),
        page,
        limit,
    )
    return jsonify(matches)


@bp.route("/<match_id>", methods=["GET"])
@login_required
def get_match(match_id: str) -> Any:
    return jsonify(MatchService.get_match(to_object_id(match_id, "match id"), g.user))


@bp.route("/<match_id>/start", methods=["POST"])
@login_required
def start_match(match_id: str) -> Any:
    return jsonify(MatchService.start_match(to_object_id(match_id, "match id"), g.user))


@bp.route("/<match_id>/lobby", methods=["PATCH"])
@login_required
def update_lobby(match_id: str) -> Any:
    """Update the lobby code, password, visibility or scheduled time."""
    update = LobbyUpdate.from_payload(get_json_body())
    return jsonify(
        MatchService.update_lobby(to_object_id(match_id, "match id"), g.user, update)
    )


@bp.route("/<match_id>/report", methods=["POST"])
@login_required
def report_result(match_id: str) -> Any:
    """Report scores or placements for a match the caller played in."""
    match = MatchService.report_result(
        to_object_id(match_id, "match id"), g.user["id"], get_json_body()
    )
    return jsonify(match)


@bp.route("/<match_id>/confirm", methods=["POST"])
@admin_required
def confirm_result(match_id: str) -> Any:
    return jsonify(MatchService.confirm_result(to_object_id(match_id, "match id")))
