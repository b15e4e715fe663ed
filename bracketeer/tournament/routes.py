"""Routes for the tournament blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from bracketeer.auth.decorators import login_required
from bracketeer.core.constants import ROLE_ADMIN, ROLE_MANAGER
from bracketeer.utils import get_json_body, parse_pagination, to_object_id

from . import bp
from .services import TournamentService


@bp.route("", methods=["POST"])
@login_required(roles=(ROLE_ADMIN, ROLE_MANAGER))
def create_tournament() -> Any:
    """Create a draft tournament organized by the caller."""
    tournament = TournamentService.create_tournament(g.user["id"], get_json_body())
    return jsonify(tournament), 201


@bp.route("", methods=["GET"])
def list_tournaments() -> Any:
    """List public tournaments, newest start first."""
    page, limit = parse_pagination(request.args)
    game = request.args.get("game")
    return jsonify(
        TournamentService.list_tournaments(
            page, limit, to_object_id(game, "game id") if game else None
        )
    )


@bp.route("/<tournament_id>", methods=["GET"])
def get_tournament(tournament_id: str) -> Any:
    return jsonify(
        TournamentService.get_tournament(to_object_id(tournament_id, "tournament id"))
    )


@bp.route("/<tournament_id>", methods=["PATCH"])
@login_required
def update_tournament(tournament_id: str) -> Any:
    """Edit a tournament's details."""
    tournament = TournamentService.update_tournament(
        to_object_id(tournament_id, "tournament id"), g.user, get_json_body()
    )
    return jsonify(tournament)


@bp.route("/<tournament_id>", methods=["DELETE"])
@login_required
def delete_tournament(tournament_id: str) -> Any:
    TournamentService.delete_tournament(
        to_object_id(tournament_id, "tournament id"), g.user
    )
    return "", 204


@bp.route("/<tournament_id>/close-registration", methods=["POST"])
@login_required
def close_registration(tournament_id: str) -> Any:
    return jsonify(
        TournamentService.close_registration(
            to_object_id(tournament_id, "tournament id"), g.user
        )
    )


@bp.route("/<tournament_id>/start", methods=["POST"])
@login_required
def start_tournament(tournament_id: str) -> Any:
    """Generate the bracket and open round one."""
    result = TournamentService.start_tournament(
        to_object_id(tournament_id, "tournament id"), g.user
    )
    return jsonify(result), 201


@bp.route("/<tournament_id>/advance", methods=["POST"])
@login_required
def advance_round(tournament_id: str) -> Any:
    """Move the bracket on to its next round."""
    return jsonify(
        TournamentService.advance_round(
            to_object_id(tournament_id, "tournament id"), g.user
        )
    )


@bp.route("/<tournament_id>/cancel", methods=["POST"])
@login_required
def cancel_tournament(tournament_id: str) -> Any:
    """Cancel a tournament and refund its entry fees."""
    return jsonify(
        TournamentService.cancel_tournament(
            to_object_id(tournament_id, "tournament id"), g.user
        )
    )
