"""Routes for the games blueprint."""

from __future__ import annotations

from typing import Any

from flask import jsonify, request

from bracketeer.auth.decorators import admin_required
from bracketeer.errors import ValidationError
from bracketeer.utils import get_json_body, to_object_id, validate_form

from . import bp
from .forms import GameForm
from .services import GameService


@bp.route("", methods=["GET"])
def list_games() -> Any:
    """List the active games."""
    return jsonify(GameService.list_games(request.args.get("all") == "1"))


@bp.route("/<game_id>", methods=["GET"])
def get_game(game_id: str) -> Any:
    """Return a single game."""
    return jsonify(GameService.get_game(to_object_id(game_id, "game id")))


@bp.route("", methods=["POST"])
@admin_required
def create_game() -> Any:
    """Register a new game."""
    form = GameForm()
    validate_form(form)
    return jsonify(GameService.create_game(form.data)), 201


@bp.route("/<game_id>", methods=["PATCH"])
@admin_required
def set_game_active(game_id: str) -> Any:
    """Enable or retire a game."""
    is_active = get_json_body().get("isActive")
    if not isinstance(is_active, bool):
        raise ValidationError("isActive must be a boolean.")
    return jsonify(GameService.set_active(to_object_id(game_id, "game id"), is_active))
