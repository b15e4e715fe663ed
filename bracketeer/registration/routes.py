"""Routes for the registration blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from bracketeer.auth.decorators import login_required
from bracketeer.utils import parse_pagination, to_object_id, validate_form

from . import bp
from .forms import RegistrationForm
from .services import RegistrationService


@bp.route("/<tournament_id>/register", methods=["POST"])
@login_required
def register(tournament_id: str) -> Any:
    """Enter the caller (or the caller's team) into a tournament."""
    form = RegistrationForm()
    validate_form(form)
    team_id = to_object_id(form.teamId.data, "team id") if form.teamId.data else None
    registration = RegistrationService.register(
        to_object_id(tournament_id, "tournament id"), g.user["id"], team_id
    )
    return jsonify(registration), 201


@bp.route("/<tournament_id>/register", methods=["DELETE"])
@login_required
def cancel_registration(tournament_id: str) -> Any:
    RegistrationService.cancel_registration(
        to_object_id(tournament_id, "tournament id"), g.user["id"]
    )
    return "", 204


@bp.route("/<tournament_id>/check-in", methods=["POST"])
@login_required
def check_in(tournament_id: str) -> Any:
    registration = RegistrationService.check_in(
        to_object_id(tournament_id, "tournament id"), g.user["id"]
    )
    return jsonify(registration)


@bp.route("/<tournament_id>/registrations", methods=["GET"])
def list_registrations(tournament_id: str) -> Any:
    """List who has entered a tournament."""
    page, limit = parse_pagination(request.args)
    return jsonify(
        RegistrationService.list_registrations(
            to_object_id(tournament_id, "tournament id"), page, limit
        )
    )
