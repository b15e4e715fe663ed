"""Routes for the teams blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from bracketeer.auth.decorators import login_required
from bracketeer.utils import parse_pagination, to_object_id, validate_form

from . import bp
from .forms import MemberForm, TeamForm, UpdateTeamForm
from .services import TeamService


@bp.route("", methods=["GET"])
def list_teams() -> Any:
    """List teams, optionally filtered by game."""
    page, limit = parse_pagination(request.args)
    game = request.args.get("game")
    game_id = to_object_id(game, "game id") if game else None
    return jsonify(TeamService.list_teams(game_id, page=page, limit=limit))


@bp.route("", methods=["POST"])
@login_required
def create_team() -> Any:
    """Create a team captained by the caller."""
    form = TeamForm()
    validate_form(form)
    team = TeamService.create_team(
        g.user["id"],
        form.name.data,
        form.tag.data,
        to_object_id(form.game.data, "game id"),
        form.avatar.data,
    )
    return jsonify(team), 201


@bp.route("/<team_id>", methods=["GET"])
def get_team(team_id: str) -> Any:
    """Return a team."""
    return jsonify(TeamService.get_team(to_object_id(team_id, "team id")))


@bp.route("/<team_id>", methods=["PATCH"])
@login_required
def update_team(team_id: str) -> Any:
    """Edit a team's details."""
    form = UpdateTeamForm()
    validate_form(form)
    team = TeamService.update_team(
        to_object_id(team_id, "team id"),
        g.user["id"],
        {"name": form.name.data, "tag": form.tag.data, "avatar": form.avatar.data},
    )
    return jsonify(team)


@bp.route("/<team_id>", methods=["DELETE"])
@login_required
def delete_team(team_id: str) -> Any:
    """Delete a team."""
    TeamService.delete_team(to_object_id(team_id, "team id"), g.user["id"])
    return "", 204


@bp.route("/<team_id>/members", methods=["POST"])
@login_required
def add_member(team_id: str) -> Any:
    """Add a member to a team."""
    form = MemberForm()
    validate_form(form)
    team = TeamService.add_member(
        to_object_id(team_id, "team id"),
        g.user["id"],
        to_object_id(form.userId.data, "user id"),
    )
    return jsonify(team)


@bp.route("/<team_id>/members/<user_id>", methods=["DELETE"])
@login_required
def remove_member(team_id: str, user_id: str) -> Any:
    """Remove a member from a team, or leave it when removing oneself."""
    team_oid = to_object_id(team_id, "team id")
    member_oid = to_object_id(user_id, "user id")
    if member_oid == g.user["id"]:
        TeamService.leave_team(team_oid, member_oid)
        return "", 204
    return jsonify(TeamService.remove_member(team_oid, g.user["id"], member_oid))


@bp.route("/<team_id>/captain", methods=["PUT"])
@login_required
def transfer_captaincy(team_id: str) -> Any:
    """Hand captaincy to another member."""
    form = MemberForm()
    validate_form(form)
    team = TeamService.transfer_captaincy(
        to_object_id(team_id, "team id"),
        g.user["id"],
        to_object_id(form.userId.data, "user id"),
    )
    return jsonify(team)
