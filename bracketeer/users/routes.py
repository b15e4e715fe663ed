"""Routes for the users blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from bracketeer.auth.decorators import admin_required, login_required
from bracketeer.core.constants import ROLE_ADMIN
from bracketeer.errors import ForbiddenError
from bracketeer.utils import parse_pagination, to_object_id, validate_form

from . import bp
from .forms import CreateUserForm, UpdateProfileForm, UserAdminForm
from .services import UserService


@bp.route("", methods=["POST"])
@admin_required
def create_user() -> Any:
    """Create a user account record."""
    form = CreateUserForm()
    validate_form(form)
    user = UserService.create_user(form.username.data, form.email.data)
    return jsonify(user), 201


@bp.route("", methods=["GET"])
@admin_required
def list_users() -> Any:
    """List users for administrators."""
    page, limit = parse_pagination(request.args)
    filters = {"role": request.args.get("role"), "status": request.args.get("status")}
    return jsonify(UserService.list_users(filters, page, limit))


@bp.route("/me", methods=["GET"])
@login_required
def get_me() -> Any:
    """Return the calling user's full record."""
    return jsonify(UserService.get_user(g.user["id"]))


@bp.route("/me", methods=["PATCH"])
@login_required
def update_me() -> Any:
    """Update the calling user's profile."""
    form = UpdateProfileForm()
    validate_form(form)
    user = UserService.update_user(
        g.user["id"],
        {
            "username": form.username.data,
            "email": form.email.data,
            "avatar": form.avatar.data,
        },
    )
    return jsonify(user)


@bp.route("/<user_id>", methods=["GET"])
@login_required
def get_user(user_id: str) -> Any:
    """Return a user's public profile."""
    return jsonify(UserService.get_user(to_object_id(user_id, "user id"), public=True))


@bp.route("/<user_id>", methods=["PATCH"])
@admin_required
def update_user(user_id: str) -> Any:
    """Change a user's role or status."""
    form = UserAdminForm()
    validate_form(form)
    user = UserService.update_user(
        to_object_id(user_id, "user id"),
        {"role": form.role.data, "status": form.status.data},
    )
    return jsonify(user)


@bp.route("/<user_id>", methods=["DELETE"])
@login_required
def delete_user(user_id: str) -> Any:
    """Delete a user. Users may delete themselves; admins may delete anyone."""
    target = to_object_id(user_id, "user id")
    if target != g.user["id"] and g.user["role"] != ROLE_ADMIN:
        raise ForbiddenError()
    UserService.delete_user(target)
    return "", 204
