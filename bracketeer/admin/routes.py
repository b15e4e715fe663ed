"""Routes for the admin blueprint."""

from __future__ import annotations

from typing import Any

from flask import jsonify

from bracketeer.auth.decorators import admin_required

from . import bp
from .services import AdminService


@bp.route("/stats", methods=["GET"])
@admin_required
def dashboard_stats() -> Any:
    """Return the admin dashboard statistics."""
    return jsonify(AdminService.get_dashboard_stats())
