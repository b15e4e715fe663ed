"""Routes for the disputes blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify

from bracketeer.auth.decorators import admin_required, login_required
from bracketeer.core.constants import ROLE_ADMIN, ROLE_SUPPORT
from bracketeer.utils import to_object_id, validate_form

from . import bp
from .forms import CommentForm, DisputeForm, EvidenceForm, ResolveForm
from .models import DisputeResolution
from .services import DisputeService


@bp.route("", methods=["POST"])
@login_required
def create_dispute() -> Any:
    """Open a dispute on a match the caller played in."""
    form = DisputeForm()
    validate_form(form)
    dispute = DisputeService.create_dispute(
        to_object_id(form.matchId.data, "match id"), g.user["id"], form.reason.data
    )
    return jsonify(dispute), 201


@bp.route("/<dispute_id>", methods=["GET"])
@login_required
def get_dispute(dispute_id: str) -> Any:
    return jsonify(
        DisputeService.get_dispute(to_object_id(dispute_id, "dispute id"), g.user)
    )


@bp.route("/<dispute_id>/comments", methods=["POST"])
@login_required
def add_comment(dispute_id: str) -> Any:
    form = CommentForm()
    validate_form(form)
    dispute = DisputeService.add_comment(
        to_object_id(dispute_id, "dispute id"), g.user, form.content.data
    )
    return jsonify(dispute), 201


@bp.route("/<dispute_id>/evidence", methods=["POST"])
@login_required
def add_evidence(dispute_id: str) -> Any:
    form = EvidenceForm()
    validate_form(form)
    dispute = DisputeService.add_evidence(
        to_object_id(dispute_id, "dispute id"),
        g.user,
        form.url.data,
        form.description.data or "",
    )
    return jsonify(dispute), 201


@bp.route("/<dispute_id>/review", methods=["POST"])
@login_required(roles=(ROLE_ADMIN, ROLE_SUPPORT))
def start_review(dispute_id: str) -> Any:
    """Take a dispute under review."""
    return jsonify(
        DisputeService.start_review(to_object_id(dispute_id, "dispute id"), g.user["id"])
    )


@bp.route("/<dispute_id>/cancel", methods=["POST"])
@login_required
def cancel_dispute(dispute_id: str) -> Any:
    return jsonify(
        DisputeService.cancel_dispute(to_object_id(dispute_id, "dispute id"), g.user)
    )


@bp.route("/<dispute_id>/resolve", methods=["PUT"])
@admin_required
def resolve_dispute(dispute_id: str) -> Any:
    """Rule on a dispute."""
    form = ResolveForm()
    validate_form(form)
    ruling = DisputeResolution(form.decision.data, form.finalComment.data or "")
    dispute = DisputeService.resolve(
        to_object_id(dispute_id, "dispute id"), g.user["id"], ruling
    )
    return jsonify(dispute)
