"""Routes for the payments blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from bracketeer.auth.decorators import login_required
from bracketeer.errors import ValidationError
from bracketeer.utils import parse_pagination, to_object_id, validate_form

from . import bp
from .forms import ChargeForm
from .services import PaymentService, WalletService


@bp.route("/charge", methods=["POST"])
@login_required
def create_charge() -> Any:
    """Start a wallet top-up and return the gateway URL to redirect to."""
    form = ChargeForm()
    validate_form(form)
    return jsonify(PaymentService.create_charge_request(g.user["id"], form.amount.data)), 201


@bp.route("/verify", methods=["GET"])
def verify_charge() -> Any:
    """Gateway callback: confirm the payment and credit the wallet."""
    authority = request.args.get("Authority")
    status = request.args.get("Status")
    transaction_id = request.args.get("transactionId")
    if not authority or not status or not transaction_id:
        raise ValidationError("Authority, Status and transactionId are required.")
    result = PaymentService.verify_charge(
        authority, status, to_object_id(transaction_id, "transaction id")
    )
    return jsonify(result)


@bp.route("/transactions", methods=["GET"])
@login_required
def list_transactions() -> Any:
    """List the caller's wallet ledger."""
    page, limit = parse_pagination(request.args)
    return jsonify(WalletService.list_transactions(g.user["id"], page, limit))
