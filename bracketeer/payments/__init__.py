"""Payments blueprint: wallet charges and the ledger."""

from flask import Blueprint

bp = Blueprint("payments", __name__, url_prefix="/payments")

from . import routes  # noqa: E402, F401
from .services import PaymentService, WalletService  # noqa: E402

__all__ = ["PaymentService", "WalletService", "routes"]
