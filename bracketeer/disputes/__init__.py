"""Disputes blueprint."""

from flask import Blueprint

bp = Blueprint("disputes", __name__, url_prefix="/disputes")

from . import routes  # noqa: E402, F401
from .models import Dispute  # noqa: E402
from .services import DisputeService  # noqa: E402

__all__ = ["Dispute", "DisputeService", "routes"]
