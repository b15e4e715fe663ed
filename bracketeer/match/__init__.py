"""Match blueprint: lobbies, result reports and confirmation."""

from flask import Blueprint

bp = Blueprint("match", __name__, url_prefix="/matches")

from . import routes  # noqa: E402, F401
from .models import Match  # noqa: E402
from .services import MatchService  # noqa: E402

__all__ = ["Match", "MatchService", "routes"]
