"""Teams blueprint."""

from flask import Blueprint

bp = Blueprint("teams", __name__, url_prefix="/teams")

from . import routes  # noqa: E402, F401
from .models import Team  # noqa: E402
from .services import TeamService  # noqa: E402

__all__ = ["Team", "TeamService", "routes"]
