"""Games blueprint."""

from flask import Blueprint

bp = Blueprint("games", __name__, url_prefix="/games")

from . import routes  # noqa: E402, F401
from .services import GameService  # noqa: E402

__all__ = ["GameService", "routes"]
