"""Registration blueprint: entering, leaving and checking in to tournaments."""

from flask import Blueprint

bp = Blueprint("registration", __name__, url_prefix="/tournaments")

from . import routes  # noqa: E402, F401
from .services import RegistrationService  # noqa: E402

__all__ = ["RegistrationService", "routes"]
