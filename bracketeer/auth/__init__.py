"""Bearer-token identity and role checks."""

from .decorators import admin_required, login_required  # noqa: F401
from .utils import generate_auth_token  # noqa: F401

__all__ = ["admin_required", "generate_auth_token", "login_required"]
