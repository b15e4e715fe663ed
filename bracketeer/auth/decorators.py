"""Decorators for protected routes."""

from functools import wraps

from flask import g

from bracketeer.core.constants import ROLE_ADMIN
from bracketeer.errors import ForbiddenError

from .utils import load_principal


def login_required(f=None, roles=None):
    """Reject the request unless it carries a valid bearer token.

    The authenticated principal is stored on ``g.user``.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(roles=(ROLE_ADMIN, ROLE_SUPPORT))
    def staff_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            g.user = load_principal()
            if roles and g.user["role"] not in roles:
                raise ForbiddenError("You do not have permission to access this resource.")
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator


def admin_required(f):
    """Allow only administrators."""
    return login_required(f, roles=(ROLE_ADMIN,))
