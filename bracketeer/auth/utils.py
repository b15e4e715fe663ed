"""Utility functions for authentication."""

from __future__ import annotations

from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from flask import current_app, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from bracketeer.core.constants import USER_BANNED, USERS_COLLECTION
from bracketeer.errors import AuthenticationError, ForbiddenError
from bracketeer.extensions import mongo

TOKEN_SALT = "bracketeer-auth"


def _get_serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def generate_auth_token(user_id: ObjectId | str) -> str:
    """Sign a bearer token for a user id."""
    return _get_serializer().dumps({"uid": str(user_id)})


def verify_auth_token(token: str) -> ObjectId:
    """Return the user id carried by a token, or raise AuthenticationError."""
    try:
        payload = _get_serializer().loads(
            token, max_age=current_app.config["AUTH_TOKEN_MAX_AGE"]
        )
    except SignatureExpired as e:
        raise AuthenticationError("Token has expired.") from e
    except BadSignature as e:
        raise AuthenticationError("Invalid token.") from e
    try:
        return ObjectId(payload["uid"])
    except (KeyError, TypeError, InvalidId) as e:
        raise AuthenticationError("Invalid token.") from e


def get_bearer_token() -> str:
    """Extract the token from the Authorization header."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError()
    return token.strip()


def load_principal() -> dict[str, Any]:
    """Authenticate the current request and return the calling user's principal."""
    user_id = verify_auth_token(get_bearer_token())
    user = mongo.db[USERS_COLLECTION].find_one(
        {"_id": user_id}, {"username": 1, "role": 1, "status": 1}
    )
    if user is None:
        current_app.logger.warning(f"Token for unknown user {user_id}.")
        raise AuthenticationError("User not found.")
    if user.get("status") == USER_BANNED:
        raise ForbiddenError("Your account has been banned.")
    return {
        "id": user["_id"],
        "username": user.get("username"),
        "role": user.get("role"),
        "status": user.get("status"),
    }
