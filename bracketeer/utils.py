"""Utility functions for the application."""

from __future__ import annotations

import datetime
import math
from typing import TYPE_CHECKING, Any

from bson import ObjectId
from bson.errors import InvalidId

from .core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from .errors import ValidationError

if TYPE_CHECKING:
    from pymongo.collection import Collection

    from .core.types import PaginatedResult


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def to_object_id(value: Any, field: str = "id") -> ObjectId:
    """Parse an ObjectId from user input, raising ValidationError if malformed."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError) as e:
        raise ValidationError(f"Invalid {field}.") from e


def parse_pagination(args: Any) -> tuple[int, int]:
    """Read ``page`` and ``limit`` from a request's query arguments."""
    try:
        page = int(args.get("page", 1))
        limit = int(args.get("limit", DEFAULT_PAGE_SIZE))
    except (TypeError, ValueError) as e:
        raise ValidationError("page and limit must be integers.") from e
    if page < 1:
        raise ValidationError("page must be a positive integer.")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}.")
    return page, limit


def paginate(
    collection: Collection,
    query: dict[str, Any],
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    sort: list[tuple[str, int]] | None = None,
    projection: dict[str, Any] | None = None,
) -> PaginatedResult:
    """Run a paginated find and return the page plus totals."""
    cursor = collection.find(query, projection)
    if sort:
        cursor = cursor.sort(sort)
    results = list(cursor.skip((page - 1) * limit).limit(limit))
    total = collection.count_documents(query)
    return {
        "results": results,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit),
        "totalResults": total,
    }


def is_member(team: dict[str, Any], user_id: ObjectId) -> bool:
    """Return True if the user is listed among the team's members."""
    return user_id in team.get("members", [])


def validate_form(form: Any) -> None:
    """Validate a submitted FlaskForm, raising ValidationError with its messages."""
    if not form.validate_on_submit():
        messages = [
            f"{name}: {' '.join(errors)}" for name, errors in form.errors.items()
        ]
        raise ValidationError("; ".join(messages) or "Invalid request.")


def get_json_body() -> dict[str, Any]:
    """Return the request's JSON object body, or raise ValidationError."""
    from flask import request

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def parse_datetime(value: Any, field: str) -> datetime.datetime:
    """Parse an ISO-8601 timestamp; naive values are taken to be UTC."""
    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.datetime.fromisoformat(value)
        except ValueError as e:
            raise ValidationError(f"{field} must be an ISO-8601 timestamp.") from e
    else:
        raise ValidationError(f"{field} must be an ISO-8601 timestamp.")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def parse_int(value: Any, field: str, minimum: int | None = None) -> int:
    """Parse an integer from user input, optionally enforcing a lower bound."""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError(f"{field} must be an integer.")
    try:
        number = int(value)
    except ValueError as e:
        raise ValidationError(f"{field} must be an integer.") from e
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}.")
    return number
