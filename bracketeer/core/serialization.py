"""JSON serialization of MongoDB documents."""

from __future__ import annotations

import datetime
from typing import Any

from bson import ObjectId
from flask.json.provider import DefaultJSONProvider


class MongoJSONProvider(DefaultJSONProvider):
    """Render ObjectIds as strings and datetimes as ISO-8601."""

    @staticmethod
    def default(o: Any) -> Any:
        if isinstance(o, ObjectId):
            return str(o)
        if isinstance(o, datetime.datetime):
            return o.isoformat()
        return DefaultJSONProvider.default(o)
