"""Flask extensions for the application."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import redis
from pymongo import MongoClient

if TYPE_CHECKING:
    from flask import Flask
    from pymongo.database import Database


class Mongo:
    """Holds the MongoDB client and the application database."""

    def __init__(self) -> None:
        self.client: Any = None
        self.db: Database | Any = None

    def init_app(self, app: Flask, client: Any = None) -> None:
        """Connect to MongoDB, or adopt a client supplied by the caller."""
        if client is None:
            client = MongoClient(
                app.config["MONGO_URI"],
                tz_aware=True,
                serverSelectionTimeoutMS=app.config["MONGO_SERVER_SELECTION_TIMEOUT_MS"],
            )
        self.client = client
        self.db = client[app.config["MONGO_DB_NAME"]]
        app.extensions["mongo"] = self


class RedisStore:
    """Holds the redis connection used for job locks and caching."""

    def __init__(self) -> None:
        self.client: redis.Redis | Any = None

    def init_app(self, app: Flask, client: Any = None) -> None:
        """Connect to redis, or adopt a client supplied by the caller."""
        if client is None:
            client = redis.Redis.from_url(
                app.config["REDIS_URL"],
                decode_responses=True,
                socket_connect_timeout=5,
                retry_on_timeout=True,
            )
        self.client = client
        app.extensions["redis"] = self


mongo = Mongo()
redis_store = RedisStore()
