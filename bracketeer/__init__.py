"""Initialize the Flask app and its extensions."""

import logging
import os

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from .core.indexes import ensure_indexes
from .core.serialization import MongoJSONProvider
from .extensions import mongo, redis_store


def _env_flag(name, default="false"):
    return (os.environ.get(name) or default).lower() in ["true", "1", "t"]


def create_app(test_config=None, mongo_client=None, redis_client=None):
    """Create and configure an instance of the Flask application.

    Tests pass in-memory ``mongo_client`` and ``redis_client`` objects so that
    no real connections are opened.
    """
    app = Flask(__name__)
    app.json = MongoJSONProvider(app)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        APP_ENV=os.environ.get("APP_ENV") or "development",
        LOG_LEVEL=os.environ.get("LOG_LEVEL") or "INFO",
        MONGO_URI=os.environ.get("MONGO_URI") or "mongodb://localhost:27017",
        MONGO_DB_NAME=os.environ.get("MONGO_DB_NAME") or "bracketeer",
        MONGO_SERVER_SELECTION_TIMEOUT_MS=int(
            os.environ.get("MONGO_SERVER_SELECTION_TIMEOUT_MS") or 5000
        ),
        MONGO_TRANSACTION_TIMEOUT_MS=int(
            os.environ.get("MONGO_TRANSACTION_TIMEOUT_MS") or 10000
        ),
        REDIS_URL=os.environ.get("REDIS_URL") or "redis://localhost:6379/0",
        SCHEDULER_ENABLED=_env_flag("SCHEDULER_ENABLED"),
        SCHEDULER_INTERVAL_SECONDS=int(
            os.environ.get("SCHEDULER_INTERVAL_SECONDS") or 60
        ),
        TOURNAMENT_JOB_LOCK_TIMEOUT_MS=int(
            os.environ.get("TOURNAMENT_JOB_LOCK_TIMEOUT_MS") or 5 * 60 * 1000
        ),
        MATCH_REMINDER_JOB_LOCK_TIMEOUT_MS=int(
            os.environ.get("MATCH_REMINDER_JOB_LOCK_TIMEOUT_MS") or 10 * 60 * 1000
        ),
        TEAM_CACHE_TTL_SECONDS=int(os.environ.get("TEAM_CACHE_TTL_SECONDS") or 300),
        AUTH_TOKEN_MAX_AGE=int(os.environ.get("AUTH_TOKEN_MAX_AGE") or 7 * 24 * 3600),
        PAYMENT_GATEWAY_API_BASE=os.environ.get("PAYMENT_GATEWAY_API_BASE")
        or "https://payment.example.com/pg/v4",
        PAYMENT_GATEWAY_REDIRECT_URL=os.environ.get("PAYMENT_GATEWAY_REDIRECT_URL")
        or "https://payment.example.com/pg/StartPay/",
        PAYMENT_GATEWAY_TIMEOUT=int(os.environ.get("PAYMENT_GATEWAY_TIMEOUT") or 10),
        PAYMENT_MERCHANT_ID=os.environ.get("PAYMENT_MERCHANT_ID"),
        SERVER_URL=os.environ.get("SERVER_URL") or "http://localhost:5000",
        WTF_CSRF_ENABLED=False,
    )

    if test_config:
        app.config.update(test_config)

    level = str(app.config["LOG_LEVEL"]).upper()
    app.logger.setLevel(getattr(logging, level, logging.INFO))

    # Initialize extensions; in testing mode only the supplied clients are used
    if mongo_client is not None or not app.config.get("TESTING"):
        mongo.init_app(app, client=mongo_client)
        ensure_indexes(mongo.db)
    if redis_client is not None or not app.config.get("TESTING"):
        redis_store.init_app(app, client=redis_client)

    # Register blueprints
    from . import users as users_bp

    app.register_blueprint(users_bp.bp)

    from . import games as games_bp

    app.register_blueprint(games_bp.bp)

    from . import teams as teams_bp

    app.register_blueprint(teams_bp.bp)

    from . import tournament as tournament_bp

    app.register_blueprint(tournament_bp.bp)

    from . import registration as registration_bp

    app.register_blueprint(registration_bp.bp)

    from . import match as match_bp

    app.register_blueprint(match_bp.bp)

    from . import disputes as disputes_bp

    app.register_blueprint(disputes_bp.bp)

    from . import payments as payments_bp

    app.register_blueprint(payments_bp.bp)

    from . import notifications as notifications_bp

    app.register_blueprint(notifications_bp.bp)

    from . import admin as admin_bp

    app.register_blueprint(admin_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.route("/health")
    def health_check():
        """Perform a simple health check."""
        return {"status": "ok"}, 200

    if app.config["SCHEDULER_ENABLED"] and not app.config.get("TESTING"):
        from .tournament.scheduler import start_scheduler

        start_scheduler(app)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
