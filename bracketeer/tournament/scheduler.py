"""Periodic tournament lifecycle transitions."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from bracketeer.core.constants import (
    TOURNAMENT_DRAFT,
    TOURNAMENT_REG_CLOSED,
    TOURNAMENT_REG_OPEN,
    TOURNAMENTS_COLLECTION,
)
from bracketeer.core.locks import run_locked_job
from bracketeer.extensions import mongo, redis_store
from bracketeer.notifications.jobs import send_match_reminders
from bracketeer.utils import utcnow

if TYPE_CHECKING:
    import datetime

    from flask import Flask
    from pymongo.database import Database

logger = logging.getLogger(__name__)

TOURNAMENT_LIFECYCLE_JOB = "tournament_lifecycle"
MATCH_REMINDER_JOB = "match_reminders"


def open_registrations(db: Database, now: datetime.datetime | None = None) -> int:
    """Open registration for drafts whose registration window has started."""
    now = now or utcnow()
    result = db[TOURNAMENTS_COLLECTION].update_many(
        {"status": TOURNAMENT_DRAFT, "registrationStartDate": {"$lte": now}},
        {"$set": {"status": TOURNAMENT_REG_OPEN, "updatedAt": now}},
    )
    if result.modified_count:
        logger.info(f"Opened registration for {result.modified_count} tournament(s)")
    return result.modified_count


def close_registrations(db: Database, now: datetime.datetime | None = None) -> int:
    """Close registration for tournaments whose registration window has ended."""
    now = now or utcnow()
    result = db[TOURNAMENTS_COLLECTION].update_many(
        {"status": TOURNAMENT_REG_OPEN, "registrationEndDate": {"$lte": now}},
        {"$set": {"status": TOURNAMENT_REG_CLOSED, "updatedAt": now}},
    )
    if result.modified_count:
        logger.info(f"Closed registration for {result.modified_count} tournament(s)")
    return result.modified_count


def update_tournament_statuses(
    db: Database, now: datetime.datetime | None = None
) -> dict[str, int]:
    """Run one lifecycle pass; running it again with the same clock changes nothing."""
    now = now or utcnow()
    return {
        "opened": open_registrations(db, now),
        "closed": close_registrations(db, now),
    }


def run_scheduled_jobs(app: Flask) -> None:
    """Run every periodic job once, each under its own redis lease."""
    with app.app_context():
        client = redis_store.client
        run_locked_job(
            client,
            TOURNAMENT_LIFECYCLE_JOB,
            lambda: update_tournament_statuses(mongo.db),
            app.config["TOURNAMENT_JOB_LOCK_TIMEOUT_MS"],
        )
        run_locked_job(
            client,
            MATCH_REMINDER_JOB,
            lambda: send_match_reminders(mongo.db),
            app.config["MATCH_REMINDER_JOB_LOCK_TIMEOUT_MS"],
        )


def start_scheduler(
    app: Flask, stop_event: threading.Event | None = None
) -> threading.Thread:
    """Start the daemon thread that runs the periodic jobs."""
    stop_event = stop_event or threading.Event()
    interval = app.config["SCHEDULER_INTERVAL_SECONDS"]

    def loop() -> None:
        while not stop_event.is_set():
            try:
                run_scheduled_jobs(app)
            except Exception:
                logger.exception("Scheduler cycle failed")
            stop_event.wait(interval)

    thread = threading.Thread(target=loop, name="bracketeer-scheduler", daemon=True)
    thread.start()
    logger.info(f"Scheduler started with a {interval}s interval")
    return thread
