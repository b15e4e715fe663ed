"""Tests for the periodic jobs."""

from __future__ import annotations

import datetime
import threading
import unittest
from unittest.mock import patch

from bracketeer.core.constants import (
    MATCH_ACTIVE,
    MATCH_PENDING,
    TOURNAMENT_DRAFT,
    TOURNAMENT_REG_CLOSED,
    TOURNAMENT_REG_OPEN,
)
from bracketeer.core.types import ParticipantRef
from bracketeer.notifications.jobs import send_match_reminders
from bracketeer.tournament.scheduler import (
    run_scheduled_jobs,
    start_scheduler,
    update_tournament_statuses,
)
from bracketeer.utils import utcnow
from tests.conftest import BaseTestCase


class LifecycleJobTestCase(BaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.organizer = self.make_admin()
        self.now = utcnow()
        day = datetime.timedelta(days=1)
        self.due_draft = self.make_tournament(
            self.organizer, status=TOURNAMENT_DRAFT, registrationStartDate=self.now - day
        )
        self.future_draft = self.make_tournament(
            self.organizer, status=TOURNAMENT_DRAFT, registrationStartDate=self.now + day
        )
        self.ended = self.make_tournament(
            self.organizer,
            status=TOURNAMENT_REG_OPEN,
            registrationStartDate=self.now - 2 * day,
            registrationEndDate=self.now - day,
        )

    def status_of(self, tournament):
        return self.db.tournaments.find_one({"_id": tournament["_id"]})["status"]

    def test_transitions_are_idempotent(self) -> None:
        first = update_tournament_statuses(self.db, self.now)
        second = update_tournament_statuses(self.db, self.now)

        self.assertEqual(first, {"opened": 1, "closed": 1})
        self.assertEqual(second, {"opened": 0, "closed": 0})
        self.assertEqual(self.status_of(self.due_draft), TOURNAMENT_REG_OPEN)
        self.assertEqual(self.status_of(self.future_draft), TOURNAMENT_DRAFT)
        self.assertEqual(self.status_of(self.ended), TOURNAMENT_REG_CLOSED)

    def test_run_scheduled_jobs_under_lock(self) -> None:
        run_scheduled_jobs(self.app)

        self.assertEqual(self.status_of(self.due_draft), TOURNAMENT_REG_OPEN)
        self.assertIsNone(self.redis.get("job_lock:tournament_lifecycle"))

    def test_held_lock_skips_the_run(self) -> None:
        self.redis.set("job_lock:tournament_lifecycle", "other-worker", px=60000)

        with self.assertLogs("bracketeer.core.locks", level="WARNING"):
            run_scheduled_jobs(self.app)

        self.assertEqual(self.status_of(self.due_draft), TOURNAMENT_DRAFT)
        self.assertEqual(self.redis.get("job_lock:tournament_lifecycle"), "other-worker")


class MatchReminderTestCase(BaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.now = utcnow()
        organizer = self.make_admin()
        self.tournament = self.make_tournament(organizer)
        self.alice = self.make_user("alice")
        self.bob = self.make_user("bob")
        self.refs = [
            ParticipantRef.user(self.alice["_id"]),
            ParticipantRef.user(self.bob["_id"]),
        ]

    def test_reminds_each_player_once(self) -> None:
        soon = self.now + datetime.timedelta(minutes=15, seconds=30)
        match = self.make_match(
            self.tournament, self.refs, status=MATCH_PENDING, scheduledTime=soon
        )

        self.assertEqual(send_match_reminders(self.db, self.now), 2)
        self.assertEqual(send_match_reminders(self.db, self.now), 0)

        recipients = self.db.notifications.distinct(
            "recipient", {"templateKey": "MATCH_REMINDER", "entityId": match["_id"]}
        )
        self.assertCountEqual(recipients, [self.alice["_id"], self.bob["_id"]])

    def test_only_pending_matches_in_window(self) -> None:
        self.make_match(
            self.tournament,
            self.refs,
            status=MATCH_PENDING,
            scheduledTime=self.now + datetime.timedelta(minutes=30),
        )
        self.make_match(
            self.tournament,
            self.refs,
            status=MATCH_ACTIVE,
            scheduledTime=self.now + datetime.timedelta(minutes=15, seconds=10),
        )
        self.assertEqual(send_match_reminders(self.db, self.now), 0)

    def test_team_matches_remind_every_member(self) -> None:
        carol = self.make_user("carol")
        dave = self.make_user("dave")
        blue = self.make_team(self.alice, [carol], name="Blue", tag="BLU")
        red = self.make_team(self.bob, [dave], name="Red", tag="RED")
        self.make_match(
            self.tournament,
            [ParticipantRef.team(blue["_id"]), ParticipantRef.team(red["_id"])],
            status=MATCH_PENDING,
            scheduledTime=self.now + datetime.timedelta(minutes=15, seconds=20),
        )
        self.assertEqual(send_match_reminders(self.db, self.now), 4)


class SchedulerThreadTestCase(BaseTestCase):
    def test_loop_runs_until_stopped(self) -> None:
        stop = threading.Event()
        with patch(
            "bracketeer.tournament.scheduler.run_scheduled_jobs",
            side_effect=lambda app: stop.set(),
        ) as run:
            thread = start_scheduler(self.app, stop)
            thread.join(timeout=5)

        self.assertFalse(thread.is_alive())
        run.assert_called_once_with(self.app)

    def test_failed_cycle_is_logged(self) -> None:
        stop = threading.Event()

        def fail(app):
            stop.set()
            raise RuntimeError("mongo went away")

        with patch("bracketeer.tournament.scheduler.run_scheduled_jobs", side_effect=fail):
            with self.assertLogs("bracketeer.tournament.scheduler", level="ERROR"):
                thread = start_scheduler(self.app, stop)
                thread.join(timeout=5)

        self.assertFalse(thread.is_alive())


if __name__ == "__main__":
    unittest.main()
