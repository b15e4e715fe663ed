"""Tests for the transaction scope and the redis job leases."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock

import fakeredis
from pymongo.errors import DuplicateKeyError, OperationFailure

from bracketeer.core.locks import JobLock, run_locked_job
from bracketeer.core.transactions import transaction
from bracketeer.errors import DuplicateResourceError, NotFoundError
from tests.conftest import MockSession


class TransactionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session = MockSession()
        self.db = MagicMock()
        self.db.client.start_session.return_value = self.session

    def test_commits_on_success(self) -> None:
        with transaction(self.db) as session:
            self.assertIs(session, self.session)
            self.assertTrue(session.in_transaction)
        self.assertEqual((self.session.committed, self.session.aborted), (1, 0))
        self.assertTrue(self.session.ended)

    def test_aborts_and_reraises_on_error(self) -> None:
        with self.assertRaises(NotFoundError):
            with transaction(self.db):
                raise NotFoundError()
        self.assertEqual((self.session.committed, self.session.aborted), (0, 1))
        self.assertTrue(self.session.ended)

    def test_duplicate_key_becomes_conflict(self) -> None:
        with self.assertRaises(DuplicateResourceError) as ctx:
            with transaction(self.db):
                raise DuplicateKeyError("E11000 duplicate key")
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(self.session.aborted, 1)

    def test_write_conflict_becomes_conflict(self) -> None:
        conflict = OperationFailure(
            "WriteConflict", code=112, details={"errorLabels": ["TransientTransactionError"]}
        )
        with self.assertRaises(DuplicateResourceError) as ctx:
            with transaction(self.db):
                raise conflict
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertTrue(self.session.ended)

    def test_other_operation_failures_propagate(self) -> None:
        with self.assertRaises(OperationFailure):
            with transaction(self.db):
                raise OperationFailure("boom", code=2)


class JobLockTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.redis = fakeredis.FakeRedis(decode_responses=True)

    def test_only_one_holder_at_a_time(self) -> None:
        first = JobLock(self.redis, "lifecycle", 60000)
        second = JobLock(self.redis, "lifecycle", 60000)
        self.assertTrue(first.acquire())
        self.assertFalse(second.acquire())
        first.release()
        self.assertTrue(second.acquire())

    def test_lease_has_an_expiry(self) -> None:
        lock = JobLock(self.redis, "lifecycle", 60000)
        lock.acquire()
        ttl = self.redis.pttl("job_lock:lifecycle")
        self.assertGreater(ttl, 0)
        self.assertLessEqual(ttl, 60000)

    def test_release_leaves_someone_elses_lease(self) -> None:
        lock = JobLock(self.redis, "lifecycle", 60000)
        lock.acquire()
        # The lease expired and another worker took it over
        self.redis.set("job_lock:lifecycle", "other-token")
        lock.release()
        self.assertEqual(self.redis.get("job_lock:lifecycle"), "other-token")

    def test_run_locked_job_runs_and_releases(self) -> None:
        job = MagicMock()
        self.assertTrue(run_locked_job(self.redis, "lifecycle", job, 60000))
        job.assert_called_once()
        self.assertIsNone(self.redis.get("job_lock:lifecycle"))

    def test_run_locked_job_skips_when_held(self) -> None:
        self.redis.set("job_lock:lifecycle", "busy")
        job = MagicMock()
        with self.assertLogs("bracketeer.core.locks", level="WARNING"):
            self.assertFalse(run_locked_job(self.redis, "lifecycle", job, 60000))
        job.assert_not_called()

    def test_run_locked_job_logs_failures_and_releases(self) -> None:
        job = MagicMock(side_effect=RuntimeError("boom"))
        with self.assertLogs("bracketeer.core.locks", level="ERROR"):
            self.assertFalse(run_locked_job(self.redis, "lifecycle", job, 60000))
        self.assertIsNone(self.redis.get("job_lock:lifecycle"))


if __name__ == "__main__":
    unittest.main()
