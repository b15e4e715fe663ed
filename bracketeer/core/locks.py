"""Redis-backed leases that keep periodic jobs from running concurrently."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from .constants import JOB_LOCK_PREFIX

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class JobLock:
    """A lease on ``job_lock:<name>`` held with ``SET NX PX``.

    The lease expires on its own after ``timeout_ms`` so a crashed holder
    cannot block the job forever. Release only deletes the key if this
    holder still owns it.
    """

    def __init__(self, client: Any, name: str, timeout_ms: int) -> None:
        self.client = client
        self.key = f"{JOB_LOCK_PREFIX}{name}"
        self.timeout_ms = timeout_ms
        self.token = uuid.uuid4().hex
        self.acquired = False

    def acquire(self) -> bool:
        self.acquired = bool(
            self.client.set(self.key, self.token, nx=True, px=self.timeout_ms)
        )
        return self.acquired

    def release(self) -> None:
        if not self.acquired:
            return

        def _delete_if_owner(pipe: Any) -> None:
            if pipe.get(self.key) == self.token:
                pipe.multi()
                pipe.delete(self.key)

        self.client.transaction(_delete_if_owner, self.key)
        self.acquired = False


def run_locked_job(
    client: Any, name: str, job: Callable[[], Any], timeout_ms: int
) -> bool:
    """Run ``job`` if the lease for ``name`` can be taken.

    Returns True if the job ran to completion, False if it was skipped or
    failed. Failures are logged, never raised, so one bad run does not stop
    the scheduler.
    """
    lock = JobLock(client, name, timeout_ms)
    if not lock.acquire():
        logger.warning(f"Job '{name}' is already running elsewhere; skipping.")
        return False
    logger.info(f"Job '{name}' started.")
    try:
        job()
    except Exception:
        logger.exception(f"Job '{name}' failed.")
        return False
    finally:
        lock.release()
    logger.info(f"Job '{name}' finished.")
    return True
