"""Multi-document transaction scope."""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Any

from flask import current_app, has_app_context
from pymongo.errors import DuplicateKeyError, OperationFailure

from bracketeer.errors import DuplicateResourceError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pymongo.client_session import ClientSession
    from pymongo.database import Database

logger = logging.getLogger(__name__)

DEFAULT_MAX_COMMIT_TIME_MS = 10000


@contextlib.contextmanager
def transaction(
    db: Database | Any, max_commit_time_ms: int | None = None
) -> Iterator[ClientSession]:
    """Run the enclosed block inside one MongoDB transaction.

    Every read and write in the block must pass ``session=``. The transaction
    commits when the block exits normally and aborts when it raises; the
    session is ended on every path. Unique index violations and write
    conflicts between concurrent transactions surface as
    ``DuplicateResourceError``.
    """
    if max_commit_time_ms is None:
        max_commit_time_ms = (
            current_app.config.get(
                "MONGO_TRANSACTION_TIMEOUT_MS", DEFAULT_MAX_COMMIT_TIME_MS
            )
            if has_app_context()
            else DEFAULT_MAX_COMMIT_TIME_MS
        )
    session = db.client.start_session()
    try:
        session.start_transaction(max_commit_time_ms=max_commit_time_ms)
        try:
            yield session
        except BaseException:
            if session.in_transaction:
                session.abort_transaction()
            raise
        session.commit_transaction()
    except DuplicateKeyError as e:
        raise DuplicateResourceError() from e
    except OperationFailure as e:
        if e.has_error_label("TransientTransactionError"):
            logger.warning(f"Transaction aborted by a concurrent write: {e}")
            raise DuplicateResourceError(
                "The resource was modified concurrently, please retry.", 409
            ) from e
        raise
    finally:
        session.end_session()
