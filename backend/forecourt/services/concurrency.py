# Overview: Row locking for stock/ledger/config writes and retry for standalone setup writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


# Writes that race with a running shift closure
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Lock the rows a closure or setup command is about to change.

    Used on product stock, the location's cash ledger and location config
    rows. SQLite ignores SELECT ... FOR UPDATE; the version_id columns on
    products, tanks and ledgers still turn a lost update into StaleDataError.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, label: str = "write"):
    """
    Run a self-contained write (location, config or product setup) and
    retry it when it collides with a concurrent closure.

    The shift closure itself is never retried here: a FAILED result is
    returned to the caller, who resubmits the whole closure.

    Args:
        func: callable that does its own commit; must be safe to repeat
        label: name used in the retry log line
    """
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Retrying %s after concurrent modification (attempt %d/%d): %s",
                label, attempt + 1, attempts, exc,
            )
            time.sleep(backoff_base * (2 ** attempt))
