# Overview: Service-layer helpers for stock/sale write races; conditional updates, row locks and retries.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def conditional_update(stmt) -> bool:
    """
    Run a guarded UPDATE and report whether exactly one row matched.

    The guard lives in the WHERE clause (e.g. quantity >= :qty), so the
    check and the write are one statement and cannot interleave with a
    concurrent writer. The identity map is left alone; callers reload.
    """
    result = db.session.execute(stmt.execution_options(synchronize_session=False))
    return result.rowcount == 1


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the sale being transitioned.

    SQLite ignores the lock; there the Sale version_id column turns a lost
    update into StaleDataError, which run_with_retry replays.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.05):
    """
    Run one sale unit of work (func reads, writes and commits).

    OperationalError (lock timeouts, deadlocks) and StaleDataError (version
    mismatch) roll back and replay func from scratch. Anything else rolls
    back and propagates.
    """
    if attempts is None:
        attempts = int(current_app.config.get("SALE_WRITE_ATTEMPTS", 3))

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts:
                current_app.logger.error("Sale write gave up after %d attempt(s): %s", attempt, exc)
                raise
            current_app.logger.warning("Sale write conflict (attempt %d/%d): %s", attempt, attempts, exc)
            time.sleep(backoff_base * (2 ** (attempt - 1)))
        except Exception:
            db.session.rollback()
            raise
