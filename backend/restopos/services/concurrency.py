# Overview: Transaction boundary and row-locking helpers shared by every service.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Optimistic version_id columns cover SQLite.
    """
    return query.with_for_update()


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float = 0.05):
    """
    Run ``func`` as one all-or-nothing unit and commit.

    Any exception rolls the whole session back and propagates. Concurrency
    failures (OperationalError for locks, StaleDataError for optimistic
    version conflicts) re-run ``func`` from scratch with exponential backoff.

    ``func`` must not call another public service operation; services expose
    private helpers for composition instead.
    """
    if attempts is None:
        attempts = int(current_app.config.get("TRANSACTION_RETRY_ATTEMPTS", 3))
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "transaction conflict, retrying (attempt %s of %s)", attempt + 1, attempts
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
