# Overview: Transaction boundaries and row locking for allocation writes.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db


class PersistenceError(Exception):
    """
    Raised when the database fails a write.

    The message is generic and safe to show users; the underlying error is
    logged with context and chained as __cause__.
    """
    pass


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Rows with a version_id column are additionally protected by optimistic
    locking (StaleDataError on flush).
    """
    return query.with_for_update()


def run_in_transaction(
    func,
    *,
    action: str,
    actor_user_id: int | None = None,
    entity_id: int | None = None,
    failure_message: str = "The change could not be saved. Please try again or contact support.",
):
    """
    Run a load-check-write sequence as one transaction.

    Commits when func returns, rolls back on any exception. Database
    failures (including optimistic-lock conflicts) become PersistenceError;
    business errors propagate unchanged. Nothing is retried.
    """
    try:
        result = func()
        db.session.commit()
        return result
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(
            "Persistence failure: action=%s actor_user_id=%s entity_id=%s",
            action,
            actor_user_id,
            entity_id,
        )
        raise PersistenceError(failure_message) from exc
    except Exception:
        db.session.rollback()
        raise
