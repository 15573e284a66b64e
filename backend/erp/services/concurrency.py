# Overview: Transaction boundary helpers shared by every lifecycle and maintenance service.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import persistence_error_from


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute one unit of work (flushes + a single commit) all-or-nothing.

    - Any exception rolls the session back before it propagates, so a
      rejected operation leaves no partial writes behind.
    - OperationalError (deadlocks, locks) and StaleDataError are retried.
    - IntegrityError surfaces as PersistenceError.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except IntegrityError as exc:
            db.session.rollback()
            raise persistence_error_from(exc) from exc
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
