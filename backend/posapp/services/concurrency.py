# Overview: Service-layer helpers for row locking and all-or-nothing units of work.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work():
    """
    Run a block of session work as one database transaction.

    Commits on success. Any exception (business error or storage failure)
    rolls back everything flushed inside the block and is re-raised; there
    is no retry.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
