"""Database access layer using psycopg2.

Provides:
- get_conn(): Get a database connection from DATABASE_URL
- txn(): Context manager for short, safe transactions
- with_transaction(): Run a unit of work and commit/rollback on its result
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar
from urllib.parse import urlparse

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

T = TypeVar("T")


def _dsn_has_password(dsn: str) -> bool:
    if "://" in dsn:
        return urlparse(dsn).password is not None
    return any(part.startswith("password=") for part in dsn.split())


def get_conn() -> PgConnection:
    """Get a new database connection from DATABASE_URL.

    DB_PASSWORD is passed separately when the DSN carries no password
    (secret managers usually inject it on its own).

    Raises:
        RuntimeError: If DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    password = os.environ.get("DB_PASSWORD")
    if password and not _dsn_has_password(dsn):
        return psycopg2.connect(dsn, password=password)
    return psycopg2.connect(dsn)


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Context manager for a short, safe transaction.

    If conn is None, creates a new connection that is closed on exit.
    Commits on successful exit, rolls back on exception.

    Example:
        with txn() as cur:
            cur.execute("SELECT 1")
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()


def with_transaction(
    fn: Callable[[PgCursor], T],
    *,
    commit_if: Callable[[T], bool] | None = None,
    connect: Callable[[], PgConnection] = get_conn,
) -> T:
    """Run fn(cur) as one unit of work and return its result.

    The transaction is committed only when commit_if(result) is true (or
    commit_if is None). A rejected result or any exception rolls back
    everything fn did; exceptions are re-raised after the rollback.

    Args:
        fn: Unit of work. Receives a cursor bound to the transaction.
        commit_if: Predicate deciding whether the result is committed.
        connect: Connection factory. The connection is closed on exit.

    Returns:
        Whatever fn returned.
    """
    conn = connect()
    try:
        with conn.cursor() as cur:
            result = fn(cur)
        if commit_if is None or commit_if(result):
            conn.commit()
        else:
            conn.rollback()
        return result
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
