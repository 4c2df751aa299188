from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector

from ..core.exceptions import StoreError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (conn, cursor) inside one transaction.

    Commits when the block exits cleanly, rolls back otherwise. Connector
    errors are re-raised as StoreError with the original chained.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        logger.error("Could not open database connection: %s", e)
        raise StoreError("database unavailable") from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        conn.rollback()
        logger.error("Database operation failed: %s", e)
        raise StoreError("database operation failed") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def in_placeholders(values) -> str:
    """Build "%s,%s,..." for a parameterised IN clause."""

    count = len(values)
    if count == 0:
        raise ValueError("IN clause needs at least one value")
    return ",".join(["%s"] * count)
