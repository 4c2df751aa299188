from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import mysql.connector

from ..core.exceptions import ReconcileInProgressError, StoreError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


class MySQLAdvisoryLock:
    """Server-wide named lock (GET_LOCK) shared by every process on the database.

    The lock lives as long as the dedicated connection that took it, so a
    crashed holder never leaves it stuck.
    """

    def __init__(self, conn_factory: DatabaseConnection, name: str, *, timeout: float):
        self._conn_factory = conn_factory
        self._name = name
        self._timeout = max(0, int(timeout))

    @contextmanager
    def hold(self) -> Iterator[None]:
        try:
            conn = self._conn_factory.connect()
        except mysql.connector.Error as e:
            logger.error("Could not open connection for lock %r: %s", self._name, e)
            raise StoreError("database unavailable") from e

        try:
            cur = conn.cursor()
            try:
                cur.execute("SELECT GET_LOCK(%s, %s)", (self._name, self._timeout))
                row = cur.fetchone()
            except mysql.connector.Error as e:
                logger.error("GET_LOCK(%r) failed: %s", self._name, e)
                raise StoreError("database operation failed") from e

            # 1 = acquired, 0 = timed out, NULL = error.
            if not row or row[0] != 1:
                raise ReconcileInProgressError("Another group filter run is still in progress")

            logger.debug("Acquired lock %r", self._name)
            try:
                yield
            finally:
                try:
                    cur.execute("SELECT RELEASE_LOCK(%s)", (self._name,))
                    cur.fetchone()
                except mysql.connector.Error as e:
                    # Closing the connection below releases it anyway.
                    logger.warning("RELEASE_LOCK(%r) failed: %s", self._name, e)
        finally:
            conn.close()
