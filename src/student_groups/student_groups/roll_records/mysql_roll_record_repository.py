from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Collection, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, in_placeholders
from .model import IncidentRow
from .repository import RollRecordStore


class MySQLRollRecordRepository(RollRecordStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_incident_rows(
        self,
        *,
        start_date: date,
        end_date: date,
        roll_states: Collection[str],
    ) -> Sequence[IncidentRow]:
        states = sorted(roll_states)
        if not states or start_date > end_date:
            return []

        # Half-open range so rolls completed any time on end_date are included.
        range_start = datetime.combine(start_date, time.min)
        range_end = datetime.combine(end_date + timedelta(days=1), time.min)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT srs.student_id, srs.state, DATE(r.completed_at) AS completed_on,
                       COUNT(*) AS incident_count
                FROM student_roll_state srs
                JOIN roll r ON r.id = srs.roll_id
                WHERE r.completed_at >= %s AND r.completed_at < %s
                  AND srs.state IN ({in_placeholders(states)})
                GROUP BY srs.student_id, srs.state, DATE(r.completed_at)
                """,
                (range_start, range_end, *states),
            )
            rows = fetchall(cur)
            return [
                IncidentRow(
                    student_id=int(r["student_id"]),
                    state=str(r["state"]),
                    completed_on=r["completed_on"],
                    incident_count=int(r["incident_count"]),
                )
                for r in rows
            ]
