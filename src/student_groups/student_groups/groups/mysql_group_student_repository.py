from __future__ import annotations

from datetime import datetime
from typing import Mapping, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import GroupStudent, GroupStudentView
from .repository import GroupStudentRepository


class MySQLGroupStudentRepository(GroupStudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def delete_all(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM group_student")
            return max(int(cur.rowcount), 0)

    def record_group_result(
        self,
        *,
        group_id: int,
        incident_counts: Mapping[int, int],
        run_at: datetime,
    ) -> None:
        members = [
            GroupStudent(group_id=int(group_id), student_id=int(student_id), incident_count=int(count))
            for student_id, count in sorted(incident_counts.items())
        ]
        rows = [(m.group_id, m.student_id, m.incident_count) for m in members]

        # One transaction: rows and metadata commit together or not at all.
        with db_cursor(self._conn_factory) as (_, cur):
            if rows:
                cur.executemany(
                    "INSERT INTO group_student(group_id, student_id, incident_count) VALUES(%s,%s,%s)",
                    rows,
                )
            cur.execute(
                "UPDATE `group` SET run_at=%s, student_count=%s WHERE id=%s",
                (run_at, len(rows), int(group_id)),
            )

    def list_with_students(self) -> Sequence[GroupStudentView]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT gs.group_id, gs.student_id, gs.incident_count, s.first_name, s.last_name
                FROM group_student gs
                JOIN student s ON s.id = gs.student_id
                ORDER BY gs.group_id ASC, gs.student_id ASC
                """
            )
            return [
                GroupStudentView(
                    group_id=int(r["group_id"]),
                    student_id=int(r["student_id"]),
                    first_name=r["first_name"],
                    last_name=r["last_name"],
                    incident_count=int(r["incident_count"]),
                )
                for r in fetchall(cur)
            ]
