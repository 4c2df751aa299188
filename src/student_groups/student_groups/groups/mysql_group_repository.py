from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Group, GroupInput
from .repository import GroupRepository

_GROUP_COLUMNS = "id, name, number_of_weeks, roll_states, incidents, ltmt, run_at, student_count"


def _to_group(r: dict) -> Group:
    return Group(
        group_id=int(r["id"]),
        name=r["name"],
        number_of_weeks=int(r["number_of_weeks"]),
        roll_states=r.get("roll_states") or "",
        incidents=int(r["incidents"]),
        ltmt=r["ltmt"],
        run_at=r.get("run_at"),
        student_count=int(r.get("student_count") or 0),
    )


class MySQLGroupRepository(GroupRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[Group]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_GROUP_COLUMNS} FROM `group` ORDER BY id ASC")
            return [_to_group(r) for r in fetchall(cur)]

    def get_by_id(self, group_id: int) -> Optional[Group]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_GROUP_COLUMNS} FROM `group` WHERE id=%s", (int(group_id),))
            r = fetchone(cur)
            return _to_group(r) if r else None

    def create(self, data: GroupInput) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO `group`(name, number_of_weeks, roll_states, incidents, ltmt, student_count)
                VALUES(%s,%s,%s,%s,%s,0)
                """,
                (data.name, data.number_of_weeks, data.roll_states, data.incidents, data.ltmt),
            )
            return int(cur.lastrowid)

    def update(self, group_id: int, data: GroupInput) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE `group`
                SET name=%s, number_of_weeks=%s, roll_states=%s, incidents=%s, ltmt=%s
                WHERE id=%s
                """,
                (data.name, data.number_of_weeks, data.roll_states, data.incidents, data.ltmt, int(group_id)),
            )
            # MySQL reports 0 affected rows when nothing changed; check existence instead.
            if cur.rowcount > 0:
                return True
            cur.execute("SELECT id FROM `group` WHERE id=%s", (int(group_id),))
            return fetchone(cur) is not None

    def delete(self, group_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM group_student WHERE group_id=%s", (int(group_id),))
            cur.execute("DELETE FROM `group` WHERE id=%s", (int(group_id),))
            return cur.rowcount > 0
