from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Protocol, Sequence

from .model import Group, GroupInput, GroupStudentView


class GroupRepository(Protocol):
    def list_all(self) -> Sequence[Group]:
        raise NotImplementedError

    def get_by_id(self, group_id: int) -> Optional[Group]:
        raise NotImplementedError

    def create(self, data: GroupInput) -> int:
        """Insert a group and return its id."""

        raise NotImplementedError

    def update(self, group_id: int, data: GroupInput) -> bool:
        raise NotImplementedError

    def delete(self, group_id: int) -> bool:
        """Remove a group together with its memberships."""

        raise NotImplementedError


class GroupStudentRepository(Protocol):
    def delete_all(self) -> int:
        """Remove every membership row; returns how many were removed."""

        raise NotImplementedError

    def record_group_result(
        self,
        *,
        group_id: int,
        incident_counts: Mapping[int, int],
        run_at: datetime,
    ) -> None:
        """Write a group's memberships and its run metadata as one unit.

        Either all rows are inserted and the group's run_at/student_count are
        updated, or nothing is written.
        """

        raise NotImplementedError

    def list_with_students(self) -> Sequence[GroupStudentView]:
        raise NotImplementedError
