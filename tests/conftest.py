from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Mapping, Optional

import pytest

from src.student_groups.student_groups.container import build_services
from src.student_groups.student_groups.filters.aggregator import IncidentAggregator
from src.student_groups.student_groups.groups.model import Group, GroupInput, GroupStudent, GroupStudentView
from src.student_groups.student_groups.reconcile.service import MembershipReconciler
from src.student_groups.student_groups.roll_records.model import IncidentRow

NOW = datetime(2022, 4, 4, 10, 30, 0)


@dataclass(frozen=True)
class Student:
    student_id: int
    first_name: str
    last_name: str


@dataclass(frozen=True)
class Roll:
    roll_id: int
    name: str
    completed_at: datetime


@dataclass(frozen=True)
class StudentRollState:
    state_id: int
    student_id: int
    roll_id: int
    state: str


@pytest.fixture
def now() -> datetime:
    return NOW


class InMemoryGroups:
    def __init__(self):
        self.groups: dict[int, Group] = {}
        self._id = 0

    def add(self, **fields) -> Group:
        """Test helper: store a group without validation (may hold bad filters)."""
        self._id += 1
        group = Group(group_id=self._id, **fields)
        self.groups[self._id] = group
        return group

    def list_all(self):
        return [self.groups[k] for k in sorted(self.groups)]

    def get_by_id(self, group_id: int) -> Optional[Group]:
        return self.groups.get(int(group_id))

    def create(self, data: GroupInput) -> int:
        return self.add(
            name=data.name,
            number_of_weeks=data.number_of_weeks,
            roll_states=data.roll_states,
            incidents=data.incidents,
            ltmt=data.ltmt,
        ).group_id

    def update(self, group_id: int, data: GroupInput) -> bool:
        group = self.groups.get(int(group_id))
        if not group:
            return False
        self.groups[group.group_id] = replace(
            group,
            name=data.name,
            number_of_weeks=data.number_of_weeks,
            roll_states=data.roll_states,
            incidents=data.incidents,
            ltmt=data.ltmt,
        )
        return True

    def delete(self, group_id: int) -> bool:
        return self.groups.pop(int(group_id), None) is not None


class InMemoryGroupStudents:
    def __init__(self, groups: InMemoryGroups, students: dict[int, Student]):
        self._groups = groups
        self._students = students
        self.rows: list[GroupStudent] = []
        self.fail_for_group_ids: set[int] = set()

    def delete_all(self) -> int:
        count = len(self.rows)
        self.rows = []
        return count

    def record_group_result(self, *, group_id: int, incident_counts: Mapping[int, int], run_at: datetime) -> None:
        if group_id in self.fail_for_group_ids:
            raise RuntimeError("simulated write failure")
        self.rows.extend(GroupStudent(group_id, sid, count) for sid, count in sorted(incident_counts.items()))
        group = self._groups.groups[group_id]
        self._groups.groups[group_id] = replace(group, run_at=run_at, student_count=len(incident_counts))

    def list_with_students(self):
        out = []
        for row in self.rows:
            if row.group_id not in self._groups.groups:
                continue
            s = self._students[row.student_id]
            out.append(GroupStudentView(row.group_id, row.student_id, s.first_name, s.last_name, row.incident_count))
        return out

    def snapshot(self) -> dict[int, dict[int, int]]:
        out: dict[int, dict[int, int]] = {}
        for row in self.rows:
            out.setdefault(row.group_id, {})[row.student_id] = row.incident_count
        return out


class InMemoryRolls:
    """Returns every joined row; filtering is the aggregator's job."""

    def __init__(self):
        self.rolls: dict[int, Roll] = {}
        self.states: list[StudentRollState] = []
        self.calls = 0
        self.fail = False

    def add_roll(self, completed_at: datetime) -> Roll:
        roll = Roll(roll_id=len(self.rolls) + 1, name=f"Roll {len(self.rolls) + 1}", completed_at=completed_at)
        self.rolls[roll.roll_id] = roll
        return roll

    def mark(self, student_id: int, roll: Roll, state: str) -> None:
        self.states.append(StudentRollState(len(self.states) + 1, student_id, roll.roll_id, state))

    def list_incident_rows(self, *, start_date, end_date, roll_states):
        self.calls += 1
        if self.fail:
            raise RuntimeError("roll store unavailable")
        return [IncidentRow(s.student_id, s.state, self.rolls[s.roll_id].completed_at) for s in self.states]


@pytest.fixture
def students() -> dict[int, Student]:
    return {
        1: Student(1, "Ada", "Lovelace"),
        2: Student(2, "Alan", "Turing"),
        3: Student(3, "Grace", "Hopper"),
    }


@pytest.fixture
def groups_repo() -> InMemoryGroups:
    return InMemoryGroups()


@pytest.fixture
def memberships_repo(groups_repo, students) -> InMemoryGroupStudents:
    return InMemoryGroupStudents(groups_repo, students)


@pytest.fixture
def rolls_repo() -> InMemoryRolls:
    return InMemoryRolls()


@pytest.fixture
def reconciler(groups_repo, memberships_repo, rolls_repo) -> MembershipReconciler:
    return MembershipReconciler(groups_repo, memberships_repo, IncidentAggregator(rolls_repo), clock=lambda: NOW)


@pytest.fixture
def container(groups_repo, memberships_repo, rolls_repo):
    return build_services(
        groups_repo=groups_repo,
        group_students_repo=memberships_repo,
        rolls_repo=rolls_repo,
        clock=lambda: NOW,
    )


@pytest.fixture
def client(container, monkeypatch):
    from src.student_groups.student_groups.main import create_app

    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container)
    return app.test_client()
