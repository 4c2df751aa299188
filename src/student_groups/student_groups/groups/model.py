from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import format_timestamp


@dataclass(frozen=True)
class GroupInput:
    """Validated fields staff can set on a group."""

    name: str
    number_of_weeks: int
    roll_states: str
    incidents: int
    ltmt: str


@dataclass(frozen=True)
class Group:
    group_id: int
    name: str
    number_of_weeks: int
    roll_states: str
    incidents: int
    ltmt: str
    run_at: Optional[datetime] = None
    student_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.group_id,
            "name": self.name,
            "number_of_weeks": self.number_of_weeks,
            "roll_states": self.roll_states,
            "incidents": self.incidents,
            "ltmt": self.ltmt,
            "run_at": format_timestamp(self.run_at),
            "student_count": self.student_count,
        }


@dataclass(frozen=True)
class GroupStudent:
    """Membership snapshot row written by a filter run."""

    group_id: int
    student_id: int
    incident_count: int


@dataclass(frozen=True)
class GroupStudentView:
    """Read-model: membership joined with the student's name."""

    group_id: int
    student_id: int
    first_name: str
    last_name: str
    incident_count: int

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        return {
            "group_id": self.group_id,
            "student_id": self.student_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "incident_count": self.incident_count,
        }
