from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Union


@dataclass(frozen=True)
class IncidentRow:
    """Read-model: roll states of one student, with one state, on one completion date.

    incident_count is how many such student_roll_state rows the store grouped
    together; stores that do not aggregate return one row per roll state.
    """

    student_id: int
    state: str
    completed_on: Union[date, datetime]
    incident_count: int = 1
