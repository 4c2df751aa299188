from __future__ import annotations

import operator
from enum import Enum
from typing import Callable


class RollState(str, Enum):
    """Roll state labels recorded by the attendance subsystem."""

    UNMARK = "unmark"
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"


class Comparator(str, Enum):
    """Comparison operator a group applies to a student's incident count."""

    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    EQ = "="

    @property
    def predicate(self) -> Callable[[int, int], bool]:
        return _PREDICATES[self]

    def matches(self, count: int, threshold: int) -> bool:
        return self.predicate(int(count), int(threshold))


_PREDICATES: dict[Comparator, Callable[[int, int], bool]] = {
    Comparator.LT: operator.lt,
    Comparator.LTE: operator.le,
    Comparator.GT: operator.gt,
    Comparator.GTE: operator.ge,
    Comparator.EQ: operator.eq,
}


class GroupRunState(str, Enum):
    """Lifecycle of a single group during a filter run."""

    PENDING = "PENDING"
    EVALUATING = "EVALUATING"
    RECONCILED = "RECONCILED"
    FAILED = "FAILED"


class ReconcileStatus(str, Enum):
    COMPLETED = "COMPLETED"
    NO_GROUPS = "NO_GROUPS"
