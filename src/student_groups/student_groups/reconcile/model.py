from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import format_timestamp
from ..core.enums import GroupRunState, ReconcileStatus


@dataclass(frozen=True)
class GroupOutcome:
    group_id: int
    name: str
    state: GroupRunState
    student_count: int = 0
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "group_id": self.group_id,
            "name": self.name,
            "state": self.state.value,
            "student_count": self.student_count,
        }
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass(frozen=True)
class ReconcileReport:
    """Summary of one filter run over every group."""

    status: ReconcileStatus
    run_at: datetime
    cleared: int = 0
    outcomes: tuple[GroupOutcome, ...] = field(default_factory=tuple)

    @property
    def reconciled(self) -> list[GroupOutcome]:
        return [o for o in self.outcomes if o.state == GroupRunState.RECONCILED]

    @property
    def failed(self) -> list[GroupOutcome]:
        return [o for o in self.outcomes if o.state == GroupRunState.FAILED]

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "run_at": format_timestamp(self.run_at),
            "groups": [o.to_dict() for o in self.outcomes],
            "reconciled": len(self.reconciled),
            "failed": len(self.failed),
        }
