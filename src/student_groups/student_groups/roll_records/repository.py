from __future__ import annotations

from datetime import date
from typing import Collection, Protocol, Sequence

from .model import IncidentRow


class RollRecordStore(Protocol):
    """Read-only view of the attendance subsystem's rolls."""

    def list_incident_rows(
        self,
        *,
        start_date: date,
        end_date: date,
        roll_states: Collection[str],
    ) -> Sequence[IncidentRow]:
        """Student roll states joined to rolls completed within the given dates.

        Rows may be pre-counted per (student, state, date). Implementations may
        return extra rows; callers re-check the window and the state labels.
        """

        raise NotImplementedError
