from __future__ import annotations

from collections import Counter
from typing import AbstractSet, Dict

from ..core.enums import Comparator
from ..roll_records.repository import RollRecordStore
from .window import AnalysisWindow


class IncidentAggregator:
    """Counts qualifying roll states per student for one group's filter."""

    def __init__(self, rolls: RollRecordStore):
        self._rolls = rolls

    def count_incidents(
        self,
        window: AnalysisWindow,
        roll_states: AbstractSet[str],
        threshold: int,
        comparator: Comparator,
    ) -> Dict[int, int]:
        """Return {student_id: incident_count} for students passing the comparator.

        A row qualifies when its roll was completed on a date inside the window
        and its state is one of roll_states. Students without any qualifying
        row are never part of the result, whatever the comparator.
        """

        if not roll_states or window.is_empty:
            return {}

        rows = self._rolls.list_incident_rows(
            start_date=window.start_date,
            end_date=window.end_date,
            roll_states=roll_states,
        )
        counts: Counter[int] = Counter()
        for row in rows:
            if row.state in roll_states and window.contains(row.completed_on):
                counts[row.student_id] += row.incident_count
        return {
            student_id: count
            for student_id, count in counts.items()
            if comparator.matches(count, threshold)
        }
