from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta


@dataclass(frozen=True)
class AnalysisWindow:
    """Inclusive range of calendar dates a group looks back over."""

    start_date: date
    end_date: date

    @property
    def is_empty(self) -> bool:
        return self.start_date > self.end_date

    def contains(self, value: date | datetime) -> bool:
        if isinstance(value, datetime):
            value = value.date()
        return self.start_date <= value <= self.end_date

    def as_iso(self) -> tuple[str, str]:
        return self.start_date.isoformat(), self.end_date.isoformat()


def compute_window(number_of_weeks: int, now: datetime) -> AnalysisWindow:
    """Window ending on now's date and starting number_of_weeks * 7 days earlier.

    Time of day is discarded. Non-positive week counts give a window that is
    a single day (0) or empty (negative).
    """

    weeks = int(number_of_weeks)
    try:
        start_date = (now - timedelta(days=weeks * 7)).date()
    except OverflowError:
        # Outside the calendar's range; clamp to its edge.
        start_date = date.min if weeks > 0 else date.max
    return AnalysisWindow(start_date=start_date, end_date=now.date())
