"""
Core business logic for suggesting an open appointment slot.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O).
"""

from datetime import date
from typing import List, Sequence

from .models import Appointment, Interval, WorkingWindow, calendar_day

DEFAULT_DURATION_MINUTES = 30


class SlotSuggester:
    """
    Suggests the earliest free start time on a given day.

    Algorithm:
    1. Keep only appointments on the target calendar day
    2. Convert them to occupied intervals, sorted by start
    3. Walk the intervals with a cursor starting at the window opening,
       snapping the cursor up to the slot granularity before each check
    4. Return the first snapped cursor that leaves room for the requested
       duration, either before an interval or after the last one
    5. Fall back to the window opening when the day is overbooked
    """

    def __init__(self, working_window: WorkingWindow | None = None):
        self.working_window = working_window or WorkingWindow()

    def suggest(
        self,
        appointments: Sequence[Appointment],
        target_date: date,
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
    ) -> str:
        """
        Suggest a start time for a new appointment.

        Args:
            appointments: Existing appointments, any day
            target_date: Day to schedule on (time-of-day is ignored)
            duration_minutes: Length of the new appointment

        Returns:
            Start time as ``HH:MM``. The window opening is also returned when
            nothing fits, so it is not a guarantee of a free slot.
        """
        window = self.working_window
        fallback = format_minutes(window.start_minute)

        intervals = self.day_intervals(appointments, target_date, duration_minutes)
        if not intervals:
            return fallback

        cursor = window.start_minute

        for interval in intervals:
            candidate = self._snap(cursor)
            if candidate + duration_minutes <= interval.start_minute:
                return format_minutes(candidate)
            cursor = max(cursor, interval.end_minute)

        # After the last appointment
        candidate = self._snap(cursor)
        if candidate + duration_minutes <= window.end_minute:
            return format_minutes(candidate)

        return fallback

    def day_intervals(
        self,
        appointments: Sequence[Appointment],
        target_date: date,
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
    ) -> List[Interval]:
        """
        Occupied intervals of the target day, sorted by start.

        Appointments without a duration are assumed to last ``duration_minutes``.
        """
        target_day = calendar_day(target_date)
        intervals: List[Interval] = []

        for appointment in appointments:
            if calendar_day(appointment.date) != target_day:
                continue

            start = parse_minutes(appointment.time)
            duration = getattr(appointment, "duration", None)
            if duration is None:
                duration = duration_minutes

            intervals.append(Interval(start_minute=start, end_minute=start + duration))

        return sorted(intervals, key=lambda interval: interval.start_minute)

    def _snap(self, minutes: int) -> int:
        """Round up to the next multiple of the slot granularity."""
        step = self.working_window.step_minutes
        remainder = minutes % step
        return minutes if remainder == 0 else minutes + (step - remainder)


def parse_minutes(value: str) -> int:
    """
    Convert ``HH:MM`` to minutes since midnight.

    Missing or non-numeric components count as zero, so ``"9"`` is 09:00 and
    ``"garbage"`` is 00:00.
    """
    parts = (value or "").split(":")

    def _component(index: int) -> int:
        if index >= len(parts):
            return 0
        try:
            return int(parts[index].strip())
        except ValueError:
            return 0

    return _component(0) * 60 + _component(1)


def format_minutes(total: int) -> str:
    """Format minutes since midnight as zero-padded ``HH:MM``."""
    hours, minutes = divmod(total, 60)
    return f"{hours:02d}:{minutes:02d}"


_default_suggester = SlotSuggester()


def suggest_slot(
    appointments: Sequence[Appointment],
    target_date: date,
    duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> str:
    """Suggest a slot inside the default 09:00-17:00 window with 15-minute steps."""
    return _default_suggester.suggest(appointments, target_date, duration_minutes)
