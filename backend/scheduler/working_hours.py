"""
Working-hours arithmetic for the scheduling engine.

Tasks may only run inside a daily clock window (for example 09:00-17:00).
This module answers two questions for the algorithms:

- Where is the next instant at which work may happen?
- If a task of N minutes starts here, when does it finish once the time
  outside the window is skipped?

The same window applies to every calendar day. Instants keep whatever
tzinfo they were given; no conversion happens here.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Dict, Tuple

from .errors import InvalidParameterError, InvalidWorkingHoursError


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` string into a ``time``."""
    try:
        hour_text, minute_text = value.split(':')
        return time(int(hour_text), int(minute_text))
    except (AttributeError, ValueError) as exc:
        raise InvalidWorkingHoursError(
            f"Invalid clock time {value!r}, expected HH:MM",
            field='working_hours'
        ) from exc


@dataclass(frozen=True)
class WorkingHours:
    """Daily clock window during which tasks may be scheduled."""
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidWorkingHoursError(
                f"Working hours must start before they end "
                f"({self.start:%H:%M} >= {self.end:%H:%M})",
                field='working_hours'
            )

    @classmethod
    def from_strings(cls, start: str = "09:00", end: str = "17:00") -> 'WorkingHours':
        return cls(start=parse_clock(start), end=parse_clock(end))

    def day_start(self, instant: datetime) -> datetime:
        """The window's opening on ``instant``'s calendar day."""
        return instant.replace(
            hour=self.start.hour, minute=self.start.minute, second=0, microsecond=0
        )

    def day_end(self, instant: datetime) -> datetime:
        """The window's closing on ``instant``'s calendar day."""
        return instant.replace(
            hour=self.end.hour, minute=self.end.minute, second=0, microsecond=0
        )

    def to_dict(self) -> Dict:
        return {
            'start': self.start.strftime('%H:%M'),
            'end': self.end.strftime('%H:%M')
        }


DEFAULT_WORKING_HOURS = WorkingHours(start=time(9, 0), end=time(17, 0))


def next_working_instant(instant: datetime, hours: WorkingHours) -> datetime:
    """
    Return the first instant at or after ``instant`` that lies inside
    working hours.

    Exactly at the closing time counts as outside the window, so it rolls
    over to the next day's opening.
    """
    clock = instant.time()
    if clock < hours.start:
        return hours.day_start(instant)
    if clock >= hours.end:
        try:
            return hours.day_start(instant + timedelta(days=1))
        except OverflowError as exc:
            raise InvalidParameterError(
                f"No working day follows {instant:%Y-%m-%d}", field='now'
            ) from exc
    return instant


def place_duration(
    candidate_start: datetime,
    duration_minutes: int,
    hours: WorkingHours
) -> Tuple[datetime, datetime]:
    """
    Place ``duration_minutes`` of work starting no earlier than
    ``candidate_start``.

    The start is snapped forward into working hours. Work that does not fit
    before the closing time resumes at the next day's opening, for as many
    whole days as the duration needs.

    Returns:
        Tuple of (actual_start, actual_end)

    Raises:
        InvalidParameterError: if the work would end past ``datetime.max``
    """
    try:
        actual_start = next_working_instant(candidate_start, hours)
        remaining = timedelta(minutes=duration_minutes)
        available = hours.day_end(actual_start) - actual_start
        if remaining <= available:
            return actual_start, actual_start + remaining

        window = hours.day_end(actual_start) - hours.day_start(actual_start)
        full_days, rest = divmod(remaining - available, window)

        if not rest:
            return actual_start, hours.day_end(actual_start + timedelta(days=full_days))
        return actual_start, hours.day_start(actual_start + timedelta(days=full_days + 1)) + rest
    except OverflowError as exc:
        raise InvalidParameterError(
            f"{duration_minutes} minutes of work starting {candidate_start:%Y-%m-%d %H:%M} "
            f"ends past the last representable date",
            field='estimated_duration'
        ) from exc
