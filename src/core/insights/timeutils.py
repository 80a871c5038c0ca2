"""
Calendar and time-of-day arithmetic for reporting windows.

Everything here is pure. The calendar helpers accept an optional `now` so
callers can pin the reference instant; when omitted they use the local clock,
because dashboard windows ("this week", "this month") are local concepts.

Time-of-day values are "HH:MM" strings, the shape programs and bookings
store their weekly slots in.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Mapping, Optional


DAY_NAMES = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)

# Ranges end at .999 of the last second, matching what the dashboard compares against
END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class DateRange:
    """An inclusive span of local time."""
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("Range end must not precede range start")

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @property
    def days(self) -> int:
        """Number of calendar days touched by the range."""
        return (self.end.date() - self.start.date()).days + 1


def _start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)


def _end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), END_OF_DAY, tzinfo=moment.tzinfo)


def _last_day_of_month(year: int, month: int) -> datetime:
    if month == 12:
        first_of_next = datetime(year + 1, 1, 1)
    else:
        first_of_next = datetime(year, month + 1, 1)
    return first_of_next - timedelta(days=1)


# ---------------------------------------------------------------------------
# Calendar windows
# ---------------------------------------------------------------------------

def current_week(now: Optional[datetime] = None) -> DateRange:
    """Sunday through Saturday of the week containing `now`."""
    now = now or datetime.now()
    # isoweekday: Monday=1 .. Sunday=7, so Sunday maps to 0 days back
    days_since_sunday = now.isoweekday() % 7
    start = _start_of_day(now - timedelta(days=days_since_sunday))
    end = _end_of_day(start + timedelta(days=6))
    return DateRange(start=start, end=end)


def current_month(now: Optional[datetime] = None) -> DateRange:
    now = now or datetime.now()
    start = _start_of_day(now.replace(day=1))
    last_day = _last_day_of_month(now.year, now.month)
    end = _end_of_day(now.replace(day=last_day.day))
    return DateRange(start=start, end=end)


def current_quarter(now: Optional[datetime] = None) -> DateRange:
    """Calendar quarter (Jan-Mar, Apr-Jun, Jul-Sep, Oct-Dec) containing `now`."""
    now = now or datetime.now()
    first_month = ((now.month - 1) // 3) * 3 + 1
    last_month = first_month + 2
    start = _start_of_day(now.replace(month=first_month, day=1))
    last_day = _last_day_of_month(now.year, last_month)
    end = _end_of_day(now.replace(month=last_month, day=last_day.day))
    return DateRange(start=start, end=end)


def current_year(now: Optional[datetime] = None) -> DateRange:
    now = now or datetime.now()
    start = _start_of_day(now.replace(month=1, day=1))
    end = _end_of_day(now.replace(month=12, day=31))
    return DateRange(start=start, end=end)


def last_n_days(days: int, now: Optional[datetime] = None) -> DateRange:
    """
    The trailing window ending today.

    End is today's end-of-day; start is `days` calendar days earlier at
    start-of-day. Zero days gives today alone.
    """
    if days < 0:
        raise ValueError("days must be zero or positive")

    now = now or datetime.now()
    end = _end_of_day(now)
    start = _start_of_day(now - timedelta(days=days))
    return DateRange(start=start, end=end)


def is_in_range(moment: datetime, date_range: DateRange) -> bool:
    """Inclusive on both ends."""
    return date_range.contains(moment)


def day_name(moment: datetime) -> str:
    """Lowercase weekday name, the form programs store `dayOfWeek` in."""
    return DAY_NAMES[moment.isoweekday() % 7]


def hours_between_dates(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


# ---------------------------------------------------------------------------
# Time of day
# ---------------------------------------------------------------------------

def parse_time_of_day(value: str) -> tuple[int, int]:
    """
    Split an "HH:MM" string into hour and minute.

    Raises ValueError for anything that isn't a real time of day.
    """
    parts = value.strip().split(":") if isinstance(value, str) else []
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid time of day: {value!r} (expected HH:MM)")

    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time of day: {value!r} (out of range)")

    return hour, minute


def hours_between(start_time: str, end_time: str) -> float:
    """
    Decimal hours from `start_time` to `end_time` on the same day.

    No wraparound: an end before the start gives a negative result.
    Records that would produce one are rejected when they are loaded.
    """
    start_hour, start_minute = parse_time_of_day(start_time)
    end_hour, end_minute = parse_time_of_day(end_time)
    return (end_hour + end_minute / 60) - (start_hour + start_minute / 60)


def minutes_between(start_time: str, end_time: str) -> int:
    start_hour, start_minute = parse_time_of_day(start_time)
    end_hour, end_minute = parse_time_of_day(end_time)
    return (end_hour - start_hour) * 60 + (end_minute - start_minute)


def operating_hours_in_range(
    operating_hours: Mapping[str, Optional[Mapping[str, str]]],
    date_range: DateRange,
) -> float:
    """
    Total open hours of a location across every day in `date_range`.

    `operating_hours` maps lowercase day names to {"open": "HH:MM",
    "close": "HH:MM"}; closed days are absent or None.
    """
    total = 0.0
    current = date_range.start.date()
    last = date_range.end.date()

    while current <= last:
        hours = operating_hours.get(DAY_NAMES[current.isoweekday() % 7])
        if hours:
            total += hours_between(hours["open"], hours["close"])
        current += timedelta(days=1)

    return total
