"""UTC-everywhere time handling plus the naive time-of-day helpers used by slots."""

from datetime import date, datetime, time, timedelta, timezone


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def today_utc() -> date:
    """Current calendar date in UTC."""
    return now_utc().date()


def day_of_week(d: date) -> int:
    """
    Weekday index with Sunday as 0 and Saturday as 6.

    Python's date.weekday() starts at Monday = 0; slots are stored
    Sunday-first.
    """
    return (d.weekday() + 1) % 7


def duration_between(start: time, end: time) -> timedelta:
    """Exact span from start to end on the same day, microseconds included."""
    return datetime.combine(date.min, end) - datetime.combine(date.min, start)


def intervals_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Whether two half-open [start, end) time-of-day intervals intersect."""
    return max(start_a, start_b) < min(end_a, end_b)


def interval_contains(outer_start: time, outer_end: time, start: time, end: time) -> bool:
    """Whether [start, end) lies fully inside [outer_start, outer_end)."""
    return outer_start <= start and end <= outer_end
