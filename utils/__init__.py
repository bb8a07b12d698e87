"""Utility modules for cross-cutting concerns."""

from utils.timezone import (
    now_utc,
    today_utc,
    day_of_week,
    duration_between,
    intervals_overlap,
    interval_contains,
)
