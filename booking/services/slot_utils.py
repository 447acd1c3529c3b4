"""
slot_utils.py
-------------
Time arithmetic shared by the materializer, the availability engine and the
booking manager.

Times of day are handled as integer minutes since midnight so that adding a
service duration never wraps around: a 23:30 start with a 60 minute service
ends at minute 1470, which is correctly "after" any block end.
"""

from datetime import date, datetime, time, timedelta

from django.utils import timezone


def parse_hhmm(value: str) -> time:
    h, m = value.strip().split(":")[:2]
    return time(int(h), int(m))


def parse_date(value: str) -> date:
    """
    Parse 'YYYY-MM-DD'. Also accepts inputs that carry a time part
    ('2025-12-01T10:00' or '2025-12-01 10:00'); the time is dropped.
    """
    value = (value or "").strip()
    for sep in ("T", " "):
        if sep in value:
            value = value.split(sep, 1)[0]
    return date.fromisoformat(value)


def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def format_minutes(minutes: int, fmt: str = "%H:%M") -> str:
    return from_minutes(minutes).strftime(fmt)


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """
    Half-open interval test: [a_start, a_end) and [b_start, b_end) conflict
    iff a_start < b_end and a_end > b_start. Touching edges do not overlap.
    """
    return start_a < end_b and end_a > start_b


def candidate_starts(block_start: int, block_end: int, duration: int, step: int):
    """
    Candidate slot starts inside a block, stepping by `step` minutes from the
    block start while start + duration still fits (start + duration <= end).
    """
    starts = []
    current = block_start
    while current + duration <= block_end:
        starts.append(current)
        current += step
    return starts


def dates_in_range(start: date, end: date):
    """Every calendar date from start to end, inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def sunday_based_weekday(day: date) -> int:
    """0=Sunday ... 6=Saturday (Python's weekday() is 0=Monday)."""
    return day.isoweekday() % 7


def _make_aware(dt_naive: datetime):
    """
    Convert a naive datetime to an aware one using Django's current timezone.
    """
    if timezone.is_aware(dt_naive):
        return dt_naive
    return timezone.make_aware(dt_naive, timezone.get_current_timezone())


def local_datetime(day: date, t: time) -> datetime:
    """Aware datetime for a business-local date and time of day."""
    return _make_aware(datetime.combine(day, t))
