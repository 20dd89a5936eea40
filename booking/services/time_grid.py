"""
time_grid.py
------------
Date/time helpers shared by the slot engine, the planning grid and the
absence ledger.

Conventions:
- A "date key" is 'YYYY-MM-DD' built from LOCAL calendar fields (the salon's
  TIME_ZONE), never from UTC, so an evening appointment does not slide into
  the next day.
- Weekdays use 0 = Sunday .. 6 = Saturday (the numbering stored in
  Staff.weekly_closures). Python's date.weekday() is Monday-based, so always
  go through weekday_of().
- Times of day are handled as integer minutes since midnight.
"""

import logging
from datetime import date, datetime, time, timedelta

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)


def parse_hhmm(value: str) -> time:
    h, m = value.strip().split(":")
    return time(int(h), int(m))


def minutes_of_day(h: int, m: int = 0) -> int:
    return h * 60 + m


def hhmm_to_minutes(value: str) -> int:
    t = parse_hhmm(value)
    return minutes_of_day(t.hour, t.minute)


def format_minutes(total: int) -> str:
    """480 -> '08:00'."""
    return f"{total // 60:02d}:{total % 60:02d}"


def to_local(dt: datetime) -> datetime:
    """Aware datetime -> business timezone. Naive values are taken as already local."""
    if timezone.is_naive(dt):
        return dt
    return timezone.localtime(dt)


def local_now() -> datetime:
    return timezone.localtime(timezone.now())


def date_key(value) -> str:
    """
    Zero-padded 'YYYY-MM-DD' from local calendar fields.
    Accepts a date, a datetime (aware ones are converted to local time first)
    or an existing key string.
    """
    if isinstance(value, str):
        return parse_date_key(value).isoformat()
    if isinstance(value, datetime):
        value = to_local(value)
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date_key(value) -> date:
    """
    'YYYY-MM-DD' -> date. Parsed at a fixed midday time so no DST or UTC
    boundary can move it to a neighbouring day.
    Raises ValueError on malformed input.
    """
    if isinstance(value, datetime):
        return to_local(value).date()
    if isinstance(value, date):
        return value
    raw = (value or "").strip()
    # Accept values that carry a time part ('2025-03-01T10:00')
    if "T" in raw:
        raw = raw.split("T", 1)[0]
    elif " " in raw:
        raw = raw.split(" ", 1)[0]
    return datetime.strptime(f"{raw}T12:00:00", "%Y-%m-%dT%H:%M:%S").date()


def weekday_of(value) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (parse_date_key(value).weekday() + 1) % 7


def expand_dates(start, end) -> list:
    """Every calendar day key in [start, end], inclusive. Empty when end < start."""
    first = parse_date_key(start)
    last = parse_date_key(end)
    days = []
    current = first
    while current <= last:
        days.append(current.isoformat())
        current += timedelta(days=1)
    return days


def week_days(any_day) -> list:
    """Monday..Sunday dates of the week containing any_day."""
    d = parse_date_key(any_day)
    monday = d - timedelta(days=d.weekday())
    return [monday + timedelta(days=i) for i in range(7)]


def date_to_range(value):
    """
    Convert 'YYYY-MM-DD' (or a date) into a timezone-aware day window [start, end).
    """
    d = parse_date_key(value)
    tz = timezone.get_current_timezone()
    day_start = timezone.make_aware(datetime(d.year, d.month, d.day, 0, 0, 0), tz)
    next_day = d + timedelta(days=1)
    day_end = timezone.make_aware(datetime(next_day.year, next_day.month, next_day.day, 0, 0, 0), tz)
    return day_start, day_end


def local_datetime(day, minutes: int) -> datetime:
    """Aware datetime for a local calendar day plus minutes since midnight."""
    d = parse_date_key(day)
    naive = datetime(d.year, d.month, d.day) + timedelta(minutes=minutes)
    return timezone.make_aware(naive, timezone.get_current_timezone())


def _setting_override(key, default, parse):
    from configmgr.models import SystemSetting

    raw = SystemSetting.get_value(key)
    if raw is None:
        return default
    try:
        return parse(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring unparsable SystemSetting %s=%r", key, raw)
        return default


def get_default_work_hours():
    """
    Return (start, end) of the default working window as "HH:MM" strings.
    SystemSetting WORK_START/WORK_END override the SALON_DEFAULT_* settings.
    """
    start = _setting_override(
        "WORK_START", settings.SALON_DEFAULT_WORK_START, lambda v: format_minutes(hhmm_to_minutes(v))
    )
    end = _setting_override(
        "WORK_END", settings.SALON_DEFAULT_WORK_END, lambda v: format_minutes(hhmm_to_minutes(v))
    )
    return start, end


def get_lead_minutes() -> int:
    return _setting_override("BOOKING_LEAD_MINUTES", settings.SALON_BOOKING_LEAD_MINUTES, int)


def generate_candidate_starts(work_start: str, work_end: str) -> list:
    """
    Half-hour candidate starts (minutes since midnight) from the whole hour of
    work_start up to and including the hour of work_end.
    Filtering against the actual window happens in the availability engine.
    """
    step = settings.SALON_SLOT_STEP_MINUTES
    first_hour = parse_hhmm(work_start).hour
    last_hour = parse_hhmm(work_end).hour

    starts = []
    for hour in range(first_hour, last_hour + 1):
        for offset in range(0, 60, step):
            starts.append(minutes_of_day(hour, offset))
    return starts
