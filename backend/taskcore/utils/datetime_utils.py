"""
Timezone-aware datetime utilities.

Converts calendar days as experienced in a user's IANA timezone into UTC
instant ranges, so "today", "upcoming" and "overdue" agree for every user no
matter where the server runs. Invalid timezone names never raise: they are
logged and replaced by UTC.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from taskcore.core.exceptions import InvalidTimezoneError
from taskcore.core.logger import setup_logger

logger = setup_logger(__name__)

# UTC timezone constant
UTC = timezone.utc

# Last representable millisecond of a calendar day
END_OF_DAY = time(23, 59, 59, 999000)

DateInput = Union[date, datetime, str, None]


@dataclass(frozen=True)
class DayBounds:
    """Inclusive UTC instant range."""

    start: datetime
    end: datetime

    def contains(self, value: Optional[datetime]) -> bool:
        if value is None:
            return False
        value = ensure_utc(value)
        return self.start <= value <= self.end


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Replaces datetime.utcnow() which is deprecated in Python 3.12+.

    Returns:
        datetime: Current UTC time with tzinfo set to UTC
    """
    return datetime.now(UTC)


def load_timezone(name: Optional[str]) -> ZoneInfo:
    """
    Load an IANA timezone.

    Raises:
        InvalidTimezoneError: If ``name`` is empty or not a known zone
    """
    if not name or not isinstance(name, str):
        raise InvalidTimezoneError("Timezone name is empty", details={"timezone": name})
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidTimezoneError(f"Unknown timezone: {name}", details={"timezone": name}) from exc


def is_valid_timezone(name: Optional[str]) -> bool:
    """Return True when ``name`` is a loadable IANA timezone."""
    try:
        load_timezone(name)
    except InvalidTimezoneError:
        return False
    return True


def get_safe_timezone(name: Optional[str]) -> str:
    """Return ``name`` if it is a valid timezone, otherwise "UTC"."""
    return name if is_valid_timezone(name) else "UTC"


def resolve_zone(name: Optional[str]) -> tzinfo:
    """
    Load a timezone, falling back to UTC.

    A bad stored preference must degrade list views, not break them, so this
    never raises.
    """
    try:
        return load_timezone(name)
    except InvalidTimezoneError as exc:
        if name not in (None, ""):
            logger.warning(f"{exc.message}, falling back to UTC")
        return UTC


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware and in UTC.

    Args:
        dt: datetime to convert (can be None, naive, or timezone-aware)

    Returns:
        Optional[datetime]: UTC timezone-aware datetime, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=UTC)

    # Already timezone-aware - convert to UTC
    return dt.astimezone(UTC)


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Normalize to naive UTC for storage and SQL comparisons."""
    if dt is None:
        return None
    return ensure_utc(dt).replace(tzinfo=None)


def parse_iso_to_utc(iso_string: str) -> datetime:
    """
    Parse ISO datetime string to UTC timezone-aware datetime.

    Handles:
    - ISO strings with 'Z' suffix (UTC): "2024-01-20T09:00:00Z"
    - ISO strings with timezone offset: "2024-01-20T09:00:00+09:00"
    - Naive ISO strings (assumes UTC): "2024-01-20T09:00:00"

    Raises:
        ValueError: If the string cannot be parsed
    """
    normalized = iso_string.replace("Z", "+00:00")
    dt = datetime.fromisoformat(normalized)
    return ensure_utc(dt)


def _local_date(value: DateInput, zone: tzinfo, now: Optional[datetime]) -> date:
    """Project any accepted date input onto a calendar day in ``zone``."""
    if value is None:
        return ensure_utc(now or now_utc()).astimezone(zone).date()
    if isinstance(value, datetime):
        return ensure_utc(value).astimezone(zone).date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return parse_iso_to_utc(text).astimezone(zone).date()


def _bounds_for(day: date, zone: tzinfo) -> DayBounds:
    start = datetime.combine(day, time.min, tzinfo=zone)
    # fold=1 picks the later instant when 23:59:59.999 repeats (fall-back at midnight)
    end = datetime.combine(day, END_OF_DAY, tzinfo=zone).replace(fold=1)
    return DayBounds(start=start.astimezone(UTC), end=end.astimezone(UTC))


def day_bounds(
    value: DateInput,
    user_timezone: Optional[str],
    now: Optional[datetime] = None,
) -> DayBounds:
    """
    Get UTC bounds of a calendar day as experienced in ``user_timezone``.

    Args:
        value: date, "YYYY-MM-DD", an instant (projected into the zone) or
            None for the current day
        user_timezone: IANA timezone name; invalid names fall back to UTC
        now: Reference instant used when ``value`` is None

    Returns:
        DayBounds: start at 00:00:00.000 and end at 23:59:59.999 local time

    Example:
        >>> day_bounds("2024-01-20", "Asia/Tokyo").start
        datetime(2024, 1, 19, 15, 0, tzinfo=timezone.utc)
    """
    zone = resolve_zone(user_timezone)
    return _bounds_for(_local_date(value, zone, now), zone)


def today_bounds(user_timezone: Optional[str], now: Optional[datetime] = None) -> DayBounds:
    """Get UTC bounds of today in the user's timezone."""
    return day_bounds(None, user_timezone, now=now)


def upcoming_range(
    user_timezone: Optional[str],
    days: int = 7,
    now: Optional[datetime] = None,
) -> DayBounds:
    """Get the range from today 00:00 through today+days 23:59:59.999 (local)."""
    zone = resolve_zone(user_timezone)
    today = _local_date(None, zone, now)
    start = _bounds_for(today, zone).start
    end = _bounds_for(today + timedelta(days=max(days, 0)), zone).end
    return DayBounds(start=start, end=end)


def get_user_today(user_timezone: Optional[str], now: Optional[datetime] = None) -> date:
    """
    Get today's date in the user's timezone.

    Example:
        >>> get_user_today("Asia/Tokyo")  # When UTC is 2024-01-19 23:00
        date(2024, 1, 20)  # JST is 2024-01-20 08:00
    """
    return _local_date(None, resolve_zone(user_timezone), now)


def utc_to_user_date(value: Optional[datetime], user_timezone: Optional[str]) -> Optional[date]:
    """Calendar day of a UTC instant in the user's timezone."""
    if value is None:
        return None
    return ensure_utc(value).astimezone(resolve_zone(user_timezone)).date()


def is_today(
    value: Optional[datetime],
    user_timezone: Optional[str],
    now: Optional[datetime] = None,
) -> bool:
    if value is None:
        return False
    return utc_to_user_date(value, user_timezone) == get_user_today(user_timezone, now)


def is_overdue(
    value: Optional[datetime],
    user_timezone: Optional[str],
    now: Optional[datetime] = None,
) -> bool:
    """True when the instant falls on a calendar day before today (local)."""
    if value is None:
        return False
    return utc_to_user_date(value, user_timezone) < get_user_today(user_timezone, now)


def end_of_user_day(day: date, user_timezone: Optional[str]) -> datetime:
    """
    UTC instant of 23:59:59.999 on ``day`` in the user's timezone.

    Due dates are stored this way so a task stays due for the user's whole day.
    """
    return day_bounds(day, user_timezone).end


def user_datetime_to_utc(dt: datetime, user_timezone: Optional[str]) -> datetime:
    """
    Convert a naive datetime from user's timezone to UTC.

    Example:
        >>> dt = datetime(2024, 1, 20, 9, 0)  # User says "9:00 AM"
        >>> user_datetime_to_utc(dt, "Asia/Tokyo")
        datetime(2024, 1, 20, 0, 0, 0, tzinfo=timezone.utc)  # UTC 00:00
    """
    localized = dt.replace(tzinfo=resolve_zone(user_timezone))
    return localized.astimezone(UTC)
