"""Date and time normalization in the dealership's reference time zone.

Schedule values arrive in several shapes: date-only strings (``2026-01-14``),
midnight-UTC timestamps that upstream producers use as a date-only encoding
(``2026-01-14T00:00:00Z``), and full timestamps. Everything here maps those
shapes onto calendar days and instants in a fixed zone so that the result does
not depend on the host's locale or time zone.

None of these helpers read the system clock.
"""

from __future__ import annotations

import datetime
import re
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.parser import isoparse

from .models import ScheduleValue

REFERENCE_TIMEZONE_NAME = "America/New_York"
REFERENCE_TIMEZONE = ZoneInfo(REFERENCE_TIMEZONE_NAME)

UNSCHEDULED = "unscheduled"

_DATE_ONLY_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
# Midnight variants PostgREST materializes for date-only values.
_MIDNIGHT_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T00:00:00(?:\.0{1,3})?(?:Z|[+-]\d{2}:?\d{2})?"
)

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def resolve_timezone(
    timezone_name: Optional[str],
    fallback: datetime.tzinfo = REFERENCE_TIMEZONE,
) -> datetime.tzinfo:
    """Resolve ``timezone_name`` to a tzinfo, falling back to the reference zone."""

    if timezone_name:
        try:
            return ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return fallback


def _literal_day(text: str) -> Optional[datetime.date]:
    match = _DATE_ONLY_RE.fullmatch(text) or _MIDNIGHT_RE.fullmatch(text)
    if not match:
        return None
    try:
        return datetime.date(int(match[1]), int(match[2]), int(match[3]))
    except ValueError:
        return None


def _ensure_aware(value: datetime.datetime) -> datetime.datetime:
    # Naive timestamps are treated as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


def _parse_timestamp(text: str) -> Optional[datetime.datetime]:
    try:
        parsed = isoparse(text)
    except (ValueError, OverflowError):
        return None
    return _ensure_aware(parsed)


def _is_plain_date(value: ScheduleValue) -> bool:
    if isinstance(value, datetime.datetime):
        return False
    if isinstance(value, datetime.date):
        return True
    return isinstance(value, str) and bool(_DATE_ONLY_RE.fullmatch(value.strip()))


def zone_midnight(day: datetime.date, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> datetime.datetime:
    """Return the instant the calendar ``day`` begins in ``tz``."""

    return datetime.datetime(day.year, day.month, day.day, tzinfo=tz)


def is_date_only_value(value: ScheduleValue) -> bool:
    """Return True for values that mean "this calendar day" rather than an instant.

    ``date`` objects, ``YYYY-MM-DD`` strings and the midnight ISO variants
    (``T00:00:00`` with optional milliseconds and UTC offset) all qualify.
    """

    if value is None or isinstance(value, datetime.datetime):
        return False
    if isinstance(value, datetime.date):
        return True
    if not isinstance(value, str):
        return False
    text = value.strip()
    if not text:
        return False
    return bool(_DATE_ONLY_RE.fullmatch(text) or _MIDNIGHT_RE.fullmatch(text))


def parse_calendar_day(
    value: ScheduleValue, tz: datetime.tzinfo = REFERENCE_TIMEZONE
) -> Optional[datetime.date]:
    """Return the calendar day ``value`` falls on in ``tz``, or None.

    Date-only values keep their literal day and are never shifted through UTC.
    """

    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return _ensure_aware(value).astimezone(tz).date()
    if isinstance(value, datetime.date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if is_date_only_value(text):
        return _literal_day(text)

    parsed = _parse_timestamp(text)
    if parsed is None:
        return None
    return parsed.astimezone(tz).date()


def parse_instant(
    value: ScheduleValue, tz: datetime.tzinfo = REFERENCE_TIMEZONE
) -> Optional[datetime.datetime]:
    """Return an aware UTC instant for ``value``, or None when it cannot be parsed.

    Date-only values resolve to the start of their day in ``tz``.
    """

    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return _ensure_aware(value).astimezone(datetime.timezone.utc)
    if is_date_only_value(value):
        day = parse_calendar_day(value, tz)
        if day is None:
            return None
        return zone_midnight(day, tz).astimezone(datetime.timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return None

    parsed = _parse_timestamp(value.strip())
    if parsed is None:
        return None
    return parsed.astimezone(datetime.timezone.utc)


def parse_exact_instant(
    value: ScheduleValue, tz: datetime.tzinfo = REFERENCE_TIMEZONE
) -> Optional[datetime.datetime]:
    """Like :func:`parse_instant`, but midnight timestamps keep their literal instant.

    ``2026-01-15T00:00:00Z`` is 00:00 UTC here, not the start of Jan 15 in
    ``tz``. Plain ``YYYY-MM-DD`` strings and ``date`` objects still resolve to
    the start of their day in ``tz``.
    """

    if isinstance(value, str) and _MIDNIGHT_RE.fullmatch(value.strip()):
        parsed = _parse_timestamp(value.strip())
        return parsed.astimezone(datetime.timezone.utc) if parsed is not None else None
    return parse_instant(value, tz)


def coerce_now(value: ScheduleValue | datetime.datetime) -> datetime.datetime:
    """Return the caller-supplied current moment as an aware datetime.

    Raises:
        TypeError: when ``value`` is missing or cannot be parsed. Callers must
            always pass the current time explicitly.
    """

    if value is None:
        raise TypeError("an explicit 'now' is required")
    moment = parse_exact_instant(value)
    if moment is None:
        raise TypeError(f"'now' is not a valid timestamp: {value!r}")
    return moment


def to_canonical_date_key(value: ScheduleValue, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> str:
    """Return ``YYYY-MM-DD`` for ``value`` in ``tz``, or ``"unscheduled"``.

    Never raises; null, empty and unparseable input yield the sentinel.
    """

    day = parse_calendar_day(value, tz)
    if day is None:
        return UNSCHEDULED
    return day.isoformat()


def start_of_day(moment: datetime.datetime, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> datetime.datetime:
    """Return the start of the ``tz`` calendar day containing ``moment``."""

    local = _ensure_aware(moment).astimezone(tz)
    return zone_midnight(local.date(), tz)


def start_of_next_day(
    moment: datetime.datetime,
    tz: datetime.tzinfo = REFERENCE_TIMEZONE,
    days: int = 1,
) -> datetime.datetime:
    """Return the start of the ``tz`` day ``days`` after the one containing ``moment``.

    Built from wall-clock dates so DST transitions never shift the boundary.
    """

    local = _ensure_aware(moment).astimezone(tz)
    return zone_midnight(local.date() + datetime.timedelta(days=days), tz)


def to_rfc3339(value: datetime.datetime) -> str:
    """Return an RFC3339 string in canonical UTC form with a 'Z' suffix."""

    normalized = _ensure_aware(value).astimezone(datetime.timezone.utc).isoformat()
    if normalized.endswith("+00:00"):
        normalized = normalized[:-6] + "Z"
    return normalized


def _format_clock(moment: datetime.datetime) -> str:
    hour = moment.hour % 12 or 12
    period = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d} {period}"


def format_display_date(value: ScheduleValue, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> str:
    """Format ``value`` as ``Jan 14, 2026``; empty string when unparseable."""

    day = parse_calendar_day(value, tz)
    if day is None:
        return ""
    return f"{_MONTHS[day.month - 1]} {day.day}, {day.year}"


def format_day_header(value: ScheduleValue, tz: datetime.tzinfo = REFERENCE_TIMEZONE) -> str:
    """Format ``value`` as an agenda day header such as ``Wed, Jan 14``."""

    day = parse_calendar_day(value, tz)
    if day is None:
        return ""
    return f"{_WEEKDAYS[day.weekday()]}, {_MONTHS[day.month - 1]} {day.day}"


def format_display_time_window(
    start: ScheduleValue,
    end: ScheduleValue = None,
    tz: datetime.tzinfo = REFERENCE_TIMEZONE,
) -> str:
    """Format a time range as ``9:00 AM–10:30 AM`` in ``tz``.

    A missing, unusable or plain-date end yields just the start time. A
    midnight timestamp end is read as that exact instant. Date-only and
    unparseable starts have no time of day and yield an empty string.
    """

    if start is None or is_date_only_value(start):
        return ""
    start_at = parse_instant(start, tz)
    if start_at is None:
        return ""

    label = _format_clock(start_at.astimezone(tz))
    if end is None or _is_plain_date(end):
        return label
    end_at = parse_exact_instant(end, tz)
    if end_at is None or end_at == start_at:
        return label
    return f"{label}–{_format_clock(end_at.astimezone(tz))}"


__all__ = [
    "REFERENCE_TIMEZONE",
    "REFERENCE_TIMEZONE_NAME",
    "UNSCHEDULED",
    "coerce_now",
    "format_day_header",
    "format_display_date",
    "format_display_time_window",
    "is_date_only_value",
    "parse_calendar_day",
    "parse_exact_instant",
    "parse_instant",
    "resolve_timezone",
    "start_of_day",
    "start_of_next_day",
    "to_canonical_date_key",
    "to_rfc3339",
    "zone_midnight",
]
