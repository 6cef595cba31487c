"""Calendar helpers for attendance dates.

Every date is persisted and compared in the storage format ``YYYY-MM-DD``.
Display helpers fall back to the raw input when it cannot be parsed.
"""
import calendar as _cal
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from django.utils import timezone

DATE_FORMAT_STORAGE = '%Y-%m-%d'
DATE_FORMAT_DISPLAY = '%b %d, %Y'
DATE_FORMAT_DISPLAY_SHORT = '%d/%m/%Y'
DATE_FORMAT_DAY_MONTH = '%d %b'
DATE_FORMAT_MONTH_YEAR = '%b %Y'

DateLike = Union[date, str]


def today() -> date:
    """Current calendar date in the configured time zone."""
    return timezone.localdate()


def today_string() -> str:
    return to_storage(today())


def to_storage(value: date) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime(DATE_FORMAT_STORAGE)


def parse_storage_date(value: DateLike) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string; ``None`` when it is not a valid date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT_STORAGE).date()
    except ValueError:
        return None


def _format(value: DateLike, fmt: str, fallback: str) -> str:
    d = parse_storage_date(value)
    if d is None:
        return fallback
    return d.strftime(fmt)


def format_for_display(value: DateLike) -> str:
    return _format(value, DATE_FORMAT_DISPLAY, str(value))


def format_for_short_display(value: DateLike) -> str:
    return _format(value, DATE_FORMAT_DISPLAY_SHORT, str(value))


def format_day_month(value: DateLike) -> str:
    return _format(value, DATE_FORMAT_DAY_MONTH, str(value))


def month_year(value: DateLike) -> str:
    return _format(value, DATE_FORMAT_MONTH_YEAR, '')


def day_of_week(value: DateLike) -> str:
    """Full weekday name (e.g. ``Wednesday``), empty for unparseable input."""
    d = parse_storage_date(value)
    if d is None:
        return ''
    return _cal.day_name[d.weekday()]


def days_ago(days: int) -> str:
    return to_storage(today() - timedelta(days=days))


def days_from_now(days: int) -> str:
    return to_storage(today() + timedelta(days=days))


def is_today(value: DateLike) -> bool:
    d = parse_storage_date(value)
    return d is not None and d == today()


def is_yesterday(value: DateLike) -> bool:
    d = parse_storage_date(value)
    return d is not None and d == today() - timedelta(days=1)


def relative_label(value: DateLike) -> str:
    """``Today``, ``Yesterday`` or the display-formatted date."""
    if is_today(value):
        return 'Today'
    if is_yesterday(value):
        return 'Yesterday'
    return format_for_display(value)


def dates_in_month(year: int, month: int) -> List[str]:
    last_day = _cal.monthrange(year, month)[1]
    return [to_storage(date(year, month, n)) for n in range(1, last_day + 1)]


def dates_in_current_month() -> List[str]:
    d = today()
    return dates_in_month(d.year, d.month)


def days_difference(start: DateLike, end: DateLike) -> int:
    """Whole days from ``start`` to ``end``; 0 if either side is invalid."""
    s = parse_storage_date(start)
    e = parse_storage_date(end)
    if s is None or e is None:
        return 0
    return (e - s).days


def is_weekend(value: DateLike) -> bool:
    d = parse_storage_date(value)
    return d is not None and d.weekday() >= 5
