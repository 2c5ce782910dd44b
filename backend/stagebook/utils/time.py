import calendar
import re
from datetime import date, datetime, timedelta

DATE_KEY_FORMAT = "%Y-%m-%d"
_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def to_date_key(value: date) -> str:
    return value.strftime(DATE_KEY_FORMAT)


def parse_date_key(date_key: str) -> date:
    """Parse a zero-padded ``YYYY-MM-DD`` key. Raises ValueError on anything else."""
    if not isinstance(date_key, str) or not _DATE_KEY_RE.match(date_key):
        raise ValueError(f"invalid date key: {date_key!r}")
    return datetime.strptime(date_key, DATE_KEY_FORMAT).date()


def add_months(value: date, months: int) -> date:
    """Shift by calendar months, clamping the day to the target month's length."""
    index = value.month - 1 + months
    year = value.year + index // 12
    month = index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def iter_dates(start: date, end: date):
    cur = start
    while cur <= end:
        yield cur
        cur += timedelta(days=1)


def local_today() -> date:
    return datetime.now().date()
