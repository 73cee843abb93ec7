"""Date and time normalization for human-entered spreadsheet values."""
import re
from datetime import date, datetime
from typing import Optional

ISO_DATE_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')
DAY_FIRST_DATE_RE = re.compile(r'^(\d{1,2})[./-](\d{1,2})[./-](\d{4})$')
YEAR_FIRST_DATE_RE = re.compile(r'^(\d{4})[./-](\d{1,2})[./-](\d{1,2})$')

COLON_TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})$')
DOT_TIME_RE = re.compile(r'^(\d{1,2})\.(\d{2})$')
COMPACT_TIME_RE = re.compile(r'^(\d{1,2})(\d{2})$')
SECONDS_TIME_RE = re.compile(r'^(\d{1,2}):(\d{2}):(\d{2})$')

# Last-resort formats for dates that match none of the numeric patterns
FALLBACK_DATE_FORMATS = [
    '%d %B %Y',      # 15 March 2026
    '%d. %B %Y',     # 15. March 2026
    '%B %d, %Y',     # March 15, 2026
    '%b %d, %Y',     # Mar 15, 2026
    '%d %b %Y',      # 15 Mar 2026
]

TWELVE_HOUR_FORMATS = [
    '%I:%M %p',
    '%I:%M%p',
    '%I:%M:%S %p',
    '%I %p',
    '%I%p',
]


def _to_iso_date(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _format_time(hour: int, minute: int) -> Optional[str]:
    if 0 <= hour <= 23 and 0 <= minute <= 59:
        return f"{hour:02d}:{minute:02d}"
    return None


def normalize_date(value: Optional[str]) -> Optional[str]:
    """
    Normalize a free-form date to ISO 8601 (YYYY-MM-DD).

    Formats are tried in order and the first match wins:
    ISO, day-first (15.03.2026, 15/3/2026, 15-03-2026), year-first
    (2026/03/15), then a generic parse. Ambiguous numeric dates are
    always read day-first.

    Args:
        value: Raw cell text

    Returns:
        ISO 8601 date string or None if the value cannot be parsed
    """
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None

    match = ISO_DATE_RE.match(text)
    if match:
        year, month, day = match.groups()
        return _to_iso_date(int(year), int(month), int(day))

    match = DAY_FIRST_DATE_RE.match(text)
    if match:
        day, month, year = match.groups()
        return _to_iso_date(int(year), int(month), int(day))

    match = YEAR_FIRST_DATE_RE.match(text)
    if match:
        year, month, day = match.groups()
        return _to_iso_date(int(year), int(month), int(day))

    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        pass

    for fmt in FALLBACK_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    return None


def normalize_time(value: Optional[str]) -> Optional[str]:
    """
    Normalize a wall-clock time to 24-hour HH:MM.

    Accepts 9:30, 09:30, 9.30, 0930, 09:30:00 and, failing those,
    12-hour values such as "7:00 PM". No timezone conversion is done.

    Args:
        value: Raw cell text

    Returns:
        HH:MM string or None if the value cannot be parsed
    """
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None

    for pattern in (COLON_TIME_RE, DOT_TIME_RE, COMPACT_TIME_RE):
        match = pattern.match(text)
        if match:
            hour, minute = match.groups()
            return _format_time(int(hour), int(minute))

    match = SECONDS_TIME_RE.match(text)
    if match:
        hour, minute, _seconds = match.groups()
        return _format_time(int(hour), int(minute))

    for fmt in TWELVE_HOUR_FORMATS:
        try:
            time_obj = datetime.strptime(text.upper(), fmt)
            return time_obj.strftime('%H:%M')
        except ValueError:
            continue

    return None
