"""
Date conversion for Things 3 database values.

Things stores dates in two numeric forms:
- creationDate / stopDate: seconds since the Unix epoch (REAL)
- startDate / deadline: a packed integer with year, month and day bit-fields

Both are converted to the ISO-8601 form used in note frontmatter.
"""
from datetime import date, datetime, timezone

# Packed dates are always below this; anything integral under it is decoded
# as year << 16 | month << 12 | day << 7.
PACKED_DATE_LIMIT = 1 << 28

MIN_YEAR = 1900
MAX_YEAR = 2100


def _as_number(value) -> float | None:
    """Coerce a raw column value to a number, or None if it isn't one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def is_packed_date(value: float) -> bool:
    """True if value is small and integral enough to be a packed date."""
    return float(value).is_integer() and 0 < value < PACKED_DATE_LIMIT


def unpack_date(value: int) -> date | None:
    """
    Decode a packed Things date.

    Returns None when the bit-fields fall outside a plausible calendar date.
    """
    value = int(value)
    year = value >> 16
    month = (value >> 12) & 0xF
    day = (value >> 7) & 0x1F

    if not (MIN_YEAR <= year <= MAX_YEAR):
        return None
    if not (1 <= month <= 12) or not (1 <= day <= 31):
        return None
    try:
        return date(year, month, day)
    except ValueError:
        # e.g. Feb 30
        return None


def pack_date(year: int, month: int, day: int) -> int:
    """Inverse of unpack_date, used to build fixture data."""
    return (year << 16) | (month << 12) | (day << 7)


def format_iso(dt: datetime) -> str:
    """Format a UTC datetime as YYYY-MM-DDTHH:MM:SS.mmmZ."""
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def now_iso() -> str:
    return format_iso(datetime.now(timezone.utc))


def to_datetime(value) -> datetime | None:
    """Convert a raw Things date value to an aware UTC datetime."""
    number = _as_number(value)
    if not number:
        return None

    if is_packed_date(number):
        day = unpack_date(int(number))
        if day is None:
            return None
        return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)

    try:
        return datetime.fromtimestamp(number, tz=timezone.utc)
    except (ValueError, OSError, OverflowError):
        return None


def to_iso(value) -> str:
    """
    Convert a Things date (either encoding) to an ISO-8601 string.

    Absent, zero or undecodable values give an empty string.
    """
    dt = to_datetime(value)
    return format_iso(dt) if dt else ""


def date_stamp(value) -> str:
    """Return the YYYYMMDD stamp for a Things date, or "" if there is none."""
    dt = to_datetime(value)
    return dt.strftime("%Y%m%d") if dt else ""
