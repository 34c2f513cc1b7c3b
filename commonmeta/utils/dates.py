"""Date parsing and formatting.

Dates in Commonmeta records are ISO 8601 strings with optional precision:
``2021``, ``2021-01``, ``2021-01-22`` or ``2021-01-22T10:00:00Z``. Foreign
formats deliver dates as CSL/Crossref date-parts arrays, Unix seconds,
Crossref deposit timestamps or RFC 3339 datetimes.
"""

import re
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

from dateutil import parser as date_parser

ISO8601_DATE_FORMAT = "%Y-%m-%d"
ISO8601_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
CROSSREF_DATETIME_FORMAT = "%Y%m%d%H%M%S"

_EDTF_DATE = r"\d{4}(?:-(?:0[1-9]|1[0-2])(?:-(?:0[1-9]|[12]\d|3[01]))?)?"
_EDTF_TIME = r"T(?:[01]\d|2[0-3]):[0-5]\d:[0-5]\d(?:Z|[+-](?:[01]\d|2[0-3])(?::?[0-5]\d)?)?"
EDTF_LEVEL0_RE = re.compile(
    rf"^(?:{_EDTF_DATE}(?:{_EDTF_TIME})?|{_EDTF_DATE}/{_EDTF_DATE})$"
)
DATE_PREFIX_RE = re.compile(r"^(\d{4})(?:-(\d{2})(?:-(\d{2}))?)?")


def get_date_from_parts(*parts: int) -> str:
    """Format up to three integer parts as YYYY[-MM[-DD]].

    Example:
        get_date_from_parts()            # ""
        get_date_from_parts(2021)        # "2021"
        get_date_from_parts(2021, 1, 22) # "2021-01-22"
    """
    values: List[int] = []
    for part in parts[:3]:
        if not part:
            break
        values.append(part)
    if not values:
        return ""
    formatted = [f"{values[0]:04d}"] + [f"{p:02d}" for p in values[1:]]
    return "-".join(formatted)


def _to_int(part: Any) -> int:
    try:
        return int(float(part))
    except (TypeError, ValueError):
        return 0


def get_date_from_date_parts(date_parts: Optional[Sequence[Sequence[Any]]]) -> str:
    """Convert CSL/Crossref date-parts ``[[Y, M, D]]`` to an ISO date string."""
    if not date_parts or not date_parts[0]:
        return ""
    first = date_parts[0]
    if first[0] is None:
        return ""
    parts = [_to_int(p) for p in first[:3]]
    if parts[0] == 0:
        return ""
    return get_date_from_parts(*parts)


def get_date_from_crossref_parts(*parts: str) -> str:
    """Crossref XML delivers year, month and day as separate strings."""
    return get_date_from_parts(*[_to_int(p) for p in parts if p])


def get_date_parts(iso8601_time: Optional[str]) -> List[List[int]]:
    """Convert an ISO date string to date-parts ``[[Y, M, D]]``, dropping missing parts."""
    if not iso8601_time:
        return []
    match = DATE_PREFIX_RE.match(iso8601_time)
    if not match:
        return []
    parts = [int(p) for p in match.groups() if p]
    return [[p for p in parts if p]]


def parse_date(value: Optional[str]) -> str:
    """Return the YYYY[-MM[-DD]] part of an EDTF or RFC 3339 date; "" if unparseable."""
    if not value:
        return ""
    value = value.strip()
    match = DATE_PREFIX_RE.match(value)
    if match and len(value) <= 10:
        return get_date_from_parts(*[int(p) for p in match.groups() if p])
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, OverflowError):
        if not match:
            return ""
        return get_date_from_parts(*[int(p) for p in match.groups() if p])
    return parsed.strftime(ISO8601_DATE_FORMAT)


def parse_datetime(value: Optional[str]) -> str:
    """Normalize a datetime to UTC ``YYYY-MM-DDTHH:MM:SSZ``.

    Dates without time component, or at midnight, are returned as dates.
    Accepts RFC 3339, ``YYYY-MM-DD HH:MM:SS`` and Crossref ``YYYYMMDDHHMMSS``.
    """
    if not value:
        return ""
    value = value.strip()
    if re.fullmatch(r"\d{14}", value):
        parsed = datetime.strptime(value, CROSSREF_DATETIME_FORMAT)
    elif re.fullmatch(r"\d{4}(-\d{2}(-\d{2})?)?", value):
        return parse_date(value)
    else:
        try:
            parsed = date_parser.isoparse(value.replace(" ", "T"))
        except (ValueError, OverflowError):
            return ""
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    if parsed.hour == 0 and parsed.minute == 0 and parsed.second == 0:
        return parsed.strftime(ISO8601_DATE_FORMAT)
    return parsed.strftime(ISO8601_DATETIME_FORMAT)


def validate_edtf(value: Optional[str]) -> str:
    """Return the input if it is a valid EDTF level 0 value, else ""."""
    if not value or not EDTF_LEVEL0_RE.match(value):
        return ""
    return value


def get_date_from_unix_timestamp(timestamp: Optional[float]) -> str:
    """Unix seconds to ``YYYY-MM-DD`` in UTC; "" for missing timestamps."""
    if timestamp is None:
        return ""
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).strftime(
        ISO8601_DATE_FORMAT
    )


def get_datetime_from_unix_timestamp(timestamp: Optional[float]) -> str:
    if timestamp is None:
        return ""
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).strftime(
        ISO8601_DATETIME_FORMAT
    )


def get_unix_timestamp(iso8601_time: Optional[str]) -> int:
    """RFC 3339 datetime or ISO date to Unix seconds; 0 if unparseable."""
    if not iso8601_time:
        return 0
    try:
        parsed = date_parser.isoparse(iso8601_time)
    except (ValueError, OverflowError):
        return 0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def get_datetime_from_time(value: Optional[datetime] = None) -> str:
    """Format a datetime (default now) as Crossref deposit timestamp YYYYMMDDHHMMSS."""
    value = value or datetime.now(timezone.utc)
    return value.strftime(CROSSREF_DATETIME_FORMAT)


def get_date_from_datetime(iso8601_time: Optional[str]) -> str:
    return parse_date(iso8601_time)


def strip_milliseconds(iso8601_time: Optional[str]) -> str:
    """Drop fractional seconds and normalize +00:00 to Z; midnight becomes a date."""
    if not iso8601_time:
        return ""
    if "T00:00:00" in iso8601_time:
        return iso8601_time.split("T")[0]
    if "." in iso8601_time:
        return iso8601_time.split(".")[0] + "Z"
    if "+00:00" in iso8601_time:
        return iso8601_time.split("+")[0] + "Z"
    return iso8601_time
