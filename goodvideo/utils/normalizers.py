"""
Field Normalizers
Turn raw captured page text into typed values (ints, dates, sizes)
"""
from datetime import datetime, timedelta
from typing import Optional, Pattern, Union
import re

from dateutil import parser as date_parser


RECORDED_AT_PATTERN = re.compile(r"收录\s*[:：]\s*([^\s]+(?:\s+[^\s]+){0,2})")

DATE_FORMATS = [
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y-%m-%d",
    "%Y/%m/%d",
]

_RELATIVE_PATTERNS = [
    (re.compile(r"(\d+)\s*(分钟|小时|天)前"), {"分钟": "minutes", "小时": "hours", "天": "days"}),
    (
        re.compile(r"(\d+)\s*(minute|hour|day)s?\s+ago", re.IGNORECASE),
        {"minute": "minutes", "hour": "hours", "day": "days"},
    ),
]
_JUST_NOW_MARKERS = ("刚", "just now")
# The lenient parse only runs on text carrying a calendar date.
_DATE_PART = re.compile(r"\d{1,4}[-/.]\d{1,2}|(?<!\d)\d{4}(?!\d)")

# Substring match on the unit token, first hit wins.
_SIZE_UNITS_GB = [
    ("t", 1024.0),
    ("g", 1.0),
    ("m", 1.0 / 1024),
    ("k", 1.0 / (1024 * 1024)),
]
_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([A-Za-z]*)")

PatternLike = Union[str, Pattern]


def clean_text(value: Optional[str]) -> str:
    """Collapse runs of whitespace and trim"""
    if not value:
        return ""
    return re.sub(r"\s+", " ", value).strip()


def capture_text(text: Optional[str], pattern: PatternLike) -> Optional[str]:
    """Return the first capture group of ``pattern`` in ``text``, trimmed"""
    if not text:
        return None
    match = re.search(pattern, text)
    if not match:
        return None
    return match.group(1).strip()


def extract_number(text: Optional[str], pattern: PatternLike) -> Optional[int]:
    """First label-prefixed run of digits as an int, else None"""
    raw = capture_text(text, pattern)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_datetime_text(raw: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Normalize a raw recorded-at string to a datetime.

    Tries, in order: relative "N minutes/hours/days ago" phrasing, a
    "just now" marker, the strict DATE_FORMATS, then a lenient dateutil
    parse of text that carries a calendar date. Returns None when nothing yields a valid timestamp.
    """
    if not raw:
        return None
    now = now or datetime.now()
    normalized = re.sub(r"[年月]", "-", raw).replace("日", "").strip()
    if not normalized:
        return None

    for pattern, units in _RELATIVE_PATTERNS:
        match = pattern.search(normalized)
        if match:
            unit = units[match.group(2).lower()]
            try:
                return now - timedelta(**{unit: int(match.group(1))})
            except OverflowError:
                return None

    lowered = normalized.lower()
    if any(marker in lowered for marker in _JUST_NOW_MARKERS):
        return now

    tokens = normalized.split()
    candidates = [normalized]
    for width in (2, 1):
        prefix = " ".join(tokens[:width])
        if prefix not in candidates:
            candidates.append(prefix)
    for candidate in candidates:
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(candidate, fmt)
            except ValueError:
                continue

    if not _DATE_PART.search(normalized):
        return None
    try:
        return _to_local_naive(date_parser.parse(normalized))
    except (ValueError, OverflowError):
        return None


def extract_recorded_at(text: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """Find the recorded-at label in a detail blob and parse its value"""
    return parse_datetime_text(capture_text(text, RECORDED_AT_PATTERN), now=now)


def normalize_size(size_text: Optional[str]) -> Optional[str]:
    """
    Normalize a size string to gigabytes for display.

    "1536 MB" -> "1.5 GB", "12.34 GB" -> "12.3 GB", "2 TB" -> "2048 GB".
    Unparseable input gives None.
    """
    if not size_text or not isinstance(size_text, str):
        return None
    match = _SIZE_PATTERN.match(size_text)
    if not match:
        return None
    unit = match.group(2).lower()
    factor = next((f for marker, f in _SIZE_UNITS_GB if marker in unit), None)
    if factor is None:
        return None

    gigabytes = float(match.group(1)) * factor
    text = f"{gigabytes:.1f}" if gigabytes > 10 else f"{gigabytes:.2f}"
    text = text.rstrip("0").rstrip(".")
    return f"{text} GB"
