"""
Crawl Options Model
Caller-facing knobs for one crawl, with lenient coercion of raw values
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional
import math

from .search_context import DEFAULT_END_PAGE, DEFAULT_SEARCH_URL, DEFAULT_START_PAGE, PageRange


DEFAULT_HEAT_THRESHOLD = 50

# Query-string style names accepted alongside the field names.
_ALIASES = {
    "heat": "heat_threshold",
    "page_from": "start_page",
    "pageFrom": "start_page",
    "page_to": "end_page",
    "pageTo": "end_page",
    "url": "search_url",
}


def parse_positive_number(value: Any, fallback: float) -> float:
    if isinstance(value, bool):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number) or number <= 0:
        return fallback
    return int(number) if number.is_integer() else number


def parse_positive_integer(value: Any, fallback: int) -> int:
    number = parse_positive_number(value, fallback)
    truncated = int(number)
    return truncated if truncated > 0 else fallback


@dataclass(frozen=True)
class CrawlOptions:
    heat_threshold: float = DEFAULT_HEAT_THRESHOLD
    start_page: int = DEFAULT_START_PAGE
    end_page: int = DEFAULT_END_PAGE
    search_url: str = DEFAULT_SEARCH_URL

    @classmethod
    def from_mapping(
        cls,
        values: Optional[Mapping[str, Any]] = None,
        defaults: Optional["CrawlOptions"] = None,
    ) -> "CrawlOptions":
        """
        Build options from loosely typed input such as query parameters.

        Non-numeric or non-positive numbers fall back to ``defaults``; floats
        are truncated for page numbers.
        """
        base = defaults or cls()
        raw = {}
        for key, value in dict(values or {}).items():
            if value is None:
                continue
            raw[_ALIASES.get(key, key)] = value

        search_url = raw.get("search_url")
        if not isinstance(search_url, str) or not search_url.strip():
            search_url = base.search_url

        return cls(
            heat_threshold=parse_positive_number(raw.get("heat_threshold"), base.heat_threshold),
            start_page=parse_positive_integer(raw.get("start_page"), base.start_page),
            end_page=parse_positive_integer(raw.get("end_page"), base.end_page),
            search_url=search_url.strip(),
        )

    @property
    def page_range(self) -> PageRange:
        return PageRange.normalize(self.start_page, self.end_page)
