"""
Search Context Model
Paginated search URL template and page range for one crawl
"""
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin, urlparse
import math
import re


BASE_URL = "https://www.cilifan.mom"
DEFAULT_SEARCH_PATH = "/search/666332_1_id.html"
DEFAULT_SEARCH_URL = urljoin(BASE_URL, DEFAULT_SEARCH_PATH)

DEFAULT_START_PAGE = 1
DEFAULT_END_PAGE = 1

PAGE_PLACEHOLDER = "{page}"
_PAGE_SUFFIX = re.compile(r"_(\d+)_id\.html$")


def _coerce_page(value, fallback: int) -> int:
    if isinstance(value, bool):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return int(number)


@dataclass(frozen=True)
class PageRange:
    """Inclusive listing page range, always 1 <= start <= end"""
    start: int
    end: int

    @classmethod
    def normalize(cls, start_page=DEFAULT_START_PAGE, end_page=DEFAULT_END_PAGE) -> "PageRange":
        start = max(1, _coerce_page(start_page, DEFAULT_START_PAGE))
        end = max(start, _coerce_page(end_page, DEFAULT_END_PAGE))
        return cls(start=start, end=end)

    def pages(self) -> range:
        return range(self.start, self.end + 1)

    def __len__(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class SearchContext:
    """Reusable URL pieces for walking a paginated search endpoint"""
    base_url: str
    first_page_path: str
    page_template_path: Optional[str] = None

    @staticmethod
    def _parse(raw_url):
        if not isinstance(raw_url, str) or not raw_url.strip():
            return None
        try:
            parsed = urlparse(raw_url.strip())
        except ValueError:
            return None
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return None
        return parsed

    @classmethod
    def from_url(cls, raw_url=None, default_url: str = DEFAULT_SEARCH_URL) -> "SearchContext":
        """
        Build a context from a search URL

        Invalid or missing input falls back to ``default_url``. A path ending
        in ``_<digits>_id.html`` yields a page template; any other path means
        every page resolves to the first page.
        """
        parsed = cls._parse(raw_url) or cls._parse(default_url) or urlparse(DEFAULT_SEARCH_URL)
        path = parsed.path or "/"
        first_page_path = f"{path}?{parsed.query}" if parsed.query else path
        template = None
        if _PAGE_SUFFIX.search(path):
            template = _PAGE_SUFFIX.sub(f"_{PAGE_PLACEHOLDER}_id.html", path)
        return cls(
            base_url=f"{parsed.scheme}://{parsed.netloc}",
            first_page_path=first_page_path,
            page_template_path=template,
        )

    def page_url(self, page: int) -> str:
        """Absolute URL of a listing page; page 1 is always the URL the context was built from"""
        safe_page = _coerce_page(page, DEFAULT_START_PAGE)
        if safe_page < 1:
            safe_page = DEFAULT_START_PAGE
        if safe_page == 1 or not self.page_template_path:
            return urljoin(self.base_url, self.first_page_path)
        path = self.page_template_path.replace(PAGE_PLACEHOLDER, str(safe_page))
        return urljoin(self.base_url, path)
