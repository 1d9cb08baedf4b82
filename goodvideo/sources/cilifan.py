"""
Cilifan Search Source
Paginated listing crawl with paced detail-page enrichment and heat ranking
"""
from dataclasses import asdict
from typing import Callable, List, Mapping, Optional, Union
from urllib.parse import urljoin, urlparse
import logging
import re
import time

import requests

from ..core.errors import DetailNotFoundError, InvalidDetailUrlError
from ..core.ranking import rank_records
from ..core.worker_pool import PacedWorkerPool
from ..models.crawl_options import DEFAULT_HEAT_THRESHOLD, CrawlOptions
from ..models.detail_record import UNKNOWN_TITLE, DetailRecord, ListingItem, ListingMeta, merge_meta
from ..models.search_context import BASE_URL, DEFAULT_SEARCH_URL, PageRange, SearchContext
from ..utils.html import HtmlDocument
from ..utils.normalizers import capture_text, extract_number, extract_recorded_at
from .base import BaseSource
from .fetcher import DEFAULT_HEADERS, PacedFetcher, RetryPolicy


LOGGER = logging.getLogger(__name__)

TYPE_PATTERN = re.compile(r"类型\s*[:：]\s*([^\s]+)")
SIZE_PATTERN = re.compile(r"大小\s*[:：]\s*([^\s]+)")
LISTED_TIME_PATTERN = re.compile(r"收录\s*[:：]\s*([^\s]+)")
HEAT_PATTERN = re.compile(r"热度\s*[:：]?\s*(\d+)")

OptionsLike = Union[CrawlOptions, Mapping, None]


def extract_meta(text: str) -> ListingMeta:
    """Parse the labeled type / size / recorded-at fields of a note blob"""
    return ListingMeta(
        type=capture_text(text, TYPE_PATTERN),
        size=capture_text(text, SIZE_PATTERN),
        listed_time_text=capture_text(text, LISTED_TIME_PATTERN),
    )


class CilifanSource(BaseSource):
    """Cilifan magnet index: listing pages, detail pages, ranked output"""

    name = "Cilifan"

    LISTING_ITEM_SELECTOR = ".item"
    LISTING_TITLE_SELECTOR = ".threadlist_subject a"
    LISTING_NOTE_SELECTOR = ".threadlist_note"
    DETAIL_BLOB_SELECTOR = ".link-detail"
    MAGNET_INPUT_SELECTOR = "#mag-link"
    SHARE_TEXT_SELECTOR = "#thread_share_text"
    TITLE_SELECTORS = (".box_line h1", "h1")

    def __init__(
        self,
        settings=None,
        session: Optional[requests.Session] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Initialize the source

        Args:
            settings: SettingsManager (or any object with ``get``); None uses defaults
            session: optional requests session, mainly for tests
            sleep: pacing/backoff sleep, ``time.sleep`` by default
        """
        self.settings = settings
        self.last_error = ""
        self._session = session or requests.Session()
        self._sleep = sleep or time.sleep
        self.reload_from_settings()

    def _setting(self, key: str, default):
        if self.settings is None:
            return default
        value = self.settings.get(key, default)
        return default if value is None else value

    def _build_crawl_limits(self) -> dict:
        """Bounded politeness/retry settings for one crawl"""
        return {
            "detail_concurrency": max(1, int(self._setting("detail_concurrency", 4) or 4)),
            "listing_page_delay_seconds": max(0.0, float(self._setting("listing_page_delay_seconds", 2.0))),
            "detail_pacing_seconds": max(0.0, float(self._setting("detail_pacing_seconds", 0.5))),
            "request_timeout_seconds": max(1.0, float(self._setting("request_timeout_seconds", 45.0) or 45.0)),
            "request_max_attempts": max(1, int(self._setting("request_max_attempts", 4) or 4)),
            "retry_delay_seconds": max(0.0, float(self._setting("retry_delay_seconds", 2.0))),
            "rate_limit_retry_delay_seconds": max(0.0, float(self._setting("rate_limit_retry_delay_seconds", 10.0))),
        }

    def reload_from_settings(self):
        self.limits = self._build_crawl_limits()
        headers = dict(DEFAULT_HEADERS)
        headers["User-Agent"] = str(self._setting("user_agent", headers["User-Agent"]))
        headers["Accept-Language"] = str(self._setting("accept_language", headers["Accept-Language"]))
        headers["Referer"] = BASE_URL
        self.fetcher = PacedFetcher(
            session=self._session,
            policy=RetryPolicy(
                max_attempts=self.limits["request_max_attempts"],
                base_delay=self.limits["retry_delay_seconds"],
                rate_limit_base_delay=self.limits["rate_limit_retry_delay_seconds"],
            ),
            timeout_seconds=self.limits["request_timeout_seconds"],
            headers=headers,
            sleep=self._sleep,
        )

    def default_options(self) -> CrawlOptions:
        return CrawlOptions.from_mapping({
            "heat_threshold": self._setting("heat_threshold", DEFAULT_HEAT_THRESHOLD),
            "start_page": self._setting("start_page", 1),
            "end_page": self._setting("end_page", 1),
            "search_url": self._setting("search_url", DEFAULT_SEARCH_URL),
        })

    def _resolve_options(self, options: OptionsLike) -> CrawlOptions:
        if isinstance(options, CrawlOptions):
            return options
        return CrawlOptions.from_mapping(options, defaults=self.default_options())

    def get_records(self, options: OptionsLike = None) -> List[DetailRecord]:
        """
        Crawl the configured page range and return ranked records

        Listing pages are fetched one at a time; every candidate is then
        enriched through a paced worker pool, and the results are filtered by
        heat and sorted newest first.
        """
        self.last_error = ""
        opts = self._resolve_options(options)
        context = SearchContext.from_url(opts.search_url)
        page_range = opts.page_range

        listing_items = self._collect_listing_items(context, page_range)
        pool = PacedWorkerPool(
            width=self.limits["detail_concurrency"],
            pacing_seconds=self.limits["detail_pacing_seconds"],
            sleep=self._sleep,
        )
        with pool:
            hydrated = pool.map(self.enrich_with_detail, listing_items)

        LOGGER.info(
            "Crawled pages %d-%d: %d candidates, %d enriched",
            page_range.start,
            page_range.end,
            len(listing_items),
            len(hydrated),
        )
        return rank_records(hydrated, opts.heat_threshold)

    def _collect_listing_items(self, context: SearchContext, page_range: PageRange) -> List[ListingItem]:
        items: List[ListingItem] = []
        delay = self.limits["listing_page_delay_seconds"]
        errors = []
        for page in page_range.pages():
            page_url = context.page_url(page)
            try:
                html = self.fetcher.fetch(page_url)
                items.extend(self.parse_listing_page(html, page, base_url=context.base_url))
                # The last page still rests a little before the detail burst.
                pause = delay if page < page_range.end else delay / 2
                if pause > 0:
                    self._sleep(pause)
            except Exception as e:
                errors.append(f"page {page}: {e}")
                LOGGER.error("Failed to fetch listing page %d after retries: %s", page, e)
                continue
        if errors:
            self.last_error = "Listing errors: " + " | ".join(errors[:3])
        return items

    def parse_listing_page(self, html, page: int, base_url: str = BASE_URL) -> List[ListingItem]:
        """Parse one search results page into listing candidates, in document order"""
        doc = HtmlDocument.parse(html)
        items = []
        for element in doc.find(self.LISTING_ITEM_SELECTOR):
            item = self._parse_listing_item(doc.scoped(element), page, base_url)
            if item is not None:
                items.append(item)
        return items

    def _parse_listing_item(self, entry: HtmlDocument, page: int, base_url: str) -> Optional[ListingItem]:
        anchor = entry.first(self.LISTING_TITLE_SELECTOR)
        if anchor is None:
            return None
        href = (entry.attribute(anchor, "href") or "").strip()
        if not href:
            return None
        return ListingItem(
            title=entry.text(anchor),
            detail_url=urljoin(base_url, href),
            meta=extract_meta(entry.select_text(self.LISTING_NOTE_SELECTOR)),
            page=page,
        )

    def _page_title(self, doc: HtmlDocument) -> str:
        for selector in self.TITLE_SELECTORS:
            text = doc.text(doc.first(selector))
            if text:
                return text
        return ""

    def _magnet(self, doc: HtmlDocument) -> Optional[str]:
        value = (doc.attribute(doc.first(self.MAGNET_INPUT_SELECTOR), "value") or "").strip()
        if value:
            return value
        return doc.text(doc.first(self.SHARE_TEXT_SELECTOR)) or None

    def build_detail_record(self, doc: HtmlDocument, detail_url: str, item: Optional[ListingItem] = None) -> DetailRecord:
        """Combine a parsed detail page with its listing candidate (if any)"""
        detail_text = doc.select_text(self.DETAIL_BLOB_SELECTOR)
        magnet = self._magnet(doc)
        listing_title = item.title if item is not None else ""
        title = listing_title or self._page_title(doc) or detail_url or magnet or UNKNOWN_TITLE
        return DetailRecord(
            title=title,
            detail_url=detail_url,
            magnet=magnet,
            heat=extract_number(detail_text, HEAT_PATTERN),
            recorded_at=extract_recorded_at(detail_text),
            meta=merge_meta(item.meta if item is not None else None, extract_meta(detail_text)),
            page=item.page if item is not None else None,
        )

    def enrich_with_detail(self, item: ListingItem) -> Optional[DetailRecord]:
        """Fetch and parse a candidate's detail page; failures yield None"""
        try:
            html = self.fetcher.fetch(item.detail_url)
            return self.build_detail_record(HtmlDocument.parse(html), item.detail_url, item)
        except Exception as e:
            LOGGER.error("Failed to hydrate %s: %s", item.detail_url, e)
            return None

    @staticmethod
    def normalize_detail_url(value) -> str:
        """Absolute http(s) URL for a caller-supplied detail link"""
        if not isinstance(value, str):
            raise InvalidDetailUrlError("Please provide a valid detail page URL")
        trimmed = value.strip()
        if not trimmed:
            raise InvalidDetailUrlError("Detail page URL must not be empty")
        if re.search(r"\s", trimmed):
            raise InvalidDetailUrlError(f"Malformed detail page URL: {trimmed!r}")

        try:
            parsed = urlparse(trimmed)
            if not parsed.scheme:
                parsed = urlparse(urljoin(BASE_URL, trimmed))
        except ValueError as e:
            raise InvalidDetailUrlError(f"Malformed detail page URL: {trimmed!r}") from e
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidDetailUrlError(f"Malformed detail page URL: {trimmed!r}")
        return parsed.geturl()

    def get_record_from_detail(self, detail_url: str) -> DetailRecord:
        """
        Fetch one detail page directly, bypassing the listing phase

        Raises:
            InvalidDetailUrlError: the URL is empty or malformed
            requests.RequestException: the fetch failed after retries
            DetailNotFoundError: the page has neither a title nor a magnet link
        """
        normalized = self.normalize_detail_url(detail_url)
        html = self.fetcher.fetch(normalized)
        doc = HtmlDocument.parse(html)
        if not self._page_title(doc) and not self._magnet(doc):
            raise DetailNotFoundError(f"Could not parse detail page {normalized}; check the address")
        return self.build_detail_record(doc, normalized)


def get_records(options: OptionsLike = None, **overrides) -> List[DetailRecord]:
    """Crawl with a default-configured source"""
    if overrides:
        values = asdict(options) if isinstance(options, CrawlOptions) else dict(options or {})
        values.update(overrides)
        options = values
    return CilifanSource().get_records(options)


def get_record_from_detail(detail_url: str) -> DetailRecord:
    return CilifanSource().get_record_from_detail(detail_url)
