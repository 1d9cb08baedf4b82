import threading
import unittest
from datetime import datetime
from unittest.mock import patch

import requests

from goodvideo.core.errors import DetailNotFoundError, InvalidDetailUrlError
from goodvideo.models.crawl_options import CrawlOptions
from goodvideo.models.detail_record import ListingItem, ListingMeta
from goodvideo.sources.cilifan import CilifanSource


SEARCH_URL = "https://www.cilifan.mom/search/666332_1_id.html"
PAGE_2_URL = "https://www.cilifan.mom/search/666332_2_id.html"


def _listing_page(thread_id, title):
    return f"""
    <html><body>
      <div class="item">
        <div class="threadlist_subject"><a href="/thread/{thread_id}.html">  {title}
          </a></div>
        <div class="threadlist_note">类型：视频 大小：1.5GB 收录：2024-01-02</div>
      </div>
      <div class="item">
        <div class="threadlist_note">类型：视频 大小：9GB</div>
      </div>
    </body></html>
    """


def _detail_page(heat, recorded="2024-01-03 10:00", title="Detail Title", magnet="magnet:?xt=urn:btih:AAAA"):
    magnet_input = f'<input id="mag-link" value="{magnet}">' if magnet else ""
    heading = f'<div class="box_line"><h1>{title}</h1></div>' if title else ""
    return f"""
    <html><body>
      {heading}
      {magnet_input}
      <div class="link-detail">类型：合集 大小：2.1GB 热度：{heat} 收录：{recorded}</div>
    </body></html>
    """


class _Response:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text
        self.headers = {"Content-Type": "text/html; charset=utf-8"}
        self.encoding = "utf-8"
        self.apparent_encoding = "utf-8"


class _Settings:
    def __init__(self, **overrides):
        self.data = {
            "listing_page_delay_seconds": 2.0,
            "detail_pacing_seconds": 0.5,
            "retry_delay_seconds": 0.0,
            "rate_limit_retry_delay_seconds": 0.0,
            "request_max_attempts": 2,
            "detail_concurrency": 2,
        }
        self.data.update(overrides)

    def get(self, key, default=None):
        return self.data.get(key, default)


class _SleepRecorder:
    def __init__(self):
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, seconds):
        with self._lock:
            self.calls.append(seconds)


def _routes(mapping):
    def _get(url, **kwargs):
        target = mapping.get(url)
        if target is None:
            return _Response(404, "not found")
        if isinstance(target, Exception):
            raise target
        return target
    return _get


class TestListingExtraction(unittest.TestCase):
    def test_titleless_entries_are_skipped(self):
        src = CilifanSource(_Settings())
        items = src.parse_listing_page(_listing_page(1001, "Movie   One"), page=3)
        self.assertEqual(len(items), 1)
        item = items[0]
        self.assertEqual(item.title, "Movie One")
        self.assertEqual(item.detail_url, "https://www.cilifan.mom/thread/1001.html")
        self.assertEqual(item.page, 3)
        self.assertEqual(item.meta, ListingMeta(type="视频", size="1.5GB", listed_time_text="2024-01-02"))

    def test_empty_href_is_skipped(self):
        src = CilifanSource(_Settings())
        html = '<div class="item"><div class="threadlist_subject"><a href="">x</a></div></div>'
        self.assertEqual(src.parse_listing_page(html, page=1), [])

    def test_relative_links_resolve_against_search_host(self):
        src = CilifanSource(_Settings())
        items = src.parse_listing_page(_listing_page(7, "t"), page=1, base_url="https://mirror.test")
        self.assertEqual(items[0].detail_url, "https://mirror.test/thread/7.html")


class TestDetailExtraction(unittest.TestCase):
    def setUp(self):
        self.src = CilifanSource(_Settings(), sleep=_SleepRecorder())
        self.item = ListingItem(
            title="Listing Title",
            detail_url="https://www.cilifan.mom/thread/1001.html",
            meta=ListingMeta(type="视频", size="1.5GB", listed_time_text="2024-01-02"),
            page=1,
        )

    def test_enrich_merges_listing_and_detail(self):
        with patch.object(self.src.fetcher.session, "get", return_value=_Response(text=_detail_page(88))):
            record = self.src.enrich_with_detail(self.item)
        self.assertEqual(record.title, "Listing Title")
        self.assertEqual(record.magnet, "magnet:?xt=urn:btih:AAAA")
        self.assertEqual(record.heat, 88)
        self.assertEqual(record.recorded_at, datetime(2024, 1, 3, 10, 0))
        self.assertEqual(record.meta, ListingMeta(type="合集", size="2.1GB", listed_time_text="2024-01-03"))
        self.assertEqual(record.page, 1)

    def test_page_title_used_when_listing_title_missing(self):
        item = ListingItem(title="", detail_url=self.item.detail_url)
        with patch.object(self.src.fetcher.session, "get", return_value=_Response(text=_detail_page(60))):
            record = self.src.enrich_with_detail(item)
        self.assertEqual(record.title, "Detail Title")

    def test_magnet_falls_back_to_share_text(self):
        html = _detail_page(60, magnet=None) + '<div id="thread_share_text"> magnet:?xt=urn:btih:BBBB </div>'
        with patch.object(self.src.fetcher.session, "get", return_value=_Response(text=html)):
            record = self.src.enrich_with_detail(self.item)
        self.assertEqual(record.magnet, "magnet:?xt=urn:btih:BBBB")

    def test_fetch_failure_yields_none(self):
        with patch.object(self.src.fetcher.session, "get", return_value=_Response(404)):
            with self.assertLogs("goodvideo.sources.cilifan", level="ERROR"):
                self.assertIsNone(self.src.enrich_with_detail(self.item))


class TestGetRecords(unittest.TestCase):
    def test_two_pages_with_titleless_entries(self):
        sleep = _SleepRecorder()
        src = CilifanSource(_Settings(), sleep=sleep)
        routes = _routes({
            SEARCH_URL: _Response(text=_listing_page(1001, "First")),
            PAGE_2_URL: _Response(text=_listing_page(2002, "Second")),
            "https://www.cilifan.mom/thread/1001.html": _Response(text=_detail_page(88)),
            "https://www.cilifan.mom/thread/2002.html": requests.ConnectionError("reset"),
        })
        with patch.object(src.fetcher.session, "get", side_effect=routes):
            records = src.get_records({"start_page": 1, "end_page": 2, "search_url": SEARCH_URL})

        self.assertLessEqual(len(records), 2)
        self.assertEqual([r.title for r in records], ["First"])
        self.assertEqual(sleep.calls[:2], [2.0, 1.0])
        self.assertEqual(sleep.calls.count(0.5), 2)

    def test_results_filtered_and_sorted(self):
        src = CilifanSource(_Settings(listing_page_delay_seconds=0, detail_pacing_seconds=0))
        listing = "".join(
            f'<div class="item"><div class="threadlist_subject"><a href="/thread/{i}.html">T{i}</a></div></div>'
            for i in (1, 2, 3, 4)
        )
        routes = _routes({
            SEARCH_URL: _Response(text=listing),
            "https://www.cilifan.mom/thread/1.html": _Response(text=_detail_page(60, "2024-01-01 08:00")),
            "https://www.cilifan.mom/thread/2.html": _Response(text=_detail_page(80, "未知")),
            "https://www.cilifan.mom/thread/3.html": _Response(text=_detail_page(70, "2024-01-02 08:00")),
            "https://www.cilifan.mom/thread/4.html": _Response(text=_detail_page(50, "2024-01-05 08:00")),
        })
        with patch.object(src.fetcher.session, "get", side_effect=routes):
            records = src.get_records(CrawlOptions(heat_threshold=50, search_url=SEARCH_URL))
        self.assertEqual([r.title for r in records], ["T3", "T1", "T2"])

    def test_listing_page_failure_does_not_abort_range(self):
        src = CilifanSource(_Settings(listing_page_delay_seconds=0, detail_pacing_seconds=0))
        routes = _routes({
            PAGE_2_URL: _Response(text=_listing_page(2002, "Second")),
            "https://www.cilifan.mom/thread/2002.html": _Response(text=_detail_page(99)),
        })
        with patch.object(src.fetcher.session, "get", side_effect=routes):
            with self.assertLogs("goodvideo.sources.cilifan", level="ERROR"):
                records = src.get_records({"start_page": 1, "end_page": 2, "search_url": SEARCH_URL})
        self.assertEqual([r.title for r in records], ["Second"])
        self.assertIn("page 1", src.last_error)
        self.assertFalse(src.healthcheck()["ok"])

    def test_reversed_page_range_is_clamped(self):
        src = CilifanSource(_Settings(listing_page_delay_seconds=0, detail_pacing_seconds=0))
        requested = []

        def _get(url, **kwargs):
            requested.append(url)
            return _Response(text="<html></html>")

        with patch.object(src.fetcher.session, "get", side_effect=_get):
            self.assertEqual(src.get_records({"start_page": 2, "end_page": 1, "search_url": SEARCH_URL}), [])
        self.assertEqual(requested, [PAGE_2_URL])


class TestGetRecordFromDetail(unittest.TestCase):
    def setUp(self):
        self.src = CilifanSource(_Settings(), sleep=_SleepRecorder())

    def test_invalid_inputs(self):
        for value in ["not a url", "", "   ", None, "ftp://files.test/x", "http://", "http://[::1/x"]:
            with self.assertRaises(InvalidDetailUrlError):
                self.src.get_record_from_detail(value)

    def test_relative_path_resolves_against_site(self):
        with patch.object(self.src.fetcher.session, "get", return_value=_Response(text=_detail_page(75))) as mocked:
            record = self.src.get_record_from_detail("/thread/1001.html")
        self.assertEqual(mocked.call_args[0][0], "https://www.cilifan.mom/thread/1001.html")
        self.assertEqual(record.title, "Detail Title")
        self.assertEqual(record.heat, 75)
        self.assertIsNone(record.page)

    def test_unreachable_url_propagates(self):
        with patch.object(self.src.fetcher.session, "get", side_effect=requests.ConnectionError("dns")):
            with self.assertRaises(requests.ConnectionError):
                self.src.get_record_from_detail("https://unreachable.invalid/thread/1.html")

    def test_page_without_title_or_magnet_is_not_found(self):
        html = _detail_page(75, title="", magnet=None)
        with patch.object(self.src.fetcher.session, "get", return_value=_Response(text=html)):
            with self.assertRaises(DetailNotFoundError):
                self.src.get_record_from_detail("https://www.cilifan.mom/thread/1.html")


if __name__ == "__main__":
    unittest.main()
