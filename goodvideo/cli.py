"""Command-line interface for the crawl engine."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

import requests

from .core.errors import ScraperError
from .core.settings_manager import SettingsManager
from .sources.cilifan import CilifanSource


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="goodvideo",
        description="Crawl the search index, enrich detail pages and rank by heat.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    crawl = sub.add_parser("crawl", help="Crawl a page range and print ranked records")
    crawl.add_argument("--heat", dest="heat_threshold", help="Heat threshold (strictly greater than)")
    crawl.add_argument("--from", dest="start_page", help="First listing page")
    crawl.add_argument("--to", dest="end_page", help="Last listing page")
    crawl.add_argument("--url", dest="search_url", help="Search URL to paginate")

    detail = sub.add_parser("detail", help="Fetch a single detail page")
    detail.add_argument("url", help="Detail page URL (absolute or site-relative)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    source = CilifanSource(SettingsManager())

    if args.command == "crawl":
        records = source.get_records({
            "heat_threshold": args.heat_threshold,
            "start_page": args.start_page,
            "end_page": args.end_page,
            "search_url": args.search_url,
        })
        payload = [record.to_dict(order=i + 1) for i, record in enumerate(records)]
    else:
        try:
            payload = source.get_record_from_detail(args.url).to_dict()
        except (ScraperError, requests.RequestException) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
