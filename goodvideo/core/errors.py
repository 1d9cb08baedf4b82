"""
Scraper Errors
User-facing failures of the single detail lookup
"""


class ScraperError(Exception):
    """Base class for errors raised to callers of the crawl engine"""


class InvalidDetailUrlError(ScraperError, ValueError):
    """The supplied detail URL is empty or cannot be resolved"""


class DetailNotFoundError(ScraperError, LookupError):
    """The detail page was fetched but no usable record could be parsed"""
