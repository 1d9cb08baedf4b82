"""
Paced Fetcher
HTML GET with bounded retries, classified failures and linear backoff
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional
import logging
import time

import requests


LOGGER = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
}


# Timeouts, resets (including mid-body) and DNS failures.
_TRANSPORT_ERRORS = (
    requests.Timeout,
    requests.ConnectionError,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
)


class FailureKind(Enum):
    """How a failed request should be treated"""
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True)
class RetryPolicy:
    """Total attempts per URL and the base waits for the backoff schedule"""
    max_attempts: int = 4
    base_delay: float = 2.0
    rate_limit_base_delay: float = 10.0


def classify_failure(exc: BaseException) -> FailureKind:
    """Timeouts, resets, DNS errors, 5xx and 429 are retryable; the rest is fatal"""
    if isinstance(exc, requests.HTTPError):
        status = getattr(exc.response, "status_code", None)
        if status == 429:
            return FailureKind.RATE_LIMITED
        if status is not None and status >= 500:
            return FailureKind.TRANSIENT
        return FailureKind.FATAL
    if isinstance(exc, _TRANSPORT_ERRORS):
        return FailureKind.TRANSIENT
    return FailureKind.FATAL


def backoff_delay(policy: RetryPolicy, retry_number: int, kind: FailureKind) -> float:
    """
    Seconds to wait before retry ``retry_number`` (1-based).

    The wait grows linearly with the retry number; a 429 uses the larger
    rate-limit base.
    """
    base = policy.rate_limit_base_delay if kind is FailureKind.RATE_LIMITED else policy.base_delay
    return max(0.0, float(base)) * max(1, int(retry_number))


class PacedFetcher:
    """Single-URL HTML fetcher shared by the listing and detail phases"""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        policy: Optional[RetryPolicy] = None,
        timeout_seconds: float = 45.0,
        headers: Optional[Dict[str, str]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.session = session or requests.Session()
        self.session.headers.update(headers or DEFAULT_HEADERS)
        self.policy = policy or RetryPolicy()
        self.timeout_seconds = max(1.0, float(timeout_seconds))
        self._sleep = sleep or time.sleep

    def _get(self, url: str) -> str:
        response = self.session.get(url, timeout=self.timeout_seconds, allow_redirects=True)
        if not 200 <= response.status_code < 400:
            raise requests.HTTPError(
                f"{response.status_code} response for url: {url}",
                response=response,
            )
        if "charset" not in (response.headers.get("Content-Type") or "").lower():
            response.encoding = response.apparent_encoding
        return response.text

    def fetch(self, url: str) -> str:
        """GET ``url`` and return its HTML, retrying transient failures"""
        total_attempts = max(1, int(self.policy.max_attempts))
        for attempt in range(1, total_attempts + 1):
            try:
                return self._get(url)
            except requests.RequestException as exc:
                kind = classify_failure(exc)
                remaining = total_attempts - attempt
                if kind is FailureKind.FATAL or remaining <= 0:
                    raise
                delay = backoff_delay(self.policy, attempt, kind)
                LOGGER.warning(
                    "Request failed for %s%s, retrying in %.1fs... (%d retries left): %s",
                    url,
                    " (Rate Limited)" if kind is FailureKind.RATE_LIMITED else "",
                    delay,
                    remaining,
                    exc,
                )
                if delay > 0:
                    self._sleep(delay)
        raise RuntimeError("HTTP request failed with unknown error")
