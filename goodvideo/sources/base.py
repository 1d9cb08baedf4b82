"""
Source SDK
Versioned base interface for listing/detail crawl sources.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ..models.detail_record import DetailRecord


class BaseSource(ABC):
    """
    Stable source contract: a ranked multi-page crawl plus a single detail lookup.
    """
    api_version = 1
    name = "UnnamedSource"
    last_error = ""

    @abstractmethod
    def get_records(self, options=None) -> List[DetailRecord]:
        """Crawl a page range and return ranked, filtered records."""
        raise NotImplementedError

    @abstractmethod
    def get_record_from_detail(self, detail_url: str) -> DetailRecord:
        """Fetch and parse one detail page, raising on failure."""
        raise NotImplementedError

    def reload_from_settings(self) -> None:
        """Optional hook called when source settings are reloaded."""
        return None

    def healthcheck(self) -> Dict[str, Any]:
        """Optional lightweight health payload for dashboards."""
        return {
            "name": self.name,
            "ok": not bool(self.last_error),
            "error": self.last_error,
            "api_version": self.api_version,
        }
