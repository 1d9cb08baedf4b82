"""
History Filter
In-memory "seen before" check for titles the caller has already curated
"""
from threading import RLock
from typing import Iterable, List, Set
import re

from ..models.detail_record import DetailRecord


_RESOURCE_ID = re.compile(r"\d{7}")


class SeenTitleIndex:
    """
    Titles the caller already stored, used to hide repeats before display.

    A title counts as seen on an exact match, or when any 7-digit run in it
    (the site's resource number) appears inside a known title.
    """

    def __init__(self, titles: Iterable[str] = ()):
        self._lock = RLock()
        self._titles: Set[str] = set()
        for title in titles:
            self.add(title)

    def add(self, title: str):
        if not title or not isinstance(title, str):
            return
        with self._lock:
            self._titles.add(title)

    def __len__(self) -> int:
        with self._lock:
            return len(self._titles)

    def is_seen(self, title: str) -> bool:
        if not title or not isinstance(title, str):
            return False
        with self._lock:
            if title in self._titles:
                return True
            for digits in _RESOURCE_ID.findall(title):
                if any(digits in known for known in self._titles):
                    return True
        return False

    def drop_seen(self, records: Iterable[DetailRecord]) -> List[DetailRecord]:
        return [r for r in records if not self.is_seen(r.title)]
