"""
Detail Record Model
Listing candidates and the enriched records built from their detail pages
"""
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Dict, Optional

from ..utils.normalizers import normalize_size


UNKNOWN_TITLE = "未知标题"
UNKNOWN_TIME = "未知"


@dataclass(frozen=True)
class ListingMeta:
    """Labeled note fields shared by listing and detail pages"""
    type: Optional[str] = None
    size: Optional[str] = None
    listed_time_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def merge_meta(listing: Optional[ListingMeta], detail: Optional[ListingMeta]) -> ListingMeta:
    """
    Merge listing meta with meta parsed from the detail page.

    Detail values win whenever they are present; a missing detail value keeps
    whatever the listing had.
    """
    base = listing or ListingMeta()
    if detail is None:
        return base
    overrides = {
        f.name: getattr(detail, f.name)
        for f in fields(detail)
        if getattr(detail, f.name) is not None
    }
    return replace(base, **overrides)


@dataclass(frozen=True)
class ListingItem:
    """One candidate entry from a search results page"""
    title: str
    detail_url: str
    meta: ListingMeta = field(default_factory=ListingMeta)
    page: Optional[int] = None


@dataclass
class DetailRecord:
    """Enriched record returned to callers"""
    title: str
    detail_url: str
    magnet: Optional[str] = None
    heat: Optional[int] = None
    recorded_at: Optional[datetime] = None
    meta: ListingMeta = field(default_factory=ListingMeta)
    page: Optional[int] = None

    @property
    def display_recorded_at(self) -> str:
        if self.recorded_at is None:
            return UNKNOWN_TIME
        return self.recorded_at.strftime("%Y-%m-%d %H:%M")

    @property
    def display_size(self) -> Optional[str]:
        if not self.meta.size:
            return None
        return normalize_size(self.meta.size) or self.meta.size

    def to_dict(self, order: Optional[int] = None) -> Dict[str, Any]:
        """JSON-friendly view used by front-ends and the CLI"""
        data = {
            "title": self.title,
            "detail_url": self.detail_url,
            "magnet": self.magnet,
            "heat": self.heat,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
            "display_recorded_at": self.display_recorded_at,
            "display_size": self.display_size,
            "meta": self.meta.to_dict(),
            "page": self.page,
        }
        if order is not None:
            data["order"] = order
        return data
