"""
HTML Document
Minimal query surface over BeautifulSoup used by the extractors
"""
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from .normalizers import clean_text


class HtmlDocument:
    """Wraps a parsed page (or a sub-tree of one) behind find/attribute/text."""

    def __init__(self, root):
        self.root = root

    @classmethod
    def parse(cls, html) -> "HtmlDocument":
        return cls(BeautifulSoup(html or "", "html.parser"))

    def find(self, selector: str) -> List[Tag]:
        return list(self.root.select(selector))

    def first(self, selector: str) -> Optional[Tag]:
        return self.root.select_one(selector)

    @staticmethod
    def attribute(element: Optional[Tag], name: str) -> Optional[str]:
        if element is None:
            return None
        value = element.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        return value

    @staticmethod
    def text(element: Optional[Tag]) -> str:
        """Whitespace-collapsed text of an element; empty string when missing"""
        if element is None:
            return ""
        return clean_text(element.get_text(" "))

    def select_text(self, selector: str) -> str:
        """Joined text of every element matching ``selector``"""
        return clean_text(" ".join(self.text(el) for el in self.find(selector)))

    def scoped(self, element: Tag) -> "HtmlDocument":
        return HtmlDocument(element)
