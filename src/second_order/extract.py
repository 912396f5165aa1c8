"""
HTML parsing and attribute extraction.
"""
from __future__ import annotations

from typing import Iterable, List, Pattern

from bs4 import BeautifulSoup, ParserRejectedMarkup

from second_order.errors import ParseFailure

# Link discovery selector and attribute
LINK_SELECTOR = "a"
LINK_ATTRIBUTE = "href"

HTML_CONTENT_TYPES: frozenset[str] = frozenset(("text/html", "application/xhtml+xml"))


def is_html_content_type(content_type: str) -> bool:
    """True for HTML content types, or when no content type is declared."""
    media_type = content_type.split(";", 1)[0].strip().lower()
    return not media_type or media_type in HTML_CONTENT_TYPES


def parse_document(body: bytes) -> BeautifulSoup:
    """
    Parse a response body into a document tree.

    Multi-valued attributes (class, rel, ...) are kept as the raw string so
    every extracted value is exactly what appears in the markup.
    """
    try:
        return BeautifulSoup(body, "lxml", multi_valued_attributes=None)
    except ParserRejectedMarkup as e:
        raise ParseFailure(str(e)) from e


def extract_attribute(document: BeautifulSoup, selector: str, attribute: str) -> List[str]:
    """Return the attribute value of every element matching selector, in document order."""
    return [el[attribute] for el in document.select(selector) if el.has_attr(attribute)]


def extract_inline_scripts(document: BeautifulSoup) -> List[str]:
    """Return the body of every <script> without a src attribute."""
    return [el.get_text() for el in document.find_all("script") if not el.has_attr("src")]


def filter_by_patterns(values: Iterable[str], patterns: Iterable[Pattern[str]]) -> List[str]:
    """Keep values matching at least one pattern; no patterns keeps everything."""
    patterns = tuple(patterns)
    if not patterns:
        return list(values)
    return [v for v in values if any(p.search(v) for p in patterns)]
