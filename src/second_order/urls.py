"""
URL resolution and scope rules.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Pattern
from urllib.parse import urljoin, urlsplit

from second_order.errors import MalformedURL

ALLOWED_SCHEMES: frozenset[str] = frozenset(("http", "https"))


def _split(url: str):
    """Split a URL, raising MalformedURL on anything urllib rejects."""
    try:
        parts = urlsplit(url)
        # .port validates the port component lazily
        parts.port
    except ValueError as e:
        raise MalformedURL(f"could not parse URL {url!r}: {e}") from e
    return parts


def resolve(reference: str, base: str) -> str:
    """
    Resolve a reference against a base URL (RFC 3986).

    Absolute references are returned unchanged.
    """
    ref_parts = _split(reference)
    if ref_parts.scheme:
        return reference
    _split(base)
    try:
        joined = urljoin(base, reference)
    except ValueError as e:
        raise MalformedURL(f"could not resolve {reference!r} against {base!r}: {e}") from e
    _split(joined)
    return joined


def registered_domain(hostname: str) -> str:
    """
    Reduce a hostname to its last two labels.

    docs.example.com -> example.com. No public suffix list is consulted,
    so foo.co.uk and bar.co.uk both reduce to co.uk.
    """
    labels = [label for label in hostname.lower().rstrip(".").split(".") if label]
    return ".".join(labels[-2:])


def _hostname(url: str) -> Optional[str]:
    try:
        return _split(url).hostname
    except MalformedURL:
        return None


def same_origin(url_a: str, url_b: str) -> bool:
    """Check if both URLs share a registered domain (subdomains ignored)."""
    host_a = _hostname(url_a)
    host_b = _hostname(url_b)
    if not host_a or not host_b:
        return False
    return registered_domain(host_a) == registered_domain(host_b)


def is_excluded(url: str, patterns: Iterable[Pattern[str]]) -> bool:
    """Check if any pattern matches somewhere in the URL."""
    return any(p.search(url) for p in patterns)


def scheme_allowed(url: str) -> bool:
    """Only absolute http(s) URLs are crawlable."""
    try:
        parts = _split(url)
    except MalformedURL:
        return False
    return parts.scheme.lower() in ALLOWED_SCHEMES and bool(parts.netloc)


def compile_patterns(patterns: Iterable[str]) -> tuple[Pattern[str], ...]:
    """Compile regex strings; re.error propagates to the caller."""
    return tuple(re.compile(p) for p in patterns)


@dataclass(frozen=True, slots=True)
class Scope:
    """The logical origin a crawl is confined to."""
    target: str
    domain: str

    @classmethod
    def from_target(cls, target: str) -> "Scope":
        if not scheme_allowed(target):
            raise MalformedURL(f"target must be an absolute http(s) URL: {target!r}")
        hostname = _hostname(target)
        if not hostname:
            raise MalformedURL(f"target has no hostname: {target!r}")
        return cls(target=target, domain=registered_domain(hostname))

    def contains(self, url: str) -> bool:
        return same_origin(self.target, url)
