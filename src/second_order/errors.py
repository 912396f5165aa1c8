"""
Error taxonomy for the crawler.

Per-job errors (TransportFailure, ParseFailure, RateLimited) fail a single
job; MalformedURL drops a single link. Only ConfigError stops the run.
"""
from __future__ import annotations


class SecondOrderError(Exception):
    """Base class for all crawler errors."""


class MalformedURL(SecondOrderError, ValueError):
    """A URL could not be parsed."""


class TransportFailure(SecondOrderError):
    """Network-level fetch error (connect, timeout, TLS)."""


class ParseFailure(SecondOrderError):
    """Response body could not be parsed as HTML."""


class RateLimited(SecondOrderError):
    """Server answered with HTTP 429."""


class ConfigError(SecondOrderError):
    """Configuration file or target URL is unusable."""


class PersistenceError(SecondOrderError):
    """A result file could not be written."""
