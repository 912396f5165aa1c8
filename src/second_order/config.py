"""
Configuration file loading and run-wide options.

The config file is JSON:

    {
      "Headers": {"Cookie": "..."},
      "Depth": 2,
      "LogCrawledURLs": false,
      "LogQueries": {"script": "src"},
      "LogURLRegex": ["\\.js$"],
      "LogNon200Queries": {"a": "href"},
      "ExcludedURLRegex": ["logout"],
      "ExcludedStatusCodes": [403],
      "LogInlineJS": true
    }

Missing keys fall back to empty/false. Unknown keys are ignored.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Pattern, Tuple

import soupsieve
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    conint,
    field_validator,
)

from second_order.errors import ConfigError
from second_order.transport import DEFAULT_TIMEOUT_S
from second_order.urls import compile_patterns

DEFAULT_DEPTH = 2
DEFAULT_WORKERS = 10

NonNegativeInt = conint(strict=True, ge=0)


@dataclass(frozen=True, slots=True)
class RunOptions:
    """Run-wide flags, passed explicitly to whatever needs them."""
    insecure: bool = False
    timeout: float = DEFAULT_TIMEOUT_S
    debug: bool = False
    workers: int = DEFAULT_WORKERS
    dedupe: bool = False


class Configuration(BaseModel):
    """Decoded config file. Regexes are compiled, selectors validated."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    headers: Dict[str, StrictStr] = Field(default_factory=dict, alias="Headers")
    depth: Optional[NonNegativeInt] = Field(None, alias="Depth")
    log_crawled_urls: StrictBool = Field(False, alias="LogCrawledURLs")
    log_queries: Optional[Dict[str, StrictStr]] = Field(None, alias="LogQueries")
    log_url_regex: Tuple[Pattern[str], ...] = Field((), alias="LogURLRegex")
    log_non200_queries: Optional[Dict[str, StrictStr]] = Field(None, alias="LogNon200Queries")
    excluded_url_regex: Tuple[Pattern[str], ...] = Field((), alias="ExcludedURLRegex")
    excluded_status_codes: FrozenSet[NonNegativeInt] = Field(frozenset(), alias="ExcludedStatusCodes")
    log_inline_js: StrictBool = Field(False, alias="LogInlineJS")

    @field_validator("headers", mode="before")
    @classmethod
    def _null_headers(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("excluded_status_codes", mode="before")
    @classmethod
    def _null_codes(cls, value: Any) -> Any:
        return () if value is None else value

    @field_validator("log_url_regex", "excluded_url_regex", mode="before")
    @classmethod
    def _compile_regexes(cls, value: Any) -> Any:
        if value is None:
            return ()
        if not isinstance(value, (list, tuple)):
            return value
        # non-string entries are left for type validation to reject
        try:
            return tuple(compile_patterns([v])[0] if isinstance(v, str) else v for v in value)
        except re.error as e:
            raise ValueError(f"invalid regex: {e}") from e

    @field_validator("log_queries", "log_non200_queries")
    @classmethod
    def _check_selectors(cls, value: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        for selector in value or {}:
            try:
                soupsieve.compile(selector)
            except soupsieve.SelectorSyntaxError as e:
                raise ValueError(f"invalid selector {selector!r}: {e}") from e
        return value

    @classmethod
    def from_dict(cls, raw: Any) -> "Configuration":
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"invalid configuration: {e}") from e


def load_config(path: Path) -> Configuration:
    """Read and decode a configuration file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"could not open configuration file: {e}") from e
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"could not decode configuration file: {e}") from e
    return Configuration.from_dict(raw)
