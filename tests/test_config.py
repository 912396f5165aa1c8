from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from second_order.config import Configuration, load_config
from second_order.errors import ConfigError

FULL_CONFIG = {
    "Headers": {"Cookie": "sid=1"},
    "Depth": 3,
    "LogCrawledURLs": True,
    "LogQueries": {"img": "src", "link[rel=stylesheet]": "href"},
    "LogURLRegex": ["^https?://"],
    "LogNon200Queries": {"a": "href"},
    "ExcludedURLRegex": ["logout"],
    "ExcludedStatusCodes": [403, 404],
    "LogInlineJS": True,
}


def test_load_full_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(FULL_CONFIG), encoding="utf-8")

    config = load_config(path)

    assert config.headers == {"Cookie": "sid=1"}
    assert config.depth == 3
    assert config.log_crawled_urls is True
    assert config.log_queries == {"img": "src", "link[rel=stylesheet]": "href"}
    assert [p.pattern for p in config.log_url_regex] == ["^https?://"]
    assert config.log_non200_queries == {"a": "href"}
    assert config.excluded_url_regex[0].search("https://x.test/logout")
    assert config.excluded_status_codes == frozenset({403, 404})
    assert config.log_inline_js is True


def test_missing_keys_default_to_empty():
    config = Configuration.from_dict({})
    assert config.headers == {}
    assert config.depth is None
    assert config.log_queries is None
    assert config.log_non200_queries is None
    assert config.log_url_regex == ()
    assert config.excluded_status_codes == frozenset()
    assert config.log_inline_js is False


def test_unknown_keys_are_ignored():
    config = Configuration.from_dict({"Something": 1, "LogInlineJS": True})
    assert config.log_inline_js is True


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="could not open"):
        load_config(tmp_path / "missing.json")


def test_malformed_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError, match="could not decode"):
        load_config(path)


@pytest.mark.parametrize(
    "raw",
    [
        [],
        {"Depth": -1},
        {"Depth": "2"},
        {"Depth": True},
        {"Headers": {"X": 1}},
        {"Headers": ["X"]},
        {"LogInlineJS": "yes"},
        {"ExcludedStatusCodes": ["404"]},
        {"ExcludedURLRegex": ["("]},
        {"LogURLRegex": "abc"},
        {"LogQueries": {"img[": "src"}},
    ],
)
def test_invalid_values(raw):
    with pytest.raises(ConfigError):
        Configuration.from_dict(raw)


def test_null_values_fall_back_to_empty():
    config = Configuration.from_dict({
        "Headers": None,
        "LogURLRegex": None,
        "ExcludedURLRegex": None,
        "ExcludedStatusCodes": None,
        "LogQueries": None,
    })
    assert config.headers == {}
    assert config.log_url_regex == ()
    assert config.excluded_url_regex == ()
    assert config.excluded_status_codes == frozenset()
    assert config.log_queries is None


def test_config_is_immutable():
    config = Configuration.from_dict({"LogInlineJS": True})
    with pytest.raises(ValidationError):
        config.log_inline_js = False


def test_invalid_regex_reports_config_error():
    with pytest.raises(ConfigError, match="invalid regex"):
        Configuration.from_dict({"LogURLRegex": ["ok", "("]})
