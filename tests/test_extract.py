from __future__ import annotations

import re

from second_order.extract import (
    extract_attribute,
    extract_inline_scripts,
    filter_by_patterns,
    is_html_content_type,
    parse_document,
)

PAGE = b"""
<html>
  <head>
    <script src="/static/app.js"></script>
    <script>var token = "abc";</script>
    <link rel="stylesheet preload" href="/style.css">
  </head>
  <body>
    <img src="/a.png"><img alt="no source"><img src="https://cdn.test/b.png">
    <a href="/about">About</a>
    <a name="anchor-only">no href</a>
    <script type="text/javascript">
      console.log("inline");
    </script>
  </body>
</html>
"""


def test_extract_attribute_document_order():
    doc = parse_document(PAGE)
    assert extract_attribute(doc, "img", "src") == ["/a.png", "https://cdn.test/b.png"]


def test_extract_attribute_skips_missing():
    doc = parse_document(PAGE)
    assert extract_attribute(doc, "a", "href") == ["/about"]


def test_extract_attribute_css_selector_and_raw_values():
    doc = parse_document(PAGE)
    assert extract_attribute(doc, "link[rel~=stylesheet]", "href") == ["/style.css"]
    # multi-valued attributes come back as the raw string
    assert extract_attribute(doc, "link", "rel") == ["stylesheet preload"]


def test_extract_attribute_no_dedupe():
    doc = parse_document(b'<a href="/x">1</a><a href="/x">2</a>')
    assert extract_attribute(doc, "a", "href") == ["/x", "/x"]


def test_extract_inline_scripts():
    doc = parse_document(PAGE)
    scripts = extract_inline_scripts(doc)
    assert len(scripts) == 2
    assert scripts[0] == 'var token = "abc";'
    assert 'console.log("inline");' in scripts[1]


def test_extract_inline_scripts_none():
    doc = parse_document(b'<html><script src="x.js"></script></html>')
    assert extract_inline_scripts(doc) == []


def test_filter_by_patterns():
    values = ["/a.png", "https://cdn.test/b.png", "/c.js"]
    assert filter_by_patterns(values, [re.compile(r"^https?://")]) == ["https://cdn.test/b.png"]
    assert filter_by_patterns(values, [re.compile("png"), re.compile("js$")]) == values
    assert filter_by_patterns(values, []) == values


def test_is_html_content_type():
    assert is_html_content_type("text/html; charset=utf-8")
    assert is_html_content_type("application/xhtml+xml")
    assert is_html_content_type("")
    assert not is_html_content_type("image/png")
    assert not is_html_content_type("application/json")
