"""
Concurrency-safe finding sets and JSON result persistence.
"""
from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Dict, List, Sequence

from second_order.errors import PersistenceError

QUERIES = "queries"
BROKEN_LINKS = "broken_links"
INLINE_SCRIPTS = "inline_scripts"
CRAWLED = "crawled"

# Finding set -> output filename
RESULT_FILES: Dict[str, str] = {
    QUERIES: "logged-queries.json",
    INLINE_SCRIPTS: "inline-scripts.json",
    BROKEN_LINKS: "logged-non-200-queries.json",
    CRAWLED: "crawled-urls.json",
}


class Findings:
    """A page URL -> values mapping guarded by its own lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._content: Dict[str, List[str]] = {}

    def record(self, page_url: str, values: Sequence[str]) -> None:
        """Insert or overwrite the entry for page_url. Empty values are ignored."""
        if not values:
            return
        values = list(values)
        with self._lock:
            self._content[page_url] = values

    def snapshot(self) -> Dict[str, List[str]]:
        with self._lock:
            return {url: list(values) for url, values in self._content.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._content)

    def __contains__(self, page_url: object) -> bool:
        with self._lock:
            return page_url in self._content


class ResultAggregator:
    """Owns the finding sets of one crawl run."""

    def __init__(self) -> None:
        self.sets: Dict[str, Findings] = {name: Findings() for name in RESULT_FILES}

    def record(self, kind: str, page_url: str, values: Sequence[str]) -> None:
        try:
            findings = self.sets[kind]
        except KeyError:
            raise ValueError(f"unknown finding set: {kind}") from None
        findings.record(page_url, values)

    def __getitem__(self, kind: str) -> Findings:
        return self.sets[kind]

    @property
    def queries(self) -> Findings:
        return self.sets[QUERIES]

    @property
    def broken_links(self) -> Findings:
        return self.sets[BROKEN_LINKS]

    @property
    def inline_scripts(self) -> Findings:
        return self.sets[INLINE_SCRIPTS]

    @property
    def crawled(self) -> Findings:
        return self.sets[CRAWLED]


def write_results(
    out_dir: Path,
    filename: str,
    content: Dict[str, List[str]],
    pretty: bool = False,
) -> Path:
    """Write a finding set as JSON to out_dir/filename."""
    path = Path(out_dir) / filename
    json_text = json.dumps(content, ensure_ascii=False, indent=2 if pretty else None)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json_text, encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"could not write {path}: {e}") from e
    return path
