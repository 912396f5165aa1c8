"""
Core crawling logic: jobs, the frontier and the worker pool.
"""
from __future__ import annotations

import logging
import queue
import sys
import threading
from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Optional, Pattern, Set, TextIO, Tuple

import requests
from bs4 import BeautifulSoup

from second_order.audit import audit_link
from second_order.config import Configuration, DEFAULT_DEPTH, RunOptions
from second_order.errors import MalformedURL, ParseFailure, RateLimited, TransportFailure
from second_order.extract import (
    LINK_ATTRIBUTE,
    LINK_SELECTOR,
    extract_attribute,
    extract_inline_scripts,
    filter_by_patterns,
    is_html_content_type,
    parse_document,
)
from second_order.results import (
    BROKEN_LINKS,
    CRAWLED,
    INLINE_SCRIPTS,
    QUERIES,
    ResultAggregator,
)
from second_order.transport import HttpClient
from second_order.urls import Scope, is_excluded, resolve, scheme_allowed

logger = logging.getLogger(__name__)

HTTP_TOO_MANY_REQUESTS = 429


@dataclass(frozen=True, slots=True)
class Job:
    """One unit of crawl work: a URL plus everything needed to process it."""
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    remaining_depth: int = 1
    audit_specs: Dict[str, str] = field(default_factory=dict)
    audit_url_filters: Tuple[Pattern[str], ...] = ()
    broken_link_specs: Dict[str, str] = field(default_factory=dict)
    excluded_url_regex: Tuple[Pattern[str], ...] = ()
    excluded_status_codes: FrozenSet[int] = frozenset()
    capture_inline_scripts: bool = False
    log_crawled_urls: bool = False

    @classmethod
    def from_config(cls, url: str, config: Configuration, depth: Optional[int] = None) -> "Job":
        """
        Build the root job for a run.

        depth counts hops from the target, so the root job gets depth + 1:
        depth 0 audits only the target page.
        """
        if depth is None:
            depth = config.depth if config.depth is not None else DEFAULT_DEPTH
        return cls(
            url=url,
            headers=dict(config.headers),
            remaining_depth=depth + 1,
            audit_specs=dict(config.log_queries or {}),
            audit_url_filters=config.log_url_regex,
            broken_link_specs=dict(config.log_non200_queries or {}),
            excluded_url_regex=config.excluded_url_regex,
            excluded_status_codes=config.excluded_status_codes,
            capture_inline_scripts=config.log_inline_js,
            log_crawled_urls=config.log_crawled_urls,
        )

    def child(self, url: str) -> "Job":
        return replace(self, url=url, remaining_depth=self.remaining_depth - 1)


@dataclass(slots=True)
class CrawlStats:
    """Statistics collected during crawl for summary output."""
    pages_crawled: int = 0
    pages_failed: int = 0
    jobs_dispatched: int = 0
    links_probed: int = 0
    anomalies: int = 0
    error_counts: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_page(self, children: int) -> None:
        with self._lock:
            self.pages_crawled += 1
            self.jobs_dispatched += children

    def record_error(self, kind: str) -> None:
        """Record a failed job by error category."""
        with self._lock:
            self.pages_failed += 1
            self.error_counts[kind] += 1

    def record_probes(self, probed: int, anomalies: int) -> None:
        with self._lock:
            self.links_probed += probed
            self.anomalies += anomalies


class SeenSet:
    """Thread-safe set of URLs already queued."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._urls: Set[str] = set()

    def add(self, url: str) -> bool:
        """Add url; returns False if it was already present."""
        with self._lock:
            if url in self._urls:
                return False
            self._urls.add(url)
            return True


class Frontier:
    """
    Shared job queue.

    The queue's unfinished-task count is the outstanding-work counter:
    children are put before their parent is marked done, so join() only
    returns once no job is queued or in flight.
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[Optional[Job]]" = queue.Queue()

    def put(self, job: Job) -> None:
        self._queue.put(job)

    def get(self) -> Optional[Job]:
        """Block until a job (or a None shutdown sentinel) is available."""
        return self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    def join(self) -> None:
        self._queue.join()

    def close(self, workers: int) -> None:
        for _ in range(workers):
            self._queue.put(None)

    @property
    def outstanding(self) -> int:
        return self._queue.unfinished_tasks


class Crawler:
    """
    Depth-limited crawler confined to the target's registered domain.

    Each job goes fetch -> parse -> audit -> dispatch. Failures are logged
    and end the job without children; they never reach sibling jobs.
    """

    def __init__(
        self,
        scope: Scope,
        client: HttpClient,
        options: RunOptions = RunOptions(),
        results: Optional[ResultAggregator] = None,
        stats: Optional[CrawlStats] = None,
        out: Optional[TextIO] = None,
    ) -> None:
        self.scope = scope
        self.client = client
        self.options = options
        self.results = results if results is not None else ResultAggregator()
        self.stats = stats if stats is not None else CrawlStats()
        self.out = out if out is not None else sys.stdout
        self.seen: Optional[SeenSet] = SeenSet() if options.dedupe else None
        self._out_lock = threading.Lock()

    def run(self, root: Job) -> ResultAggregator:
        """Process root and everything reachable from it, then return the results."""
        frontier = Frontier()
        if self.seen is not None:
            self.seen.add(root.url)
        frontier.put(root)

        workers = [
            threading.Thread(target=self._worker, args=(frontier,), name=f"crawler-{i}", daemon=True)
            for i in range(max(1, self.options.workers))
        ]
        for worker in workers:
            worker.start()

        frontier.join()
        frontier.close(len(workers))
        for worker in workers:
            worker.join()

        logger.info(
            "crawl finished: %d pages crawled, %d failed",
            self.stats.pages_crawled,
            self.stats.pages_failed,
        )
        return self.results

    def _worker(self, frontier: Frontier) -> None:
        while True:
            job = frontier.get()
            if job is None:
                frontier.task_done()
                return
            try:
                for child in self.process(job):
                    frontier.put(child)
            except Exception:
                logger.exception("unexpected error while crawling %s", job.url)
            finally:
                frontier.task_done()

    def process(self, job: Job) -> List[Job]:
        """Run a single job and return the child jobs it spawns."""
        try:
            document = self._fetch(job)
        except TransportFailure as e:
            logger.warning("could not request %s: %s", job.url, e)
            self.stats.record_error("transport")
            return []
        except RateLimited:
            logger.warning("rate limited while requesting %s", job.url)
            self.stats.record_error("rate_limited")
            return []
        except ParseFailure as e:
            logger.warning("could not parse page %s: %s", job.url, e)
            self.stats.record_error("parse")
            return []

        self._audit(job, document)
        links = self._in_scope_links(job, document)

        if self.options.debug:
            self._emit(job.url)

        if job.log_crawled_urls:
            self.results.record(CRAWLED, job.url, links)

        children: List[Job] = []
        if job.remaining_depth > 1:
            for url in links:
                if self.seen is not None and not self.seen.add(url):
                    continue
                children.append(job.child(url))

        self.stats.record_page(len(children))
        return children

    def _fetch(self, job: Job) -> BeautifulSoup:
        try:
            response = self.client.get(job.url, job.headers)
        except requests.RequestException as e:
            raise TransportFailure(str(e)) from e

        with response:
            if response.status_code == HTTP_TOO_MANY_REQUESTS:
                raise RateLimited(job.url)

            content_type = response.headers.get("content-type") or ""
            if not is_html_content_type(content_type):
                raise ParseFailure(f"not an HTML document ({content_type})")

            try:
                body = response.content
            except requests.RequestException as e:
                raise TransportFailure(str(e)) from e

        return parse_document(body)

    def _audit(self, job: Job, document: BeautifulSoup) -> None:
        if job.audit_specs:
            found: List[str] = []
            for selector, attribute in job.audit_specs.items():
                values = extract_attribute(document, selector, attribute)
                found.extend(filter_by_patterns(values, job.audit_url_filters))
            self.results.record(QUERIES, job.url, found)

        if job.capture_inline_scripts:
            self.results.record(INLINE_SCRIPTS, job.url, extract_inline_scripts(document))

        if job.broken_link_specs:
            anomalies: List[str] = []
            probed = 0
            for selector, attribute in job.broken_link_specs.items():
                for link in extract_attribute(document, selector, attribute):
                    try:
                        absolute = resolve(link, job.url)
                    except MalformedURL as e:
                        logger.debug("skipping link on %s: %s", job.url, e)
                        continue
                    if is_excluded(absolute, job.excluded_url_regex) or not scheme_allowed(absolute):
                        continue
                    probed += 1
                    if audit_link(
                        self.client,
                        absolute,
                        job.headers,
                        job.excluded_status_codes,
                        job.excluded_url_regex,
                    ):
                        anomalies.append(absolute)
            self.stats.record_probes(probed, len(anomalies))
            self.results.record(BROKEN_LINKS, job.url, anomalies)

    def _in_scope_links(self, job: Job, document: BeautifulSoup) -> List[str]:
        """Resolve anchors and keep the crawlable, in-scope, non-excluded ones."""
        links: List[str] = []
        for href in extract_attribute(document, LINK_SELECTOR, LINK_ATTRIBUTE):
            try:
                absolute = resolve(href, job.url)
            except MalformedURL as e:
                logger.debug("skipping link on %s: %s", job.url, e)
                continue
            if not scheme_allowed(absolute):
                continue
            if is_excluded(absolute, job.excluded_url_regex):
                continue
            if not self.scope.contains(absolute):
                logger.debug("out of scope: %s (found on %s)", absolute, job.url)
                continue
            self._emit(absolute)
            links.append(absolute)
        return links

    def _emit(self, line: str) -> None:
        with self._out_lock:
            self.out.write(line + "\n")
            self.out.flush()


def crawl(
    target: str,
    config: Configuration,
    options: RunOptions = RunOptions(),
    depth: Optional[int] = None,
    client: Optional[HttpClient] = None,
    out: Optional[TextIO] = None,
) -> Tuple[ResultAggregator, CrawlStats]:
    """
    Crawl target with the given configuration.

    Args:
        target: Absolute http(s) URL to start from.
        config: Decoded configuration file.
        options: Run-wide flags (TLS, timeout, workers, debug, dedupe).
        depth: Hops to follow from target; defaults to config.depth, then 2.
        client: HTTP client to use; one is built from options if omitted.
        out: Stream for discovered links and debug output (stdout by default).

    Returns:
        Tuple of (finding sets, crawl statistics).
    """
    scope = Scope.from_target(target)
    owns_client = client is None
    if client is None:
        client = HttpClient(verify=not options.insecure, timeout=options.timeout)

    crawler = Crawler(scope, client, options=options, out=out)
    try:
        results = crawler.run(Job.from_config(target, config, depth))
    finally:
        if owns_client:
            client.close()
    return results, crawler.stats
