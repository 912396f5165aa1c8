"""
Command-line interface for the crawler.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from second_order.config import Configuration, DEFAULT_WORKERS, RunOptions, load_config
from second_order.core import CrawlStats, crawl
from second_order.errors import ConfigError, MalformedURL, PersistenceError
from second_order.results import (
    BROKEN_LINKS,
    CRAWLED,
    INLINE_SCRIPTS,
    QUERIES,
    RESULT_FILES,
    ResultAggregator,
    write_results,
)
from second_order.transport import DEFAULT_TIMEOUT_S
from second_order.urls import Scope

logger = logging.getLogger("second_order")


def print_summary(stats: CrawlStats) -> None:
    """Print crawl summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("CRAWL SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"Total pages crawled:    {stats.pages_crawled}\n")
    sys.stderr.write(f"Jobs dispatched:        {stats.jobs_dispatched}\n")
    sys.stderr.write(f"Links probed:           {stats.links_probed}\n")
    sys.stderr.write(f"Non-200 links:          {stats.anomalies}\n\n")

    if stats.error_counts:
        sys.stderr.write("Failed pages by type:\n")
        for error_type, count in sorted(stats.error_counts.items()):
            sys.stderr.write(f"  {error_type}: {count}\n")
    else:
        sys.stderr.write("No errors encountered.\n")

    sys.stderr.write("\n")


def enabled_result_sets(config: Configuration) -> list[str]:
    """Finding sets to persist; unconfigured sets are skipped entirely."""
    enabled = []
    if config.log_queries is not None:
        enabled.append(QUERIES)
    if config.log_inline_js:
        enabled.append(INLINE_SCRIPTS)
    if config.log_non200_queries is not None:
        enabled.append(BROKEN_LINKS)
    if config.log_crawled_urls:
        enabled.append(CRAWLED)
    return enabled


def save_results(
    results: ResultAggregator,
    config: Configuration,
    out_dir: Path,
    pretty: bool = False,
) -> list[Path]:
    """Write every configured finding set. A failed write does not stop the others."""
    written = []
    for kind in enabled_result_sets(config):
        try:
            written.append(write_results(out_dir, RESULT_FILES[kind], results[kind].snapshot(), pretty))
        except PersistenceError as e:
            logger.warning("error writing %s results: %s", kind, e)
    return written


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="second-order",
        description=(
            "Crawl a site within its domain and subdomains, logging matched resources, "
            "non-200 links and inline scripts."
        ),
    )
    parser.add_argument("target", help="Target URL (e.g. https://example.com)")
    parser.add_argument("--config", default="config.json", help="Configuration file (default: config.json)")
    parser.add_argument("--output", default="output", help="Directory to save results in (default: output)")
    parser.add_argument("--depth", type=int, help="Depth to crawl (default: config Depth, else 2)")
    parser.add_argument(
        "--threads", type=int, default=DEFAULT_WORKERS, help=f"Number of workers (default: {DEFAULT_WORKERS})"
    )
    parser.add_argument(
        "--timeout", type=float, default=DEFAULT_TIMEOUT_S, help="Request timeout in seconds (default: 15)"
    )
    parser.add_argument("--insecure", action="store_true", help="Accept untrusted SSL/TLS certificates")
    parser.add_argument("--dedupe", action="store_true", help="Visit each URL at most once")
    parser.add_argument("--debug", action="store_true", help="Print visited links in real-time to stdout")
    parser.add_argument("--verbose", action="store_true", help="Show progress logs and summary")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    return parser


def configure_logging(debug: bool, verbose: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the crawler CLI."""
    args = build_parser().parse_args(argv)
    configure_logging(args.debug, args.verbose)

    try:
        config = load_config(Path(args.config))
        Scope.from_target(args.target)
        if args.depth is not None and args.depth < 0:
            raise ConfigError(f"depth must be non-negative, got {args.depth}")
        if args.threads < 1:
            raise ConfigError(f"threads must be at least 1, got {args.threads}")
        if args.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {args.timeout}")
    except (ConfigError, MalformedURL) as e:
        sys.stderr.write(f"error: {e}\n")
        return 1

    options = RunOptions(
        insecure=args.insecure,
        timeout=args.timeout,
        debug=args.debug,
        workers=args.threads,
        dedupe=args.dedupe,
    )

    results, stats = crawl(args.target, config, options=options, depth=args.depth)

    if args.verbose:
        print_summary(stats)

    for path in save_results(results, config, Path(args.output), pretty=args.pretty):
        logger.info("results written to %s", path)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
