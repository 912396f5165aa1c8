"""
Depth-limited crawler that audits a site for resource patterns, non-200
links and inline scripts, staying within the target's domain and subdomains.
"""
from second_order.config import Configuration, RunOptions, load_config
from second_order.core import CrawlStats, Crawler, Job, crawl
from second_order.results import ResultAggregator

__version__ = "1.0.0"
__all__ = [
    "crawl",
    "Crawler",
    "CrawlStats",
    "Configuration",
    "Job",
    "ResultAggregator",
    "RunOptions",
    "load_config",
]
