"""
Secondary non-200 probe for links found on crawled pages.
"""
from __future__ import annotations

import logging
from typing import AbstractSet, Iterable, Mapping, Pattern

import requests

from second_order.transport import HttpClient
from second_order.urls import is_excluded, scheme_allowed

logger = logging.getLogger(__name__)


def audit_link(
    client: HttpClient,
    url: str,
    headers: Mapping[str, str],
    excluded_status_codes: AbstractSet[int],
    excluded_url_regex: Iterable[Pattern[str]],
) -> bool:
    """
    Probe url and report whether it is an anomaly.

    Excluded and non-http(s) URLs are never requested. Transport failures
    are not reported: an unreachable link is skipped, not flagged.
    """
    if is_excluded(url, excluded_url_regex):
        return False
    if not scheme_allowed(url):
        return False

    try:
        response = client.get(url, headers)
    except requests.RequestException as e:
        logger.debug("probe failed for %s: %s", url, e)
        return False

    with response:
        status = response.status_code

    if status == 200:
        return False
    if status in excluded_status_codes:
        return False
    logger.debug("non-200 link %s (%d)", url, status)
    return True
