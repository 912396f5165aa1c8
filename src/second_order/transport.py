"""
Thin HTTP client wrapper around a shared requests.Session.
"""
from __future__ import annotations

from typing import Mapping, Optional

import requests

DEFAULT_TIMEOUT_S = 15.0


class HttpClient:
    """
    GET-only client carrying the run's TLS and timeout settings.

    Responses are opened with stream=True; callers read the body once and
    close the response (it is a context manager).
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        verify: bool = True,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self.session = session if session is not None else requests.Session()
        self.verify = verify
        self.timeout = timeout

    def get(self, url: str, headers: Mapping[str, str]) -> requests.Response:
        return self.session.get(
            url,
            headers=dict(headers),
            timeout=self.timeout,
            verify=self.verify,
            allow_redirects=True,
            stream=True,
        )

    def close(self) -> None:
        self.session.close()
