from __future__ import annotations

from typing import Dict, List, Optional, Union

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from second_order.transport import HttpClient


class FakeResponse:
    def __init__(self, status_code: int = 200, body: bytes = b"", content_type: str = "text/html") -> None:
        self.status_code = status_code
        self.headers = CaseInsensitiveDict({"Content-Type": content_type} if content_type else {})
        self._body = body
        self.reads = 0
        self.closed = False

    @property
    def content(self) -> bytes:
        self.reads += 1
        return self._body

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


Route = Union[FakeResponse, Exception]


class FakeSession:
    """Stands in for requests.Session; unknown URLs answer 404."""

    def __init__(self, routes: Optional[Dict[str, Route]] = None) -> None:
        self.routes: Dict[str, Route] = dict(routes or {})
        self.calls: List[str] = []
        self.headers_seen: List[Dict[str, str]] = []
        self.responses: List[FakeResponse] = []
        self.kwargs_seen: List[Dict[str, object]] = []

    def get(self, url, headers=None, timeout=None, verify=True, allow_redirects=True, stream=False):
        self.calls.append(url)
        self.headers_seen.append(dict(headers or {}))
        self.kwargs_seen.append(
            {"timeout": timeout, "verify": verify, "allow_redirects": allow_redirects, "stream": stream}
        )
        route = self.routes.get(url)
        if isinstance(route, Exception):
            raise route
        if route is None:
            response = FakeResponse(404, b"not found", "text/plain")
        else:
            response = FakeResponse(route.status_code, route._body, route.headers.get("Content-Type", ""))
        self.responses.append(response)
        return response

    def close(self) -> None:
        pass


def page(html: str, status: int = 200) -> FakeResponse:
    return FakeResponse(status, html.encode("utf-8"), "text/html; charset=utf-8")


def connection_error(url: str) -> Exception:
    return requests.ConnectionError(f"connection refused: {url}")


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session: FakeSession) -> HttpClient:
    return HttpClient(session=session)
