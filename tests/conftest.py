"""pytest configuration for the Shilp client.

HTTP traffic is served by StubAdapter, a requests transport adapter mounted
on a real requests.Session, so the full request/response path of the
library runs without a network.
"""

import io
from dataclasses import dataclass, field
from typing import Any, Callable
from urllib.parse import parse_qsl, urlsplit

import orjson
import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from shilp import ShilpClient

BASE_URL = "http://shilp.test"


@dataclass
class Call:
    """One request seen by the stub."""
    method: str
    path: str
    params: dict[str, str]
    body: bytes | None
    headers: dict[str, str]
    timeout: Any

    def json(self) -> Any:
        return orjson.loads(self.body) if self.body else None


@dataclass
class Route:
    method: str
    path: str
    status: int = 200
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    exc: Exception | None = None
    handler: Callable[[Call], tuple[int, Any]] | None = None
    raw: Any = None
    repeat: bool = False


class FailingRaw(io.RawIOBase):
    """Body that yields some bytes and then loses the connection."""

    def __init__(self, data: bytes, error: Exception | None = None):
        self._data = data
        self._error = error
        self._sent = False

    def readable(self):
        return True

    def read(self, size=-1):
        if not self._sent:
            self._sent = True
            return self._data
        raise self._error or ConnectionResetError("connection reset by peer")


class StubAdapter(BaseAdapter):
    """Answers requests from registered routes and records every call."""

    def __init__(self):
        super().__init__()
        self.calls: list[Call] = []
        self.routes: list[Route] = []

    def add(
        self,
        method: str,
        path: str,
        json: Any = None,
        body: bytes | str = b"",
        status: int = 200,
        headers: dict[str, str] | None = None,
        exc: Exception | None = None,
        handler: Callable[[Call], tuple[int, Any]] | None = None,
        raw: Any = None,
        repeat: bool = False,
    ) -> Route:
        if json is not None:
            body = orjson.dumps(json)
        elif isinstance(body, str):
            body = body.encode()
        route = Route(method, path, status, body, headers or {}, exc, handler, raw, repeat)
        self.routes.append(route)
        return route

    def _match(self, method: str, path: str) -> Route | None:
        for route in self.routes:
            if route.method == method and route.path == path:
                if not route.repeat:
                    self.routes.remove(route)
                return route
        return None

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        parts = urlsplit(request.url)
        body = request.body
        if isinstance(body, str):
            body = body.encode()
        call = Call(
            method=request.method,
            path=parts.path,
            params=dict(parse_qsl(parts.query, keep_blank_values=True)),
            body=body,
            headers=dict(request.headers),
            timeout=timeout,
        )
        self.calls.append(call)

        route = self._match(call.method, call.path)
        if route is None:
            status, content, headers, raw = 404, b"no route", {}, None
        elif route.exc is not None:
            raise route.exc
        elif route.handler is not None:
            status, payload = route.handler(call)
            content = orjson.dumps(payload)
            headers, raw = route.headers, None
        else:
            status, content, headers, raw = route.status, route.body, route.headers, route.raw

        response = requests.Response()
        response.status_code = status
        response.headers = CaseInsensitiveDict(headers)
        response.raw = raw if raw is not None else io.BytesIO(content)
        response.url = request.url
        response.request = request
        response.encoding = "utf-8"
        response.reason = "OK" if status < 400 else "Error"
        response.connection = self
        return response

    def close(self):
        pass

    @property
    def last(self) -> Call:
        return self.calls[-1]


@pytest.fixture
def stub() -> StubAdapter:
    return StubAdapter()


@pytest.fixture
def session(stub) -> requests.Session:
    s = requests.Session()
    s.mount("http://", stub)
    s.mount("https://", stub)
    return s


@pytest.fixture
def client(session) -> ShilpClient:
    c = ShilpClient(BASE_URL, timeout=5.0, session=session)
    yield c
    c.close()
