import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from core.config import Config, RouteRule

BACKEND = "http://backend.test"


def respond(status_code: int, *, content: bytes = b"", headers=None) -> httpx.Response:
    """Build an upstream response whose body is still an unread stream."""
    return httpx.Response(status_code, headers=headers, stream=httpx.ByteStream(content))


class RecordingLogger:
    """RequestLogger that keeps every call for assertions."""

    def __init__(self):
        self.forwarded = []
        self.responses = []
        self.not_found = []
        self.errors = []

    def log_forward(self, method, target_url, headers, *, route):
        self.forwarded.append((method, target_url, headers, route))

    def log_response(self, route, status, target_url):
        self.responses.append((route, status, target_url))

    def log_not_found(self, method, path):
        self.not_found.append((method, path))

    def log_error(self, route, status, message):
        self.errors.append((route, status, message))


class MockUpstream:
    """Records requests reaching the upstream and answers with ``handler``."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler = lambda request: respond(
            200, content=b'{"ok":true}', headers={"Content-Type": "application/json"}
        )

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return self.handler(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def upstream():
    return MockUpstream()


@pytest.fixture
def make_client(logger, upstream):
    """Build a TestClient for a config, wired to the mock upstream."""
    clients = []

    def _make(config: Config | None = None) -> TestClient:
        config = config or Config(routes=[RouteRule(prefix="/api/", upstream_origin=BACKEND)])
        app = create_app(config, logger, transport=httpx.MockTransport(upstream))
        client = TestClient(app, follow_redirects=False)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


class RawResponse:
    """Status, headers and body collected from ASGI send messages."""

    def __init__(self):
        self.status_code: int | None = None
        self.headers: list[tuple[bytes, bytes]] = []
        self.body = b""


async def call_raw(app, raw_path: bytes, query_string: bytes = b"", method: str = "GET") -> RawResponse:
    """Drive the ASGI app with a scope that carries ``raw_path`` exactly as given."""
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": raw_path.decode("latin-1"),
        "raw_path": raw_path,
        "query_string": query_string,
        "root_path": "",
        "headers": [(b"host", b"edge.example")],
        "server": ("edge.example", 80),
        "client": ("127.0.0.1", 50000),
    }
    sent_request = False
    finished = asyncio.Event()
    result = RawResponse()

    async def receive():
        nonlocal sent_request
        if not sent_request:
            sent_request = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await finished.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        if message["type"] == "http.response.start":
            result.status_code = message["status"]
            result.headers = list(message.get("headers", []))
        elif message["type"] == "http.response.body":
            result.body += message.get("body", b"")
            if not message.get("more_body", False):
                finished.set()

    async with app.router.lifespan_context(app):
        await app(scope, receive, send)
    return result


@pytest.fixture
def raw_app(logger, upstream):
    config = Config(routes=[RouteRule(prefix="/api/", upstream_origin=BACKEND)])
    return create_app(config, logger, transport=httpx.MockTransport(upstream))
