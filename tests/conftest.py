"""Pytest configuration and fixtures."""

import os

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("API_BASE_URL", "http://backend.test")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("OTEL_EXPORT_CONSOLE", "false")

from typing import AsyncGenerator, Callable, Dict, List, Tuple, Union  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from opentelemetry import trace  # noqa: E402

from rentacar.main import app  # noqa: E402
from rentacar.middleware.rate_limit import limiter  # noqa: E402

Handler = Union[httpx.Response, Callable]


class BackendStub:
    """In-memory stand-in for the backend REST API.

    Routes are keyed by method and path. A route holds either a fixed
    response, a list of responses served in order (the last one repeats),
    or a callable (sync or async) receiving the httpx.Request.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], List[Handler]] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, *handlers: Handler) -> None:
        self.routes[(method.upper(), path)] = list(handlers)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [
            r for r in self.requests if r.method == method.upper() and r.url.path == path
        ]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handlers = self.routes.get((request.method, request.url.path))
        if not handlers:
            return httpx.Response(404, json={"message": "No route"})

        handler = handlers.pop(0) if len(handlers) > 1 else handlers[0]
        if isinstance(handler, httpx.Response):
            # Fresh copy, a response object can only be sent once
            return httpx.Response(
                handler.status_code, headers=handler.headers, content=handler.content
            )

        result = handler(request)
        if hasattr(result, "__await__"):
            result = await result
        return result

    def client(self, base_url: str = "") -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handle), base_url=base_url
        )


def auth_payload(
    access_token: str = "access-2",
    refresh_token: str = "refresh-2",
    expires_in: int = 900,
    username: str = "jane",
) -> dict:
    """Body of a backend login/register/refresh answer."""
    return {
        "accessToken": access_token,
        "refreshToken": refresh_token,
        "tokenType": "Bearer",
        "expiresIn": expires_in,
        "username": username,
    }


@pytest.fixture(autouse=True)
def disable_rate_limits():
    """Keep rate limiting out of the way of repeated test requests."""
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def backend() -> BackendStub:
    """Fresh backend stub for each test."""
    return BackendStub()


@pytest_asyncio.fixture(scope="function")
async def backend_http(backend: BackendStub) -> AsyncGenerator[httpx.AsyncClient, None]:
    """httpx client whose transport is the backend stub."""
    async with backend.client() as http:
        yield http


@pytest_asyncio.fixture(scope="function")
async def client(
    backend_http: httpx.AsyncClient,
) -> AsyncGenerator[AsyncClient, None]:
    """Test client for the web app, talking to the backend stub."""
    app.state.http_client = backend_http

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.state.http_client = None


@pytest.fixture(scope="session", autouse=True)
def shutdown_tracer_provider():
    """Shutdown OpenTelemetry TracerProvider after all tests complete.

    Stops the span processor's background thread before pytest closes
    stdout/stderr.
    """
    yield

    tracer_provider = trace.get_tracer_provider()
    if hasattr(tracer_provider, "force_flush"):
        tracer_provider.force_flush(timeout_millis=5000)
    if hasattr(tracer_provider, "shutdown"):
        tracer_provider.shutdown()
