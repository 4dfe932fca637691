"""Browser-runtime API client with single-flight credential renewal.

The client holds the session cookies in its own cookie jar, so every call
carries the credentials without application code ever reading a token.
When a call is rejected with 401, the shared RefreshCoordinator renews the
credentials through the web app's refresh route and the call is retried
once. Any number of calls failing at the same time share one renewal.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from rentacar.api.errors import raise_for_response
from rentacar.api.types import NO_CONTENT, Attempt
from rentacar.config import settings
from rentacar.utils.logger import get_logger, log_timer
from rentacar.utils.telemetry import (
    add_span_event,
    api_request_span,
    record_failure,
    record_response,
    renewal_span,
)

logger = get_logger(__name__)


class RefreshCoordinator:
    """Collapses concurrent renewal triggers into a single refresh call.

    The pending renewal is kept as one asyncio task. The slot is filled
    before the first await and emptied by the task itself when it settles,
    so at most one renewal is in flight and the next trigger after it
    settles starts a fresh one.
    """

    def __init__(self) -> None:
        self._task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None

    async def ensure_renewed(self, http: httpx.AsyncClient, refresh_url: str) -> bool:
        """Renew the session credentials, or join the renewal in progress.

        Returns:
            True if the credentials were renewed, False otherwise. Never
            raises; any failure of the refresh call resolves to False.
        """
        task = self._task
        if task is None:
            task = asyncio.ensure_future(self._renew(http, refresh_url))
            self._task = task
        else:
            logger.debug("Joining in-flight credential refresh")

        # A cancelled waiter must not cancel the renewal other waiters share
        return await asyncio.shield(task)

    async def _renew(self, http: httpx.AsyncClient, refresh_url: str) -> bool:
        try:
            with renewal_span("browser"):
                logger.info("Refreshing session credentials")
                try:
                    with log_timer("auth_refresh", logger):
                        response = await http.post(refresh_url)
                except httpx.HTTPError as e:
                    logger.warning(
                        "Credential refresh request failed",
                        extra={"error": str(e), "error_type": type(e).__name__},
                    )
                    return False
                except Exception as e:
                    # Waiters share this result, so no error may escape
                    logger.error(
                        "Credential refresh could not be sent",
                        extra={"error": str(e), "error_type": type(e).__name__},
                    )
                    record_failure(e)
                    return False

                record_response(response)
                if not response.is_success:
                    logger.warning(
                        "Credential refresh rejected",
                        extra={"status_code": response.status_code},
                    )
                    return False

                add_span_event("auth.refreshed")
                logger.info("Session credentials refreshed")
                return True
        finally:
            if self._task is asyncio.current_task():
                self._task = None


# Process-wide coordinator shared by every client in this runtime
refresh_coordinator = RefreshCoordinator()


class ApiClient:
    """Cookie-carrying JSON client for the web app's API routes."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        refresh_url: Optional[str] = None,
        login_url: Optional[str] = None,
        coordinator: Optional[RefreshCoordinator] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        if http is None:
            options: Dict[str, Any] = {}
            if settings.HTTP_TIMEOUT_SECONDS is not None:
                options["timeout"] = settings.HTTP_TIMEOUT_SECONDS
            http = httpx.AsyncClient(
                base_url=base_url if base_url is not None else settings.APP_BASE_URL,
                **options,
            )
        self.http = http
        self.refresh_url = refresh_url or f"{settings.API_PREFIX}/auth/refresh"
        self.login_url = login_url or f"{settings.API_PREFIX}/auth/login"
        self.coordinator = coordinator or refresh_coordinator

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    def _endpoint_key(self, url: str) -> tuple:
        resolved = self.http.base_url.join(url)
        return resolved.host, resolved.path.rstrip("/")

    def is_auth_endpoint(self, url: str) -> bool:
        """True for the login and refresh routes, which never trigger renewal."""
        key = self._endpoint_key(url)
        return key in (
            self._endpoint_key(self.refresh_url),
            self._endpoint_key(self.login_url),
        )

    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        attempt: Attempt = Attempt.FIRST,
    ) -> Any:
        """Send a JSON request, renewing credentials once on 401.

        Returns:
            The decoded JSON body, or NO_CONTENT for a 204 answer.

        Raises:
            ApiException: The call ended in a non-success status.
            httpx.TransportError: The backend could not be reached.
        """
        request_headers = {"Content-Type": "application/json", **(headers or {})}

        with api_request_span(method, url, attempt.value):
            response = await self.http.request(
                method, url, headers=request_headers, json=body
            )
            record_response(response)

        if (
            response.status_code == 401
            and attempt is Attempt.FIRST
            and not self.is_auth_endpoint(url)
        ):
            logger.info(
                "Request unauthorized, renewing credentials",
                extra={"method": method, "url": url},
            )
            if await self.coordinator.ensure_renewed(self.http, self.refresh_url):
                return await self.request(
                    url,
                    method=method,
                    body=body,
                    headers=headers,
                    attempt=Attempt.RETRY,
                )
            logger.warning(
                "Credential renewal unavailable, giving up",
                extra={"method": method, "url": url},
            )

        raise_for_response(response)

        if response.status_code == 204:
            return NO_CONTENT

        return response.json()

    async def get(self, url: str, **options: Any) -> Any:
        return await self.request(url, method="GET", **options)

    async def post(self, url: str, body: Any = None, **options: Any) -> Any:
        return await self.request(url, method="POST", body=body, **options)

    async def put(self, url: str, body: Any = None, **options: Any) -> Any:
        return await self.request(url, method="PUT", body=body, **options)

    async def patch(self, url: str, body: Any = None, **options: Any) -> Any:
        return await self.request(url, method="PATCH", body=body, **options)

    async def delete(self, url: str, **options: Any) -> Any:
        return await self.request(url, method="DELETE", **options)


_default_client: Optional[ApiClient] = None


def configure_client(base_url: Optional[str] = None, **kwargs: Any) -> ApiClient:
    """Replace the process-wide client used by the client_* helpers."""
    global _default_client
    _default_client = ApiClient(base_url, **kwargs)
    return _default_client


def get_client() -> ApiClient:
    """Return the process-wide client, creating it on first use."""
    global _default_client
    if _default_client is None:
        _default_client = ApiClient()
    return _default_client


async def close_client() -> None:
    """Close the process-wide client."""
    global _default_client
    if _default_client is not None:
        await _default_client.aclose()
        _default_client = None


async def client_get(url: str, **options: Any) -> Any:
    return await get_client().get(url, **options)


async def client_post(url: str, body: Any = None, **options: Any) -> Any:
    return await get_client().post(url, body, **options)


async def client_put(url: str, body: Any = None, **options: Any) -> Any:
    return await get_client().put(url, body, **options)


async def client_patch(url: str, body: Any = None, **options: Any) -> Any:
    return await get_client().patch(url, body, **options)


async def client_delete(url: str, **options: Any) -> Any:
    return await get_client().delete(url, **options)
