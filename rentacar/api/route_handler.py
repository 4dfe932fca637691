"""Server-side authenticated calls to the backend REST API.

A RouteClient is bound to one incoming request. It reads the access token
from the request cookies, attaches it as a bearer header and, when the
backend answers 401 or 403, renews the credential pair once with the
refresh cookie before retrying. Renewed tokens are written back as cookies
on the outgoing response.
"""

from typing import Annotated, Any, Dict, List, Optional

import httpx
from fastapi import Depends, Request, Response
from pydantic import ValidationError

from rentacar.api.endpoints import endpoints
from rentacar.api.errors import raise_for_response
from rentacar.api.types import Attempt
from rentacar.auth.cookies import CookieStore, get_cookie_store
from rentacar.core.exceptions import ApiException
from rentacar.schemas.token import AuthResponse, RefreshTokenRequest
from rentacar.utils.logger import get_logger, log_timer
from rentacar.utils.telemetry import (
    add_span_attributes,
    add_span_event,
    api_request_span,
    record_response,
    renewal_span,
)

logger = get_logger(__name__)

AUTH_FAILURE_STATUSES = (401, 403)

# fetch() cache modes that map onto a request Cache-Control directive
_CACHE_CONTROL = {
    "no-store": "no-store",
    "no-cache": "no-cache",
    "reload": "no-cache",
}


class RouteClient:
    """Backend client scoped to a single incoming request."""

    def __init__(
        self,
        cookies: CookieStore,
        http: httpx.AsyncClient,
        refresh_url: Optional[str] = None,
    ):
        self.cookies = cookies
        self.http = http
        self.refresh_url = refresh_url or endpoints.auth.refresh

    async def try_refresh_token(self) -> Optional[str]:
        """Exchange the refresh cookie for a new credential pair.

        Returns:
            The new access token, or None when there is no refresh token or
            the backend refused or could not be reached. Cookies are only
            touched on success.
        """
        refresh_token = self.cookies.get_refresh_token()
        if not refresh_token:
            logger.info("No refresh token available")
            return None

        with renewal_span("server"):
            logger.info("Attempting token refresh")
            payload = RefreshTokenRequest(refresh_token=refresh_token)
            try:
                with log_timer("auth_refresh", logger):
                    response = await self.http.post(
                        self.refresh_url,
                        json=payload.model_dump(by_alias=True),
                        headers={"Content-Type": "application/json"},
                    )
            except httpx.HTTPError as e:
                logger.warning(
                    "Token refresh request failed",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )
                return None

            record_response(response)
            if not response.is_success:
                logger.warning(
                    "Token refresh failed",
                    extra={"status_code": response.status_code},
                )
                return None

            try:
                credentials = AuthResponse.model_validate(response.json())
            except (ValueError, ValidationError) as e:
                logger.warning(
                    "Token refresh returned an unusable body",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )
                return None

            self.cookies.set_tokens(credentials.access_token, credentials.refresh_token)
            add_span_event("auth.refreshed")
            logger.info("Token refresh successful")
            return credentials.access_token

    async def _send(
        self,
        url: str,
        method: str,
        body: Any,
        token: Optional[str],
        cache: Optional[str],
        attempt: Attempt,
    ) -> httpx.Response:
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if cache in _CACHE_CONTROL:
            headers["Cache-Control"] = _CACHE_CONTROL[cache]

        with api_request_span(method, url, attempt.value):
            response = await self.http.request(method, url, headers=headers, json=body)
            record_response(response)
        return response

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        body: Any = None,
        cache: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Any:
        """Call the backend with the request's credentials.

        Args:
            url: Absolute backend URL
            method: HTTP method
            body: JSON-serialisable request body
            cache: fetch-style cache mode ("no-store", "no-cache", ...)
            tags: Cache tags, recorded on the current span

        Returns:
            The decoded JSON body, or an empty dict for 204.

        Raises:
            ApiException: The final answer was not a success.
        """
        if tags:
            add_span_attributes(**{"http.cache_tags": list(tags)})

        renewal_attempted = False
        access_token = self.cookies.get_access_token()
        if not access_token:
            renewal_attempted = True
            access_token = await self.try_refresh_token()

        response = await self._send(url, method, body, access_token, cache, Attempt.FIRST)

        if response.status_code in AUTH_FAILURE_STATUSES and not renewal_attempted:
            renewal_attempted = True
            logger.info(
                "Backend rejected credentials, refreshing",
                extra={"method": method, "url": url, "status_code": response.status_code},
            )
            new_token = await self.try_refresh_token()
            if new_token:
                response = await self._send(
                    url, method, body, new_token, cache, Attempt.RETRY
                )

        raise_for_response(response)

        if response.status_code == 204:
            return {}

        return response.json()

    async def get(self, url: str, **options: Any) -> Any:
        return await self.fetch(url, method="GET", **options)

    async def post(self, url: str, body: Any = None, **options: Any) -> Any:
        return await self.fetch(url, method="POST", body=body, **options)

    async def put(self, url: str, body: Any = None, **options: Any) -> Any:
        return await self.fetch(url, method="PUT", body=body, **options)

    async def patch(self, url: str, body: Any = None, **options: Any) -> Any:
        return await self.fetch(url, method="PATCH", body=body, **options)

    async def delete(self, url: str, **options: Any) -> Any:
        return await self.fetch(url, method="DELETE", **options)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared backend connection pool created in the app lifespan."""
    return request.app.state.http_client


def get_route_client(
    cookies: Annotated[CookieStore, Depends(get_cookie_store)],
    http: Annotated[httpx.AsyncClient, Depends(get_http_client)],
) -> RouteClient:
    """FastAPI dependency returning a RouteClient bound to this request."""
    return RouteClient(cookies, http)


def api_error_response(error: ApiException, response: Response) -> dict:
    """Turn an ApiException into the route error body.

    The status is set on the request's response object so cookies written
    during the call are kept.
    """
    response.status_code = error.status
    return {"error": error.message, "errors": error.errors}
