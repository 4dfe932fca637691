"""Tests for the request-scoped RouteClient."""

import json

import httpx
import pytest
from fastapi import Response

from rentacar.api.endpoints import API_BASE_URL, endpoints
from rentacar.api.route_handler import RouteClient, api_error_response
from rentacar.auth.cookies import CookieStore
from rentacar.core.exceptions import ApiException

from conftest import auth_payload

RENTALS_PATH = "/api/rentals/me"
REFRESH_PATH = "/api/auth/refresh"


def bearer_gate(token: str):
    """Backend handler accepting only the given bearer token."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers.get("authorization") == f"Bearer {token}":
            return httpx.Response(200, json={"content": [{"id": 1}]})
        return httpx.Response(401, json={"message": "Token expired"})

    return handler


def make_client(http: httpx.AsyncClient, **cookies: str) -> RouteClient:
    return RouteClient(CookieStore(cookies, Response()), http)


def set_cookie_headers(client: RouteClient) -> list:
    return client.cookies.response.headers.getlist("set-cookie")


class TestTryRefreshToken:
    """Tests for RouteClient.try_refresh_token."""

    @pytest.mark.asyncio
    async def test_without_refresh_cookie_makes_no_call(self, backend, backend_http):
        """Test that a missing refresh cookie returns None immediately."""
        client = make_client(backend_http)

        assert await client.try_refresh_token() is None
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_success_rotates_cookies(self, backend, backend_http):
        """Test a successful renewal stores the new pair with cookie attributes."""
        backend.on("POST", REFRESH_PATH, httpx.Response(200, json=auth_payload()))
        client = make_client(backend_http, refresh_token="refresh-1")

        new_token = await client.try_refresh_token()

        assert new_token == "access-2"
        sent = backend.calls("POST", REFRESH_PATH)[0]
        assert json.loads(sent.read()) == {"refreshToken": "refresh-1"}
        assert client.cookies.get_access_token() == "access-2"
        assert client.cookies.get_refresh_token() == "refresh-2"

        access_cookie, refresh_cookie = set_cookie_headers(client)
        assert access_cookie.startswith("access_token=access-2")
        assert "Max-Age=900" in access_cookie
        assert "HttpOnly" in access_cookie
        assert "Path=/" in access_cookie
        assert "SameSite=lax" in access_cookie
        assert refresh_cookie.startswith("refresh_token=refresh-2")
        assert "Max-Age=604800" in refresh_cookie
        assert "HttpOnly" in refresh_cookie

    @pytest.mark.asyncio
    async def test_rejected_renewal_leaves_cookies(self, backend, backend_http):
        """Test a non-success answer returns None without writing cookies."""
        backend.on("POST", REFRESH_PATH, httpx.Response(400, json={"message": "Bad"}))
        client = make_client(backend_http, refresh_token="refresh-1")

        assert await client.try_refresh_token() is None
        assert client.cookies.get_refresh_token() == "refresh-1"
        assert set_cookie_headers(client) == []

    @pytest.mark.asyncio
    async def test_transport_error_returns_none(self):
        """Test an unreachable backend returns None."""

        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(unreachable)) as http:
            client = make_client(http, refresh_token="refresh-1")
            assert await client.try_refresh_token() is None

        assert set_cookie_headers(client) == []

    @pytest.mark.asyncio
    async def test_malformed_body_returns_none(self, backend, backend_http):
        """Test an answer without a token pair returns None."""
        backend.on("POST", REFRESH_PATH, httpx.Response(200, content=b"not json"))
        client = make_client(backend_http, refresh_token="refresh-1")

        assert await client.try_refresh_token() is None
        assert set_cookie_headers(client) == []


class TestFetch:
    """Tests for RouteClient.fetch."""

    @pytest.mark.asyncio
    async def test_attaches_bearer_token(self, backend, backend_http):
        """Test the access cookie is sent as a bearer header."""
        backend.on("GET", RENTALS_PATH, bearer_gate("access-1"))
        client = make_client(backend_http, access_token="access-1")

        result = await client.get(endpoints.rentals.me, cache="no-store")

        assert result == {"content": [{"id": 1}]}
        sent = backend.calls("GET", RENTALS_PATH)[0]
        assert sent.headers["content-type"] == "application/json"
        assert sent.headers["cache-control"] == "no-store"
        assert backend.calls("POST", REFRESH_PATH) == []

    @pytest.mark.asyncio
    async def test_renews_and_retries_with_new_token(self, backend, backend_http):
        """Test a 401 is recovered with the renewed access token."""
        backend.on("GET", RENTALS_PATH, bearer_gate("access-2"))
        backend.on("POST", REFRESH_PATH, httpx.Response(200, json=auth_payload()))
        client = make_client(
            backend_http, access_token="access-1", refresh_token="refresh-1"
        )

        result = await client.get(endpoints.rentals.me)

        assert result == {"content": [{"id": 1}]}
        first, retry = backend.calls("GET", RENTALS_PATH)
        assert first.headers["authorization"] == "Bearer access-1"
        assert retry.headers["authorization"] == "Bearer access-2"

    @pytest.mark.asyncio
    async def test_403_also_triggers_renewal(self, backend, backend_http):
        """Test a 403 is treated as an authorization failure."""
        backend.on(
            "GET",
            RENTALS_PATH,
            httpx.Response(403, json={"message": "Forbidden"}),
            httpx.Response(200, json={"ok": True}),
        )
        backend.on("POST", REFRESH_PATH, httpx.Response(200, json=auth_payload()))
        client = make_client(
            backend_http, access_token="access-1", refresh_token="refresh-1"
        )

        assert await client.get(endpoints.rentals.me) == {"ok": True}
        assert len(backend.calls("POST", REFRESH_PATH)) == 1

    @pytest.mark.asyncio
    async def test_failed_renewal_surfaces_original_error(self, backend, backend_http):
        """Test a 400 from the renewal endpoint surfaces the original 401."""
        backend.on("GET", RENTALS_PATH, httpx.Response(401, json={"message": "Token expired"}))
        backend.on("POST", REFRESH_PATH, httpx.Response(400, json={"message": "Bad"}))
        client = make_client(
            backend_http, access_token="access-1", refresh_token="refresh-1"
        )

        with pytest.raises(ApiException) as exc_info:
            await client.get(endpoints.rentals.me)

        assert exc_info.value.status == 401
        assert exc_info.value.message == "Token expired"
        assert len(backend.calls("GET", RENTALS_PATH)) == 1

    @pytest.mark.asyncio
    async def test_retry_ceiling(self, backend, backend_http):
        """Test a second 401 after renewal is raised without another renewal."""
        backend.on("GET", RENTALS_PATH, httpx.Response(401, json={"message": "Still no"}))
        backend.on("POST", REFRESH_PATH, httpx.Response(200, json=auth_payload()))
        client = make_client(
            backend_http, access_token="access-1", refresh_token="refresh-1"
        )

        with pytest.raises(ApiException) as exc_info:
            await client.get(endpoints.rentals.me)

        assert exc_info.value.status == 401
        assert len(backend.calls("GET", RENTALS_PATH)) == 2
        assert len(backend.calls("POST", REFRESH_PATH)) == 1

    @pytest.mark.asyncio
    async def test_missing_access_token_renews_first(self, backend, backend_http):
        """Test a proactive renewal happens before the first attempt."""
        backend.on("GET", RENTALS_PATH, bearer_gate("access-2"))
        backend.on("POST", REFRESH_PATH, httpx.Response(200, json=auth_payload()))
        client = make_client(backend_http, refresh_token="refresh-1")

        assert await client.get(endpoints.rentals.me) == {"content": [{"id": 1}]}

        assert len(backend.calls("GET", RENTALS_PATH)) == 1
        assert backend.requests[0].url.path == REFRESH_PATH

    @pytest.mark.asyncio
    async def test_proactive_renewal_counts_as_the_attempt(self, backend, backend_http):
        """Test no second renewal follows a proactive one."""
        backend.on("GET", RENTALS_PATH, httpx.Response(401, json={"message": "Denied"}))
        backend.on("POST", REFRESH_PATH, httpx.Response(200, json=auth_payload()))
        client = make_client(backend_http, refresh_token="refresh-1")

        with pytest.raises(ApiException):
            await client.get(endpoints.rentals.me)

        assert len(backend.calls("POST", REFRESH_PATH)) == 1
        assert len(backend.calls("GET", RENTALS_PATH)) == 1

    @pytest.mark.asyncio
    async def test_no_credentials_sends_anonymous_request(self, backend, backend_http):
        """Test a caller without cookies reaches the backend without a bearer."""
        backend.on("GET", "/api/cars", httpx.Response(200, json=[]))
        client = make_client(backend_http)

        assert await client.get(f"{API_BASE_URL}/api/cars") == []
        assert "authorization" not in backend.calls("GET", "/api/cars")[0].headers

    @pytest.mark.asyncio
    async def test_204_returns_empty_dict(self, backend, backend_http):
        """Test that 204 yields an empty result."""
        backend.on("POST", "/api/rentals/5/cancel", httpx.Response(204))
        client = make_client(backend_http, access_token="access-1")

        assert await client.post(endpoints.rentals.cancel(5)) == {}

    @pytest.mark.asyncio
    async def test_server_error_is_not_retried(self, backend, backend_http):
        """Test a 500 is raised without renewal."""
        backend.on("PUT", "/api/users/me/profile", httpx.Response(500, content=b"boom"))
        client = make_client(
            backend_http, access_token="access-1", refresh_token="refresh-1"
        )

        with pytest.raises(ApiException) as exc_info:
            await client.put(f"{API_BASE_URL}/api/users/me/profile", {"firstName": "Jane"})

        assert exc_info.value.status == 500
        assert exc_info.value.message == "Internal Server Error"
        assert backend.calls("POST", REFRESH_PATH) == []
        sent = backend.calls("PUT", "/api/users/me/profile")[0]
        assert json.loads(sent.read()) == {"firstName": "Jane"}


def test_api_error_response_keeps_status():
    """Test the route error body and status."""
    from rentacar.schemas.common import ApiError

    response = Response()
    body = api_error_response(
        ApiException(ApiError(status=422, message="Invalid", errors={"email": "bad"})),
        response,
    )

    assert response.status_code == 422
    assert body == {"error": "Invalid", "errors": {"email": "bad"}}
