"""Session endpoints: login, register, refresh, logout and current user.

These routes own the credential cookies. The browser never sees the tokens;
it only receives the httpOnly cookies set here.
"""

from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, Request, Response, status
from jose import JWTError
from pydantic import ValidationError

from rentacar.api.endpoints import endpoints
from rentacar.api.errors import parse_error_response
from rentacar.api.route_handler import get_http_client
from rentacar.auth.cookies import CookieStore, get_cookie_store
from rentacar.config import settings
from rentacar.core.security import read_token_claims, verify_token
from rentacar.middleware.rate_limit import CREDENTIALS_LIMIT, limiter
from rentacar.schemas import (
    AuthResponse,
    CurrentUserResponse,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResponseMessage,
    SessionResponse,
)
from rentacar.utils.context import set_context
from rentacar.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

Cookies = Annotated[CookieStore, Depends(get_cookie_store)]
HttpClient = Annotated[httpx.AsyncClient, Depends(get_http_client)]


def _backend_error_body(backend_response: httpx.Response) -> dict:
    try:
        body = backend_response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        return body
    return parse_error_response(backend_response).model_dump(exclude_none=True)


async def _open_session(
    url: str,
    payload: dict,
    http: httpx.AsyncClient,
    cookies: CookieStore,
    response: Response,
) -> dict:
    """Forward credentials to the backend and store the issued token pair."""
    try:
        backend_response = await http.post(url, json=payload)
    except httpx.HTTPError as e:
        logger.error(
            "Authentication backend unreachable",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"message": "Authentication service unavailable"}

    if not backend_response.is_success:
        response.status_code = backend_response.status_code
        return _backend_error_body(backend_response)

    try:
        credentials = AuthResponse.model_validate(backend_response.json())
    except (ValueError, ValidationError) as e:
        logger.error(
            "Authentication backend returned an unusable body",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        response.status_code = status.HTTP_502_BAD_GATEWAY
        return {"message": "Invalid response from authentication service"}

    cookies.set_auth_tokens(
        credentials.access_token, credentials.refresh_token, credentials.expires_in
    )
    if credentials.username:
        set_context(user_name=credentials.username)
    logger.info("Session opened", extra={"url": url})

    return SessionResponse(
        username=credentials.username, token_type=credentials.token_type
    ).model_dump(by_alias=True)


@router.post("/login")
@limiter.limit(CREDENTIALS_LIMIT)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    cookies: Cookies,
    http: HttpClient,
) -> dict:
    """Sign in with username and password."""
    return await _open_session(
        endpoints.auth.login, credentials.model_dump(), http, cookies, response
    )


@router.post("/register")
@limiter.limit(CREDENTIALS_LIMIT)
async def register(
    request: Request,
    response: Response,
    registration: RegisterRequest,
    cookies: Cookies,
    http: HttpClient,
) -> dict:
    """Create an account and sign in with it."""
    return await _open_session(
        endpoints.auth.register,
        registration.model_dump(by_alias=True, exclude_none=True),
        http,
        cookies,
        response,
    )


@router.post("/refresh")
async def refresh(response: Response, cookies: Cookies, http: HttpClient) -> dict:
    """Rotate the credential pair using the refresh cookie.

    This is the renewal endpoint of the browser-side client. On any failure
    both cookies are cleared and the caller is treated as signed out.
    """
    refresh_token = cookies.get_refresh_token()
    if not refresh_token:
        response.status_code = status.HTTP_401_UNAUTHORIZED
        return {"message": "No refresh token"}

    payload = RefreshTokenRequest(refresh_token=refresh_token)
    try:
        backend_response = await http.post(
            endpoints.auth.refresh, json=payload.model_dump(by_alias=True)
        )
    except httpx.HTTPError as e:
        logger.error(
            "Refresh error",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        cookies.clear()
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return {"message": "Internal server error"}

    if not backend_response.is_success:
        logger.warning(
            "Backend refused token refresh",
            extra={"status_code": backend_response.status_code},
        )
        cookies.clear()
        response.status_code = status.HTTP_401_UNAUTHORIZED
        return {"message": "Token refresh failed"}

    try:
        credentials = AuthResponse.model_validate(backend_response.json())
    except (ValueError, ValidationError) as e:
        logger.error(
            "Refresh returned an unusable body",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        cookies.clear()
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return {"message": "Internal server error"}

    cookies.set_auth_tokens(
        credentials.access_token, credentials.refresh_token, credentials.expires_in
    )

    return SessionResponse(
        username=credentials.username, token_type=credentials.token_type
    ).model_dump(by_alias=True)


@router.post("/logout")
async def logout(cookies: Cookies) -> dict:
    """Sign out by dropping both credential cookies."""
    cookies.clear()
    return ResponseMessage(message="Logged out successfully").model_dump()


@router.get("/me")
async def me(response: Response, cookies: Cookies) -> dict:
    """Describe the signed-in user from the access token claims."""
    token = cookies.get_access_token()
    if not token:
        response.status_code = status.HTTP_401_UNAUTHORIZED
        return {"message": "Not authenticated"}

    if settings.JWT_SECRET:
        result = verify_token(token)
        if not result.valid:
            response.status_code = status.HTTP_401_UNAUTHORIZED
            return {"message": result.error or "Invalid token"}
        claims = result.payload.model_dump()
    else:
        try:
            claims = read_token_claims(token)
        except JWTError:
            response.status_code = status.HTTP_401_UNAUTHORIZED
            return {"message": "Invalid token"}

    return CurrentUserResponse(
        id=claims.get("userId"),
        username=str(claims.get("sub", "")),
        roles=claims.get("roles") or [],
        exp=claims.get("exp"),
    ).model_dump()
