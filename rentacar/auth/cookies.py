"""Request-scoped access to the credential cookies.

The access and refresh tokens live in two httpOnly cookies. A CookieStore
reads them from the incoming request and writes updates as Set-Cookie
headers on the outgoing response. Writes are visible to later reads within
the same request.
"""

import time
from typing import Dict, Mapping, Optional

from fastapi import Request, Response

from rentacar.config import settings
from rentacar.utils.logger import get_logger

logger = get_logger(__name__)

# expiresIn values above these thresholds are epoch timestamps
_EPOCH_MILLIS_THRESHOLD = 1_000_000_000_000
_EPOCH_SECONDS_THRESHOLD = 1_000_000_000


def access_max_age_from_expires_in(expires_in: int, now: Optional[float] = None) -> int:
    """Convert a backend expiresIn value into a cookie max age in seconds.

    The backend may answer with a duration in seconds, an epoch timestamp in
    seconds, or an epoch timestamp in milliseconds.
    """
    now = time.time() if now is None else now

    if expires_in > _EPOCH_MILLIS_THRESHOLD:
        max_age = int((expires_in - now * 1000) // 1000)
    elif expires_in > _EPOCH_SECONDS_THRESHOLD:
        max_age = int(expires_in - now)
    else:
        max_age = int(expires_in)

    if max_age <= 0:
        logger.warning(
            "Invalid expiresIn value, using default access token lifetime",
            extra={"expires_in": expires_in},
        )
        max_age = settings.ACCESS_TOKEN_MAX_AGE

    return max_age


class CookieStore:
    """Credential cookie jar bound to one request/response pair."""

    def __init__(self, cookies: Mapping[str, str], response: Response):
        self._values: Dict[str, str] = dict(cookies)
        self.response = response

    @classmethod
    def from_request(cls, request: Request, response: Response) -> "CookieStore":
        return cls(request.cookies, response)

    def get(self, name: str) -> Optional[str]:
        value = self._values.get(name)
        return value or None

    def get_access_token(self) -> Optional[str]:
        return self.get(settings.ACCESS_TOKEN_COOKIE)

    def get_refresh_token(self) -> Optional[str]:
        return self.get(settings.REFRESH_TOKEN_COOKIE)

    def is_authenticated(self) -> bool:
        return self.get_access_token() is not None

    def _set(self, name: str, value: str, max_age: int) -> None:
        self._values[name] = value
        self.response.set_cookie(
            key=name,
            value=value,
            max_age=max_age,
            path="/",
            secure=settings.secure_cookies,
            httponly=True,
            samesite="lax",
        )

    def set_tokens(
        self,
        access_token: str,
        refresh_token: str,
        access_max_age: Optional[int] = None,
    ) -> None:
        """Install a new credential pair, replacing the previous one."""
        self._set(
            settings.ACCESS_TOKEN_COOKIE,
            access_token,
            access_max_age or settings.ACCESS_TOKEN_MAX_AGE,
        )
        self._set(
            settings.REFRESH_TOKEN_COOKIE,
            refresh_token,
            settings.REFRESH_TOKEN_MAX_AGE,
        )

    def set_auth_tokens(
        self, access_token: str, refresh_token: str, expires_in: int
    ) -> None:
        """Install a credential pair using the backend's expiresIn value."""
        self.set_tokens(
            access_token,
            refresh_token,
            access_max_age=access_max_age_from_expires_in(expires_in),
        )

    def clear(self) -> None:
        """Drop both credential cookies."""
        for name in (settings.ACCESS_TOKEN_COOKIE, settings.REFRESH_TOKEN_COOKIE):
            self._values.pop(name, None)
            self.response.delete_cookie(
                key=name,
                path="/",
                secure=settings.secure_cookies,
                httponly=True,
                samesite="lax",
            )


def get_cookie_store(request: Request, response: Response) -> CookieStore:
    """FastAPI dependency returning the request's cookie store."""
    return CookieStore.from_request(request, response)
