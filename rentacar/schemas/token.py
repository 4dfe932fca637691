"""Credential schemas exchanged with the backend auth endpoints."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model reading and writing camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthResponse(CamelModel):
    """Credential pair issued by login, register and refresh."""

    access_token: str = Field(..., description="Short-lived bearer token")
    refresh_token: str = Field(..., description="Rotating refresh token")
    token_type: str = Field(default="Bearer", description="Token type")
    expires_in: int = Field(
        default=900,
        description="Access token lifetime (seconds, or an epoch timestamp)",
    )
    username: Optional[str] = Field(default=None, description="Account username")


class RefreshTokenRequest(CamelModel):
    """Refresh token request body sent to the backend."""

    refresh_token: str = Field(..., description="Current refresh token")


class SessionResponse(CamelModel):
    """Public part of a session returned to the browser."""

    username: Optional[str] = None
    token_type: Optional[str] = None


class TokenPayload(BaseModel):
    """Access token claims used by the web app."""

    sub: str = Field(..., description="Subject (username)")
    userId: int = Field(..., description="Backend user ID")
    roles: List[str] = Field(default_factory=list, description="Granted roles")
    exp: int = Field(..., description="Expiration timestamp")
    iat: Optional[int] = Field(default=None, description="Issued-at timestamp")


class CurrentUserResponse(BaseModel):
    """Current user derived from the access token."""

    id: Optional[int] = None
    username: str
    roles: List[str] = Field(default_factory=list)
    exp: Optional[int] = None


class LoginRequest(BaseModel):
    """Login credentials forwarded to the backend."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RegisterRequest(CamelModel):
    """Registration form forwarded to the backend."""

    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
