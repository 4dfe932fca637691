"""Schemas package for request/response validation."""

from rentacar.schemas.common import (
    ApiError,
    ResponseMessage,
    HealthCheckResponse,
)
from rentacar.schemas.token import (
    AuthResponse,
    CurrentUserResponse,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    SessionResponse,
    TokenPayload,
)

__all__ = [
    "ApiError",
    "ResponseMessage",
    "HealthCheckResponse",
    "AuthResponse",
    "CurrentUserResponse",
    "LoginRequest",
    "RefreshTokenRequest",
    "RegisterRequest",
    "SessionResponse",
    "TokenPayload",
]
