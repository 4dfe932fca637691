"""Application configuration using Pydantic Settings."""

from typing import List, Optional
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    PROJECT_NAME: str = "Rentacar Web"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"

    # Backend REST API
    API_BASE_URL: str = ""
    HTTP_TIMEOUT_SECONDS: Optional[float] = None

    # Public origin of this web app, used by the browser-side client
    APP_BASE_URL: str = "http://localhost:3000"

    # Token verification (used by /auth/me)
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"

    # Credential cookies
    ACCESS_TOKEN_COOKIE: str = "access_token"
    REFRESH_TOKEN_COOKIE: str = "refresh_token"
    ACCESS_TOKEN_MAX_AGE: int = 900  # 15 minutes
    REFRESH_TOKEN_MAX_AGE: int = 60 * 60 * 24 * 7  # 7 days

    # CORS Configuration
    BACKEND_CORS_ORIGINS: List[str] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, list):
            return v
        elif isinstance(v, str):
            import json

            return json.loads(v)
        raise ValueError(v)

    @model_validator(mode="after")
    def default_api_base_url(self) -> "Settings":
        """Fall back to the local backend in development only."""
        if not self.API_BASE_URL:
            if self.ENVIRONMENT != "development":
                raise ValueError("API_BASE_URL environment variable is required")
            self.API_BASE_URL = "http://localhost:8082"
        self.API_BASE_URL = self.API_BASE_URL.rstrip("/")
        return self

    @property
    def secure_cookies(self) -> bool:
        """Cookies carry the Secure flag everywhere except local development."""
        return self.ENVIRONMENT != "development"

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or console

    # OpenTelemetry Configuration
    OTEL_SERVICE_NAME: str = "rentacar-web"
    OTEL_TRACE_SAMPLE_RATE: float = 1.0  # 1.0 = 100% sampling
    OTEL_EXPORT_CONSOLE: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
