"""Main FastAPI application."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from rentacar import __version__
from rentacar.config import settings
from rentacar.core.exceptions import ApiException
from rentacar.utils.logger import setup_logging, get_logger
from rentacar.utils.telemetry import setup_telemetry, instrument_app
from rentacar.middleware.rate_limit import limiter
from rentacar.middleware.logging import LoggingMiddleware
from rentacar.api.v1.router import api_router

# Setup logging and telemetry
setup_logging()
setup_telemetry()
logger = get_logger(__name__)


def create_http_client() -> httpx.AsyncClient:
    """Connection pool for calls to the backend REST API."""
    options: Dict[str, Any] = {}
    if settings.HTTP_TIMEOUT_SECONDS is not None:
        options["timeout"] = settings.HTTP_TIMEOUT_SECONDS
    return httpx.AsyncClient(**options)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    logger.info(
        f"Starting {settings.PROJECT_NAME}",
        extra={
            "version": __version__,
            "environment": settings.ENVIRONMENT,
            "debug": settings.DEBUG,
            "api_prefix": settings.API_PREFIX,
            "backend_url": settings.API_BASE_URL,
        },
    )

    instrument_app(app)

    if getattr(app.state, "http_client", None) is None:
        app.state.http_client = create_http_client()

    yield

    await app.state.http_client.aclose()
    app.state.http_client = None
    logger.info(f"Shutting down {settings.PROJECT_NAME}")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    description="Backend-for-frontend of the car rental web app",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(ApiException)
async def api_exception_handler(request: Request, exc: ApiException) -> JSONResponse:
    """Backend errors not handled by a route keep their status."""
    logger.error(
        "Unhandled backend error",
        extra={"path": request.url.path, "status_code": exc.status, "error": exc.message},
    )
    return JSONResponse(
        status_code=exc.status,
        content={"error": exc.message, "errors": exc.errors},
    )


app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/", tags=["Root"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": settings.PROJECT_NAME,
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "docs_url": "/docs",
        "health_check": f"{settings.API_PREFIX}/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rentacar.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
