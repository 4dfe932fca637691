"""Request logging middleware with context and tracing."""

import time
import uuid
import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from rentacar.config import settings
from rentacar.utils.context import set_context, clear_context
from rentacar.utils.telemetry import get_tracer, add_span_attributes

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log each request and response, and expose a request ID."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        set_context(request_id=request_id, action="http.request")

        tracer = get_tracer()

        with tracer.start_as_current_span(
            f"{request.method} {request.url.path}"
        ) as span:
            add_span_attributes(
                **{
                    "http.method": request.method,
                    "http.path": request.url.path,
                    "http.client_ip": request.client.host if request.client else None,
                    "http.has_session": settings.ACCESS_TOKEN_COOKIE in request.cookies,
                }
            )

            logger.info(
                "Request started",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "client_ip": request.client.host if request.client else None,
                },
            )

            start_time = time.perf_counter()

            try:
                response = await call_next(request)
                duration_ms = (time.perf_counter() - start_time) * 1000

                add_span_attributes(
                    **{
                        "http.status_code": response.status_code,
                        "http.duration_ms": round(duration_ms, 2),
                    }
                )

                response.headers["X-Request-ID"] = request_id
                response.headers["X-Process-Time"] = f"{duration_ms:.2f}ms"

                logger.info(
                    "Request completed",
                    extra={
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": response.status_code,
                        "duration_ms": round(duration_ms, 2),
                    },
                )

                return response

            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                span.record_exception(e)
                logger.error(
                    "Request failed",
                    extra={
                        "method": request.method,
                        "path": request.url.path,
                        "duration_ms": round(duration_ms, 2),
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                raise

            finally:
                clear_context()
