"""FastAPI middleware for the HTS risk API."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from hts_platform.logging_utils import get_logger, set_request_id
from hts_platform.openmrs.client import is_uuid

logger = get_logger("api_middleware")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add unique request ID to all requests.

    A client-supplied ``X-Request-ID`` is kept only when it is a UUID.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get("X-Request-ID")
        request_id = set_request_id(incoming if is_uuid(incoming) else None)
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all API requests with timing and PHI-safe information."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.time()
        request_id = getattr(request.state, "request_id", "unknown")

        logger.info(
            "API request started",
            request_id=request_id,
            method=request.method,
            path=str(request.url.path),
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                "API request failed",
                request_id=request_id,
                method=request.method,
                path=str(request.url.path),
                error=type(e).__name__,
                duration_seconds=round(duration, 3),
            )
            raise

        duration = time.time() - start_time
        logger.info(
            "API request completed",
            request_id=request_id,
            method=request.method,
            path=str(request.url.path),
            status_code=response.status_code,
            duration_seconds=round(duration, 3),
        )
        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Risk scores are patient data
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response.headers["Pragma"] = "no-cache"

        return response


def setup_middleware(app: FastAPI) -> None:
    """Register middleware. Starlette runs the last added first."""
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
