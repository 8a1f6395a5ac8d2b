"""Request timing and request-id binding for structlog."""

from __future__ import annotations

import time
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from location_engine.observability.logger import get_logger

logger = get_logger("middleware")


class RequestTimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        # Honor a caller-supplied id so client and server logs line up
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        start = time.monotonic()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                error=str(e),
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            raise

        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Duration-MS"] = str(round(duration_ms, 2))
        logger.info(
            "request_completed",
            method=request.method,
            status=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        return response
