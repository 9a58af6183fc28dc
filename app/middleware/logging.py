"""
Request logging middleware.

Logs every request on arrival and its response on completion, tagged with
a short request id. Responses with status >= 400 are logged at error level.
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.utils.logging import get_logger


logger = get_logger(__name__, component="http")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs request and response details for each HTTP call."""

    async def dispatch(self, request: Request, call_next):
        request_id = uuid.uuid4().hex[:9]
        log = logger.with_context(request_id=request_id)
        start = time.time()

        log.with_context(operation="request").debug(
            f"{request.method} {request.url.path}",
            extra={
                "query": str(request.url.query),
                "client": request.client.host if request.client else None,
                "event": request.headers.get("x-github-event"),
                "delivery_id": request.headers.get("x-github-delivery"),
                "user_agent": request.headers.get("user-agent"),
            }
        )

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.time() - start) * 1000
            log.with_context(operation="response").error(
                f"{request.method} {request.url.path} raised after {duration_ms:.0f}ms",
                exc_info=True,
            )
            raise

        duration_ms = (time.time() - start) * 1000
        message = f"{request.method} {request.url.path} {response.status_code} - {duration_ms:.0f}ms"
        extra = {"status_code": response.status_code, "duration_ms": round(duration_ms, 2)}
        if response.status_code >= 400:
            log.with_context(operation="response").error(message, extra=extra)
        else:
            log.with_context(operation="response").info(message, extra=extra)

        response.headers["X-Request-ID"] = request_id
        return response
