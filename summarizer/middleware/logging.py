"""
Request/response logging middleware.
"""
import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from summarizer.core.logging import (
    generate_request_id,
    set_job_id,
    set_request_id,
    log_event
)

# Polled endpoints that would flood the log
QUIET_PREFIXES = ("/health", "/status/")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tracks request IDs and logs requests/responses."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        set_job_id(None)

        start_time = time.time()
        quiet = request.url.path.startswith(QUIET_PREFIXES)

        if not quiet:
            log_event(
                level="INFO",
                logger=__name__,
                operation="http_request",
                event="request_received",
                message=f"Request received: {request.method} {request.url.path}",
                context={
                    "method": request.method,
                    "path": request.url.path,
                    "query_params": dict(request.query_params),
                    "client_host": request.client.host if request.client else None,
                    "content_type": request.headers.get("content-type"),
                    "content_length": request.headers.get("content-length"),
                }
            )

        try:
            response = await call_next(request)
        except Exception as e:
            log_event(
                level="ERROR",
                logger=__name__,
                operation="http_request",
                event="request_failed",
                message=f"Request failed: {request.method} {request.url.path}",
                context={"duration_seconds": round(time.time() - start_time, 3)},
                exc_info=e
            )
            raise

        if not quiet:
            log_event(
                level="INFO",
                logger=__name__,
                operation="http_request",
                event="response_sent",
                message=f"Response sent: {request.method} {request.url.path}",
                context={
                    "status_code": response.status_code,
                    "duration_seconds": round(time.time() - start_time, 3),
                }
            )

        response.headers["X-Request-ID"] = request_id
        return response
