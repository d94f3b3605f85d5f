"""
Error handling middleware that converts exceptions to HTTP responses.
"""
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from summarizer.core.exceptions import SummarizerException
import logging

logger = logging.getLogger(__name__)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware to convert exceptions to appropriate HTTP responses."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)

        except SummarizerException as e:
            log = logger.warning if e.status_code < 500 else logger.error
            log(
                f"Application error: {e.message}",
                extra={
                    "context": {
                        "status_code": e.status_code,
                        "path": request.url.path,
                        "method": request.method,
                    }
                }
            )
            return JSONResponse(status_code=e.status_code, content=e.to_dict())

        except Exception as e:
            logger.error(
                f"Unexpected error: {str(e)}",
                exc_info=True,
                extra={"context": {"path": request.url.path, "method": request.method}}
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "detail": str(e),
                    "status_code": 500
                }
            )
