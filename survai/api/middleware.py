"""Request context middleware."""

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

REQUEST_ID_HEADER = "X-Request-ID"

# Applied to tracking responses; pixels are embedded cross-origin by browsers
TRACKING_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
}


def get_current_request_id() -> str | None:
    """Get the request ID for the request being handled, if any."""
    return _request_id.get()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID and logs request completion."""

    def __init__(self, app, tracking_path_prefix: str = "/api/track") -> None:
        super().__init__(app)
        self.tracking_path_prefix = tracking_path_prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = _request_id.set(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 2)

            response.headers[REQUEST_ID_HEADER] = request_id
            if request.url.path.startswith(self.tracking_path_prefix):
                for name, value in TRACKING_SECURITY_HEADERS.items():
                    response.headers[name] = value

            logger.info(
                "Request completed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            return response
        finally:
            _request_id.reset(token)
