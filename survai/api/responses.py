"""Response envelope helpers and exception handlers.

Every response is ``{success, data?, error?, timestamp}``. Failures
never expose exception text beyond the TrackingError message.
"""

import logging
from datetime import datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from survai.api.schemas.tracking import ApiResponse
from survai.core.errors import TrackingError

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    return datetime.utcnow().isoformat(timespec="milliseconds") + "Z"


def ok(data: Any) -> ApiResponse:
    """Wrap a payload in a success envelope."""
    return ApiResponse(success=True, data=data, timestamp=utc_timestamp())


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "timestamp": utc_timestamp()},
    )


async def tracking_error_handler(request: Request, exc: TrackingError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    message = f"Invalid request parameters: {', '.join(fields)}" if fields else "Invalid request"
    return error_response(400, message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(exc.status_code, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        extra={"path": request.url.path, "method": request.method},
    )
    return error_response(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TrackingError, tracking_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
