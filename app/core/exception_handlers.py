"""
Global exception handlers for the FastAPI application.
Every error leaves the API as {"detail", "code", ...} with an X-Request-ID.
"""

import logging
import uuid
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException, ErrorCode

logger = logging.getLogger(__name__)

STATUS_TO_CODE = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.AUTH_NOT_AUTHENTICATED,
    403: ErrorCode.AUTHZ_FORBIDDEN,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    409: ErrorCode.RESOURCE_CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    429: ErrorCode.QUOTA_EXCEEDED,
    500: ErrorCode.SERVER_ERROR,
    502: ErrorCode.UPSTREAM_FAILURE,
    503: ErrorCode.SERVER_UNAVAILABLE,
}


def generate_request_id() -> str:
    """Generate a short request ID for error tracing"""
    return str(uuid.uuid4())[:8]


def _error_response(status_code: int, body: dict[str, Any], request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body,
        headers={"X-Request-ID": request_id},
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle AppException and its subclasses.
    These are expected domain outcomes, so they are logged without traceback.
    """
    request_id = generate_request_id()

    logger.warning(
        "AppException: %s (code=%s, status=%d, request_id=%s, path=%s)",
        exc.message,
        exc.code.value,
        exc.status_code,
        request_id,
        request.url.path,
    )

    return _error_response(exc.status_code, exc.to_dict(), request_id)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request body / query validation errors with field locations."""
    request_id = generate_request_id()

    logger.warning(
        "RequestValidationError: %s (request_id=%s, path=%s)",
        exc.errors(),
        request_id,
        request.url.path,
    )

    errors = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]

    return _error_response(
        422,
        {"detail": errors, "code": ErrorCode.VALIDATION_ERROR.value},
        request_id,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Convert plain HTTP exceptions (404 routes, 405s) into the same shape."""
    request_id = generate_request_id()
    error_code = STATUS_TO_CODE.get(exc.status_code, ErrorCode.SERVER_ERROR)

    logger.warning(
        "HTTPException: %s (status=%d, request_id=%s, path=%s)",
        exc.detail,
        exc.status_code,
        request_id,
        request.url.path,
    )

    return _error_response(
        exc.status_code,
        {"detail": exc.detail or "An error occurred", "code": error_code.value},
        request_id,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected exceptions; logs the traceback."""
    request_id = generate_request_id()

    logger.exception(
        "Unhandled exception (request_id=%s, path=%s): %s",
        request_id,
        request.url.path,
        str(exc),
    )

    return _error_response(
        500,
        {"detail": "알 수 없는 오류가 발생했어요", "code": ErrorCode.SERVER_ERROR.value},
        request_id,
    )
