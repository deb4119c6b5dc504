"""
Error types and the uniform response envelope.

Every response leaving the API has the shape
``{statusCode, data, message, success}``; errors add an ``errors`` list.
"""

import logging
from typing import Any, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base exception carrying an HTTP status and a client-facing message."""

    status_code = 500

    def __init__(self, message: str = "Something went wrong", errors: Optional[List[Any]] = None,
                 status_code: Optional[int] = None):
        self.message = message
        self.errors = errors or []
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InvalidArgument(ApiError):
    status_code = 400


class Unauthenticated(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


class Internal(ApiError):
    status_code = 500


def api_response(status_code: int, data: Any = None, message: str = "Success") -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "data": data,
            "message": message,
            "success": status_code < 400,
        },
    )


def error_response(status_code: int, message: str, errors: Optional[List[Any]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "data": None,
            "message": message,
            "success": False,
            "errors": errors or [],
        },
    )


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """Attach the single cross-cutting error handler set to ``app``."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(exc.status_code, exc.message, exc.errors)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", [])), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return error_response(400, "Invalid request", errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = str(exc) if debug else "Internal server error"
        return error_response(500, message)
