"""
Response envelope and error rendering shared by every route.

Success: {"data": ..., "message": ...}
Error:   {"error": "...", "details": ...}
"""

import logging
from typing import Any, Optional

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config.settings import settings

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """HTTPException that also carries structured details for the client"""

    def __init__(self, status_code: int, detail: str, details: Any = None):
        super().__init__(status_code=status_code, detail=detail)
        self.details = details


def success_response(data: Any = None, message: Optional[str] = None) -> dict:
    body = {"data": jsonable_encoder(data)}
    if message:
        body["message"] = message
    return body


def error_body(error: str, details: Any = None) -> dict:
    body = {"error": error}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    details = getattr(exc, "details", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), details),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=error_body("Invalid request data", exc.errors()),
    )


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content=error_body("Too many requests", str(exc.detail)),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content=error_body("Internal server error"))
    return JSONResponse(status_code=500, content=error_body("Internal server error", str(exc)))
