# agencycrm/errors.py
from __future__ import annotations

import logging
import traceback
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import settings

log = logging.getLogger("agencycrm.errors")


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


class InvalidCredentials(HTTPException):
    """Login failure. One message for every failing factor."""

    def __init__(self):
        super().__init__(status_code=401, detail="Invalid credentials")


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Access denied"):
        super().__init__(status_code=403, detail=detail)


class NotFound(HTTPException):
    def __init__(self, resource: str = "resource"):
        super().__init__(status_code=404, detail=f"{resource} not found")


class AgencyNotFound(HTTPException):
    def __init__(self):
        super().__init__(status_code=404, detail="Agency not found")


class ValidationFailed(HTTPException):
    def __init__(self, field: str, message: str, *more: tuple[str, str]):
        errors = [{"field": field, "message": message}]
        errors.extend({"field": f, "message": m} for f, m in more)
        super().__init__(status_code=400, detail=errors)


class Conflict(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=409, detail=detail)


def _store_error_code(exc: BaseException) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    if orig is None:
        return None
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlite_errorname", None)
    return str(code) if code else type(orig).__name__


def internal_error_body(exc: BaseException, request_id: Optional[str] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": "Internal server error"}
    if request_id:
        # safe in prod: lets a caller point at the matching log line
        body["requestId"] = request_id
    if settings.expose_error_details:
        body["message"] = str(exc)
        body["type"] = type(exc).__name__
        code = _store_error_code(exc)
        if code:
            body["code"] = code
        body["details"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception(
        "unhandled error on %s %s",
        request.method,
        request.url.path,
        extra={
            "path": request.url.path,
            "request_id": getattr(request.state, "request_id", None),
            "user_id": getattr(request.state, "user_id", None),
            "agency_id": getattr(request.state, "agency_id", None),
        },
    )
    return JSONResponse(
        status_code=500,
        content=internal_error_body(exc, getattr(request.state, "request_id", None)),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, unhandled_exception_handler)
