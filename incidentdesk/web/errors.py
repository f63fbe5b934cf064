"""Map the exception hierarchy onto the JSON error envelope."""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from incidentdesk.exceptions import DirectoryError, IncidentDeskError

logger = structlog.get_logger(__name__)

DIRECTORY_STATUS: dict[str, int] = {
    "UsernameExistsException": 409,
    "UserNotFoundException": 404,
    "InvalidParameterException": 400,
    "InvalidPasswordException": 400,
}


def error_response(status_code: int, error: str, details: Any = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "details": jsonable_encoder(details)},
    )


def status_for(exc: IncidentDeskError) -> int:
    if isinstance(exc, DirectoryError):
        return DIRECTORY_STATUS.get(exc.code, 500)
    return exc.status_code


async def _incidentdesk_error(request: Request, exc: IncidentDeskError) -> JSONResponse:
    status = status_for(exc)
    details = exc.details
    if isinstance(exc, DirectoryError):
        details = {"code": exc.code}
    log = logger.error if status >= 500 else logger.info
    log("request_failed", path=request.url.path, status=status, error=exc.message)
    return error_response(status, exc.message, details)


async def _request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [{k: v for k, v in e.items() if k != "ctx"} for e in exc.errors()]
    fields = [".".join(str(p) for p in e.get("loc", ()) if p != "body") for e in errors]
    fields = [f for f in fields if f]
    message = f"Invalid request: {', '.join(fields)}" if fields else "Invalid request"
    logger.info("request_invalid", path=request.url.path, fields=fields)
    return error_response(400, message, errors)


async def _http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


async def _upstream_http_error(request: Request, exc: httpx.HTTPError) -> JSONResponse:
    logger.error("upstream_http_error", path=request.url.path, error=str(exc))
    return error_response(500, "Upstream service unavailable", str(exc))


def register_error_handlers(app: FastAPI) -> None:
    handlers: dict[type[Exception], Any] = {
        IncidentDeskError: _incidentdesk_error,
        RequestValidationError: _request_validation_error,
        StarletteHTTPException: _http_exception,
        httpx.HTTPError: _upstream_http_error,
    }
    for exc_class, handler in handlers.items():
        app.add_exception_handler(exc_class, handler)
