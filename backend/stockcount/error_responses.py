"""Uniform JSON error bodies: {"error": message, "code": CODE, "status": n}."""
from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .domain_errors import DomainError

logger = logging.getLogger(__name__)


def _status_code_name(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).name
    except ValueError:
        return "ERROR"


def build_error_response(exc: DomainError) -> JSONResponse:
    """Render DomainError with its stable domain code."""
    payload: dict[str, object] = {
        "error": exc.message,
        "code": exc.code,
        "status": exc.http_status,
    }
    if exc.details is not None:
        payload["details"] = exc.details

    return JSONResponse(status_code=exc.http_status, content=payload)


async def _handle_domain_error(_: Request, exc: DomainError) -> JSONResponse:
    return build_error_response(exc)


async def _handle_http_exception(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else _status_code_name(exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message, "code": _status_code_name(exc.status_code), "status": exc.status_code},
        headers=getattr(exc, "headers", None),
    )


async def _handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": str(err.get("msg", ""))}
        for err in exc.errors()
    ]
    first = errors[0] if errors else None
    message = "Invalid request"
    if first:
        field = ".".join(part for part in first["loc"] if part != "body")
        message = f"{field}: {first['msg']}" if field else first["msg"]
    return JSONResponse(
        status_code=400,
        content={"error": message, "code": "VALIDATION_ERROR", "status": 400, "details": errors},
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    # Storage and driver internals are never echoed back to clients.
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR", "status": 500},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, _handle_domain_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)
