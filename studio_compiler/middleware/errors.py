from __future__ import annotations

"""
Exception → RFC7807 "problem+json" mappers for FastAPI.

- Produces `application/problem+json` for:
    * ApiError subclasses (from studio_compiler.errors)
    * Starlette/FastAPI HTTPException
    * RequestValidationError
    * Unhandled exceptions (500)
- Attaches `request_id` from request.state when the request-id middleware ran.
- Never leaks stack traces in responses; logs them instead.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from studio_compiler.errors import ApiError
from studio_compiler.logging import get_logger

PROBLEM_CT = "application/problem+json"

log = get_logger(__name__)

_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    413: "Payload Too Large",
    415: "Unsupported Media Type",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


def _with_request(request: Request, body: Dict[str, Any]) -> Dict[str, Any]:
    body.setdefault("instance", str(request.url.path))
    rid = getattr(request.state, "request_id", "") or ""
    if rid:
        body.setdefault("request_id", rid)
    return body


def _problem(
    request: Request,
    *,
    status: int,
    detail: str = "",
    extras: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": _TITLES.get(status, "Error"),
        "status": status,
        "detail": detail,
    }
    if extras:
        for k, v in extras.items():
            body.setdefault(k, v)
    return _with_request(request, body)


def _respond(status: int, body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status, content=jsonable_encoder(body), media_type=PROBLEM_CT)


# --------------------------- Handlers ---------------------------


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    body = _with_request(request, exc.to_problem())
    if exc.status_code >= 500:
        log.error("api_error", status=exc.status_code, code=exc.code, detail=exc.message)
    else:
        log.warning("api_error", status=exc.status_code, code=exc.code, detail=exc.message)
    return _respond(exc.status_code, body)


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    status = int(exc.status_code)
    body = _problem(request, status=status, detail=str(exc.detail or ""))
    (log.warning if status < 500 else log.error)("http_exception", status=status, detail=body["detail"])
    return _respond(status, body)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    body = _problem(
        request,
        status=422,
        detail="Request validation failed.",
        extras={"errors": exc.errors()},
    )
    log.warning("validation_error", path=str(request.url.path), errors=len(body["errors"]))
    return _respond(422, body)


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    err = ApiError.from_unexpected(exc)
    body = _with_request(
        request,
        {
            "type": err.type_uri(),
            "title": err.title(),
            "status": 500,
            "code": err.code,
            "detail": "An unexpected error occurred. Please retry or report the request_id.",
        },
    )
    log.exception("unhandled_exception", exc_type=exc.__class__.__name__, path=str(request.url.path))
    return _respond(500, body)


# --------------------------- Installer ---------------------------


def install_error_handlers(app: FastAPI) -> None:
    """
    Register exception handlers on the given FastAPI app.
    """
    app.add_exception_handler(ApiError, _handle_api_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected_error)


__all__ = [
    "install_error_handlers",
    "PROBLEM_CT",
]
