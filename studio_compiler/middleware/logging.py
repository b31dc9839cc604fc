from __future__ import annotations

"""
Access logging middleware.

One structured line per request with method, path, route, status,
latency_ms, rx_bytes and request_id.

Install:
    from fastapi import FastAPI
    from studio_compiler.middleware.logging import install_access_log_middleware

    app = FastAPI()
    install_access_log_middleware(app)
"""

import time

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from studio_compiler.logging import get_logger

log = get_logger("access")


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    if route is None:
        return ""
    return getattr(route, "path_format", None) or getattr(route, "path", "") or ""


def _content_length(request: Request) -> int:
    raw = request.headers.get("content-length") or "0"
    return int(raw) if raw.isdigit() else 0


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    Emit a structured access log for every request.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        start_ns = time.perf_counter_ns()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            latency_ms = (time.perf_counter_ns() - start_ns) / 1e6
            fields = dict(
                method=request.method,
                path=request.url.path,
                route=_route_template(request),
                status=status,
                latency_ms=round(latency_ms, 3),
                rx_bytes=_content_length(request),
                request_id=getattr(request.state, "request_id", "") or "",
            )
            if status >= 500:
                log.error("http_request", **fields)
            else:
                log.info("http_request", **fields)


def install_access_log_middleware(app: FastAPI) -> None:
    app.add_middleware(AccessLogMiddleware)


__all__ = ["AccessLogMiddleware", "install_access_log_middleware"]
