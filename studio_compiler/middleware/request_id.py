from __future__ import annotations

"""
Request ID middleware.

- Propagates an inbound **X-Request-ID** or generates one (uuid4 hex).
- Exposes it as `request.state.request_id` for handlers and error bodies.
- Binds it into structlog contextvars for the duration of the request.
- Echoes it on the response.

Usage
-----
    from fastapi import FastAPI
    from studio_compiler.middleware.request_id import install_request_id_middleware

    app = FastAPI()
    install_request_id_middleware(app)
"""

import re
import uuid

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from studio_compiler.logging import bind_request_context, clear_request_context

REQUEST_ID_HEADER = "X-Request-ID"

# inbound ids are echoed into headers and logs, so keep them tame
_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9._\-]{1,128}$")


def _pick_request_id(inbound: str | None) -> str:
    if inbound and _SAFE_ID_RE.match(inbound):
        return inbound
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, header: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self.header = header

    async def dispatch(self, request: Request, call_next):
        req_id = _pick_request_id(request.headers.get(self.header))
        request.state.request_id = req_id
        bind_request_context(request_id=req_id)
        try:
            response: Response = await call_next(request)
        finally:
            clear_request_context("request_id")
        response.headers[self.header] = req_id
        return response


def install_request_id_middleware(app: FastAPI, *, header: str = REQUEST_ID_HEADER) -> None:
    app.add_middleware(RequestIdMiddleware, header=header)


__all__ = [
    "REQUEST_ID_HEADER",
    "RequestIdMiddleware",
    "install_request_id_middleware",
]
