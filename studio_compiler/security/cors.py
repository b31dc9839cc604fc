from __future__ import annotations

"""
CORS configuration helpers for FastAPI.

- Deny by default: only configured origins are allowed.
- Exact origins and glob patterns ("https://*.example.com") are supported.
- "*" together with credentials is rejected.

Usage
-----
    from fastapi import FastAPI
    from studio_compiler.security.cors import setup_cors

    app = FastAPI()
    setup_cors(app, settings.cors)
"""

import re
from typing import List, Optional, Tuple

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from studio_compiler.config import CorsConfig
from studio_compiler.logging import get_logger

log = get_logger(__name__)

EXPOSE_HEADERS = ["X-Request-ID"]


def _glob_to_regex(glob_origin: str) -> str:
    """
    Convert "https://*.example.com" to an anchored regex. '*' stands for one
    or more DNS labels; paths are not allowed.
    """
    if "://" not in glob_origin:
        raise ValueError(f"Invalid origin pattern (missing scheme): {glob_origin!r}")
    if "/" in glob_origin.split("://", 1)[1]:
        raise ValueError(f"Origin patterns must not include paths: {glob_origin!r}")
    escaped = re.escape(glob_origin).replace(r"\*", r"(?:[^/.:]+\.)+")
    return r"^" + escaped + r"$"


def split_origins(origins: List[str]) -> Tuple[List[str], Optional[str]]:
    """Return (exact origins, combined regex for glob patterns or None)."""
    exact: List[str] = []
    patterns: List[str] = []
    for o in origins:
        if o == "*" or "*" not in o:
            exact.append(o.rstrip("/"))
        else:
            patterns.append(_glob_to_regex(o))
    if not patterns:
        return exact, None
    if len(patterns) == 1:
        return exact, patterns[0]
    return exact, r"^(?:" + r"|".join(p.strip("^$") for p in patterns) + r")$"


def setup_cors(app: FastAPI, config: CorsConfig) -> None:
    exact, regex = split_origins(config.allow_origins)
    if "*" in exact and config.allow_credentials:
        raise ValueError("CORS: '*' origin cannot be combined with credentials")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=exact,
        allow_origin_regex=regex,
        allow_methods=config.allow_methods,
        allow_headers=config.allow_headers,
        expose_headers=EXPOSE_HEADERS,
        allow_credentials=config.allow_credentials,
        max_age=600,
    )
    log.debug("cors_configured", origins=exact, origin_regex=regex)


__all__ = ["setup_cors", "split_origins"]
