from __future__ import annotations

"""
Liveness and version endpoints.

- GET /healthz : process is up; reports uptime and the configured compiler URL
- GET /version : package version plus build metadata
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request

from studio_compiler.version import build_info

log = logging.getLogger(__name__)
router = APIRouter(tags=["health"])

_PROCESS_START = time.time()


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/healthz", summary="Liveness probe")
async def healthz(request: Request) -> Dict[str, Any]:
    settings = request.app.state.settings
    return {
        "ok": True,
        "time": _utcnow_iso(),
        "uptime_s": round(max(0.0, time.time() - _PROCESS_START), 3),
        "compiler_url": settings.compiler.url,
        "root_escape": settings.engine.root_escape,
    }


@router.get("/version", summary="Service version")
async def version() -> Dict[str, Any]:
    return build_info()


__all__ = ["router"]
