from __future__ import annotations

"""
Compile router.

  - POST /compile : assemble the unit for ``rootId`` and submit it to the
                    compiler service

Failures are raised as ApiError and rendered as problem+json:
  413 payload too large, 422 compile failed (interpreted message),
  502 compiler unreachable.
"""

import logging

from fastapi import APIRouter, Request

from studio_compiler.models.compile import CompileRequest, CompileResponse
from studio_compiler.services.compile import compile_project

log = logging.getLogger(__name__)
router = APIRouter(tags=["compile"])


@router.post("/compile", response_model=CompileResponse, summary="Compile a project entry file")
async def post_compile(req: CompileRequest, request: Request) -> CompileResponse:
    state = request.app.state
    log.debug("POST /compile root=%s files=%d", req.root_id, len(req.files))
    outcome = await compile_project(
        state.compiler,
        req.root_id,
        req.records(),
        state.settings,
        metrics=state.metrics,
    )
    return CompileResponse.from_outcome(outcome)


__all__ = ["router"]
