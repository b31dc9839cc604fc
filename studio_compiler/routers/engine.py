from __future__ import annotations

"""
Dependency engine routers.

Endpoints:
  - POST /imports            : import paths and declared contracts of one source
  - POST /imports/analyze    : internal/external split and library version hints
  - POST /resolve            : resolve one import relative to an importing file
  - POST /graph              : dependency graph of a project snapshot
  - POST /compilation-unit   : files and library manifest for one entry file
  - POST /explain            : interpret a compiler error message

All engine work is synchronous and CPU-light, so handlers are plain ``def``
and FastAPI runs them in its threadpool.
"""

import logging

from fastapi import APIRouter, Request

from studio_compiler.config import Settings
from studio_compiler.engine.diagnostics import classify_compiler_error
from studio_compiler.engine.imports import (analyze_imports,
                                            extract_contract_names,
                                            get_imports_for)
from studio_compiler.engine.paths import resolve_import
from studio_compiler.models.engine import (ExplainRequest, ExplainResponse,
                                           GraphRequest, GraphResponse,
                                           ImportAnalysisResponse,
                                           ImportsResponse, ResolveRequest,
                                           ResolveResponse, SourceRequest,
                                           UnitRequest, UnitResponse)
from studio_compiler.services.compile import build_graph, build_unit

log = logging.getLogger(__name__)
router = APIRouter(tags=["engine"])


def _settings(request: Request) -> Settings:
    return request.app.state.settings


@router.post("/imports", response_model=ImportsResponse, summary="Parse import statements")
def post_imports(req: SourceRequest) -> ImportsResponse:
    return ImportsResponse(
        imports=get_imports_for(req.content),
        contracts=extract_contract_names(req.content),
    )


@router.post(
    "/imports/analyze",
    response_model=ImportAnalysisResponse,
    summary="Classify imports and report library version hints",
)
def post_imports_analyze(req: SourceRequest, request: Request) -> ImportAnalysisResponse:
    registry = request.app.state.registry
    return ImportAnalysisResponse.from_analysis(analyze_imports(req.content, registry), registry)


@router.post("/resolve", response_model=ResolveResponse, summary="Resolve an import path")
def post_resolve(req: ResolveRequest, request: Request) -> ResolveResponse:
    """
    Library imports come back unchanged with the matching prefix; relative
    imports are resolved lexically. A strict-mode root escape is a 422.
    """
    match = request.app.state.registry.classify(req.import_path)
    if match is not None:
        return ResolveResponse(path=req.import_path, library=match.prefix)
    path = resolve_import(req.from_path, req.import_path, root_escape=_settings(request).engine.root_escape)
    return ResolveResponse(path=path)


@router.post("/graph", response_model=GraphResponse, summary="Build the dependency graph")
def post_graph(req: GraphRequest, request: Request) -> GraphResponse:
    result = build_graph(req.records(), _settings(request))
    return GraphResponse.from_result(result)


@router.post(
    "/compilation-unit",
    response_model=UnitResponse,
    summary="Assemble the compilation unit for an entry file",
)
def post_compilation_unit(req: UnitRequest, request: Request) -> UnitResponse:
    unit = build_unit(req.root_id, req.records(), _settings(request), metrics=request.app.state.metrics)
    log.debug("unit assembled for %s: %d files", unit.entry_path, len(unit.files))
    return UnitResponse.from_unit(unit)


@router.post("/explain", response_model=ExplainResponse, summary="Explain a compiler error")
def post_explain(req: ExplainRequest) -> ExplainResponse:
    found = classify_compiler_error(req.message)
    return ExplainResponse(kind=found.kind, message=found.message, detail=found.detail)


__all__ = ["router"]
