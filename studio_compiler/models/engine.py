"""
Request/response models for the dependency-engine endpoints.

Responses are built from engine dataclasses by the ``from_*`` classmethods so
routers stay thin.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from studio_compiler.engine.assemble import CompilationUnit
from studio_compiler.engine.graph import DependencyGraphResult
from studio_compiler.engine.imports import ImportAnalysis
from studio_compiler.engine.libraries import LibraryRegistry

from .common import ApiModel, FilesPayload


# ----------------------------- Imports -----------------------------


class SourceRequest(ApiModel):
    content: str = ""


class ImportsResponse(ApiModel):
    imports: List[str]
    contracts: List[str]


class LibraryInfoModel(ApiModel):
    prefix: str
    url: str
    docs: str
    description: str


class ImportAnalysisResponse(ApiModel):
    internal: List[str]
    external: Dict[str, List[str]]
    required_versions: Dict[str, str]
    warnings: List[str]
    libraries: List[LibraryInfoModel] = Field(default_factory=list)

    @classmethod
    def from_analysis(cls, analysis: ImportAnalysis, registry: LibraryRegistry) -> "ImportAnalysisResponse":
        libs = [
            LibraryInfoModel(prefix=p, **registry.entries[p].to_dict())
            for p in analysis.external
            if p in registry
        ]
        return cls(
            internal=analysis.internal,
            external=analysis.external,
            required_versions=analysis.required_versions,
            warnings=analysis.warnings,
            libraries=libs,
        )


# ----------------------------- Resolve -----------------------------


class ResolveRequest(ApiModel):
    from_path: str = Field(..., min_length=1)
    import_path: str = Field(..., min_length=1)


class ResolveResponse(ApiModel):
    path: str
    library: Optional[str] = None


# ----------------------------- Graph -------------------------------


class GraphRequest(FilesPayload):
    pass


class ExternalReferenceModel(ApiModel):
    prefix: str
    import_path: str
    url: str
    docs: str
    description: str


class AmbiguousImportModel(ApiModel):
    source_id: str
    import_path: str
    candidates: List[str]


class EdgeModel(ApiModel):
    source_id: str
    import_path: str
    status: str
    target_id: Optional[str] = None
    resolved_path: Optional[str] = None
    via_fallback: bool = False


class GraphResponse(ApiModel):
    graph: Dict[str, List[str]]
    paths: Dict[str, str]
    edges: List[EdgeModel]
    external: List[ExternalReferenceModel]
    missing: List[str]
    ambiguous: List[AmbiguousImportModel]
    fingerprint: str

    @classmethod
    def from_result(cls, result: DependencyGraphResult) -> "GraphResponse":
        return cls(
            graph=result.graph,
            paths={fid: result.tree.path_of(fid) for fid in result.graph},
            edges=[
                EdgeModel(
                    source_id=e.source_id,
                    import_path=e.raw_path,
                    status=e.status.value,
                    target_id=e.target_id,
                    resolved_path=e.resolved_path,
                    via_fallback=e.via_fallback,
                )
                for e in result.edges
            ],
            external=[
                ExternalReferenceModel(prefix=r.prefix, import_path=r.import_path, **r.info.to_dict())
                for r in result.external
            ],
            missing=result.missing,
            ambiguous=[
                AmbiguousImportModel(source_id=a.source_id, import_path=a.raw_path, candidates=list(a.candidates))
                for a in result.ambiguous
            ],
            fingerprint=result.fingerprint,
        )


# ----------------------------- Unit --------------------------------


class UnitRequest(FilesPayload):
    root_id: str = Field(..., min_length=1)


class UnitResponse(ApiModel):
    root_id: str
    entry_path: str
    files: Dict[str, str]
    external_libraries: List[str]
    external_imports: List[str]
    had_cycle: bool
    cycles: List[List[str]]
    missing: List[str]
    ambiguous: List[AmbiguousImportModel]
    compile_order: List[str]

    @classmethod
    def from_unit(cls, unit: CompilationUnit) -> "UnitResponse":
        return cls(
            root_id=unit.root_id,
            entry_path=unit.entry_path,
            files=unit.files,
            external_libraries=unit.external_libraries,
            external_imports=unit.external_imports,
            had_cycle=unit.had_cycle,
            cycles=unit.cycles,
            missing=unit.missing,
            ambiguous=[
                AmbiguousImportModel(source_id=a.source_id, import_path=a.raw_path, candidates=list(a.candidates))
                for a in unit.ambiguous
            ],
            compile_order=unit.compile_order,
        )


# ----------------------------- Explain -----------------------------


class ExplainRequest(ApiModel):
    message: str


class ExplainResponse(ApiModel):
    kind: Optional[str] = None
    message: str
    detail: Optional[str] = None


__all__ = [
    "AmbiguousImportModel",
    "EdgeModel",
    "ExplainRequest",
    "ExplainResponse",
    "ExternalReferenceModel",
    "GraphRequest",
    "GraphResponse",
    "ImportAnalysisResponse",
    "ImportsResponse",
    "LibraryInfoModel",
    "ResolveRequest",
    "ResolveResponse",
    "SourceRequest",
    "UnitRequest",
    "UnitResponse",
]
