"""
Pure, synchronous dependency engine.

Everything here works on an immutable :class:`ProjectTree` snapshot and
performs no network I/O; the HTTP service and the CLI are thin shells around it.
"""

from .assemble import CompilationUnit, assemble_compilation_unit, assemble_from_graph
from .diagnostics import (
    CompileFailure,
    CompileSuccess,
    InterpretedError,
    classify_compiler_error,
    interpret_compiler_error,
    parse_compiler_response,
)
from .graph import (
    AmbiguousImport,
    DependencyGraphBuilder,
    DependencyGraphResult,
    EdgeStatus,
    ExternalLibraryReference,
    ImportEdge,
    build_dependency_graph,
)
from .imports import ImportAnalysis, analyze_imports, extract_contract_names, get_imports_for
from .libraries import DEFAULT_LIBRARIES, LibraryInfo, LibraryMatch, LibraryRegistry, default_registry
from .paths import resolve_import
from .tree import ProjectFile, ProjectTree

__all__ = [
    "AmbiguousImport",
    "CompilationUnit",
    "CompileFailure",
    "CompileSuccess",
    "DEFAULT_LIBRARIES",
    "DependencyGraphBuilder",
    "DependencyGraphResult",
    "EdgeStatus",
    "ExternalLibraryReference",
    "ImportAnalysis",
    "ImportEdge",
    "InterpretedError",
    "LibraryInfo",
    "LibraryMatch",
    "LibraryRegistry",
    "ProjectFile",
    "ProjectTree",
    "analyze_imports",
    "assemble_compilation_unit",
    "assemble_from_graph",
    "build_dependency_graph",
    "classify_compiler_error",
    "default_registry",
    "extract_contract_names",
    "get_imports_for",
    "interpret_compiler_error",
    "parse_compiler_response",
    "resolve_import",
]
