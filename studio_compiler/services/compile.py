"""
Compile service: snapshot → dependency graph → compilation unit → compiler → result.

Entry points used by the routers and the CLI:

- build_graph(files, settings)               : dependency graph of a snapshot
- build_unit(root_id, files, settings)       : compilation unit for one entry file
- compile_project(client, root_id, files, …) : assemble, submit, interpret

The engine does the work; this layer only wires configuration in, counts
metrics, and maps adapter failures onto ApiError types.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from studio_compiler.adapters.compiler_client import (CompilerClient,
                                                      CompilerTransportError,
                                                      mode_for)
from studio_compiler.config import Settings
from studio_compiler.engine.assemble import (CompilationUnit,
                                             assemble_from_graph)
from studio_compiler.engine.diagnostics import CompileFailure, CompileSuccess
from studio_compiler.engine.graph import (DependencyGraphBuilder,
                                          DependencyGraphResult)
from studio_compiler.engine.imports import extract_contract_names
from studio_compiler.engine.tree import ProjectFile, ProjectTree
from studio_compiler.errors import (CompileFailed, CompilerUnavailable,
                                    PayloadTooLarge)
from studio_compiler.metrics import Metrics

log = logging.getLogger(__name__)

FilesInput = Union[ProjectTree, Iterable[Union[ProjectFile, Mapping[str, Any]]]]


@dataclass
class CompileOutcome:
    unit: CompilationUnit
    result: CompileSuccess
    mode: str

    def to_dict(self) -> Dict[str, Any]:
        body = self.result.to_dict()
        body["mode"] = self.mode
        body["unit"] = self.unit.to_dict()
        return body


# ---------- Helpers ----------


def new_builder(settings: Settings) -> DependencyGraphBuilder:
    return DependencyGraphBuilder(
        settings.registry(),
        root_escape=settings.engine.root_escape,
        suffixes=settings.engine.source_suffixes,
    )


def _count(metrics: Optional[Metrics], mode: str, outcome: str) -> None:
    if metrics is not None:
        metrics.compile_requests_total.labels(mode, outcome).inc()


# ---------- Public API ----------


def build_graph(
    files: FilesInput,
    settings: Settings,
    *,
    builder: Optional[DependencyGraphBuilder] = None,
) -> DependencyGraphResult:
    builder = builder or new_builder(settings)
    result = builder.build(files)
    log.debug(
        "graph built: files=%d edges=%d missing=%d ambiguous=%d",
        len(result.graph),
        len(result.edges),
        len(result.missing),
        len(result.ambiguous),
    )
    return result


def build_unit(
    root_id: str,
    files: FilesInput,
    settings: Settings,
    *,
    builder: Optional[DependencyGraphBuilder] = None,
    metrics: Optional[Metrics] = None,
) -> CompilationUnit:
    unit = assemble_from_graph(root_id, build_graph(files, settings, builder=builder))
    if unit.cycles and metrics is not None:
        metrics.dependency_cycles_total.inc(len(unit.cycles))
    return unit


async def compile_unit(
    client: CompilerClient,
    unit: CompilationUnit,
    *,
    metrics: Optional[Metrics] = None,
) -> CompileOutcome:
    """
    Submit an assembled unit.

    Raises
    ------
    PayloadTooLarge
        Before any request, if the unit exceeds the client's limits.
    CompilerUnavailable
        If the compiler service could not be reached after retries.
    CompileFailed
        If the compiler rejected the sources; carries the interpreted message.
    """
    mode = mode_for(unit)
    try:
        client.limits.check(unit.files)
        result = await client.compile_unit(unit)
    except PayloadTooLarge:
        _count(metrics, mode, "rejected")
        raise
    except CompilerTransportError as e:
        _count(metrics, mode, "unavailable")
        raise CompilerUnavailable(str(e), details={"attempts": e.attempts, "status": e.status}) from e

    if isinstance(result, CompileFailure):
        _count(metrics, mode, "failure")
        log.info("compile failed for %s (kind=%s)", unit.entry_path, result.kind)
        raise CompileFailed(
            result.message,
            raw_message=result.raw_message,
            kind=result.kind,
            missing=unit.missing,
        )

    if not result.contract_name:
        # first contract declared in the entry file
        declared = extract_contract_names(unit.files[unit.entry_path])
        result.contract_name = declared[0] if declared else ""

    _count(metrics, mode, "success")
    log.info(
        "compiled %s (%s mode, %d files, contract=%s)",
        unit.entry_path,
        mode,
        len(unit.files),
        result.contract_name,
    )
    return CompileOutcome(unit=unit, result=result, mode=mode)


async def compile_project(
    client: CompilerClient,
    root_id: str,
    files: FilesInput,
    settings: Settings,
    *,
    metrics: Optional[Metrics] = None,
) -> CompileOutcome:
    """Assemble the unit for ``root_id`` and compile it."""
    unit = build_unit(root_id, files, settings, metrics=metrics)
    return await compile_unit(client, unit, metrics=metrics)


__all__ = [
    "CompileOutcome",
    "build_graph",
    "build_unit",
    "compile_project",
    "compile_unit",
    "new_builder",
]
