"""
Compilation-set assembly with cycle detection.

A single depth-first walk from the entry file collects the minimal set of
internal sources, the external library manifest, and any dependency cycles.
Node states are tracked explicitly:

    unvisited -> in_progress -> done

Reaching an ``in_progress`` node closes a cycle (recorded, not re-entered);
reaching a ``done`` node is a no-op. Only ``unvisited`` nodes are entered,
so the walk terminates on any graph.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from ..errors import UnknownFile
from ..logging import get_logger
from .graph import (
    AmbiguousImport,
    DependencyGraphBuilder,
    DependencyGraphResult,
    EdgeStatus,
)
from .libraries import LibraryRegistry
from .paths import RootEscape
from .tree import ProjectFile, ProjectTree

log = get_logger(__name__)


class VisitState(Enum):
    UNVISITED = 0
    IN_PROGRESS = 1
    DONE = 2


@dataclass
class CompilationUnit:
    root_id: str
    entry_path: str
    files: Dict[str, str] = field(default_factory=dict)
    external_libraries: List[str] = field(default_factory=list)
    external_imports: List[str] = field(default_factory=list)
    had_cycle: bool = False
    cycles: List[List[str]] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    ambiguous: List[AmbiguousImport] = field(default_factory=list)
    compile_order: List[str] = field(default_factory=list)

    @property
    def is_multi_file(self) -> bool:
        return len(self.files) > 1

    @property
    def total_size(self) -> int:
        return sum(len(src.encode("utf-8")) for src in self.files.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rootId": self.root_id,
            "entryPath": self.entry_path,
            "files": dict(self.files),
            "externalLibraries": list(self.external_libraries),
            "externalImports": list(self.external_imports),
            "hadCycle": self.had_cycle,
            "cycles": [list(c) for c in self.cycles],
            "missing": list(self.missing),
            "ambiguous": [
                {"sourceId": a.source_id, "importPath": a.raw_path, "candidates": list(a.candidates)}
                for a in self.ambiguous
            ],
            "compileOrder": list(self.compile_order),
        }


def _append_unique(seq: List[str], item: str) -> None:
    if item not in seq:
        seq.append(item)


def assemble_from_graph(root_id: str, result: DependencyGraphResult) -> CompilationUnit:
    """
    Walk ``result`` from ``root_id`` and build the unit.

    The walk keeps its own stack of ``(node, remaining children)`` frames, so
    import chains of any depth are handled without recursion.
    """
    tree = result.tree
    root = tree.get(root_id)
    if not root.is_file:
        raise UnknownFile(root_id, reason="is a folder, not a source file")

    unit = CompilationUnit(root_id=root_id, entry_path=tree.path_of(root_id))
    state: Dict[str, VisitState] = {}
    path: List[str] = []
    frames: List[Tuple[str, Iterator[str]]] = []

    def enter(node: str) -> None:
        state[node] = VisitState.IN_PROGRESS
        path.append(node)
        frames.append((node, iter(result.graph.get(node, ()))))
        unit.files[tree.path_of(node)] = tree.get(node).content or ""

        for edge in result.edges_from(node):
            if edge.status is EdgeStatus.EXTERNAL:
                _append_unique(unit.external_libraries, edge.library_prefix)
                _append_unique(unit.external_imports, edge.raw_path)
            elif edge.status is EdgeStatus.UNRESOLVED:
                _append_unique(unit.missing, edge.raw_path)

        unit.ambiguous.extend(a for a in result.ambiguous if a.source_id == node)

    enter(root_id)
    while frames:
        node, children = frames[-1]
        child = next(children, None)
        if child is None:
            frames.pop()
            path.pop()
            state[node] = VisitState.DONE
            unit.compile_order.append(tree.path_of(node))
            continue

        seen = state.get(child, VisitState.UNVISITED)
        if seen is VisitState.IN_PROGRESS:
            chain = path[path.index(child):] + [child]
            unit.had_cycle = True
            unit.cycles.append([tree.path_of(fid) for fid in chain])
        elif seen is VisitState.UNVISITED:
            enter(child)

    for cycle in unit.cycles:
        log.warning("dependency_cycle", entry=unit.entry_path, cycle=" -> ".join(cycle))
    return unit


def assemble_compilation_unit(
    root_id: str,
    files: Union[DependencyGraphResult, ProjectTree, Iterable[Union[ProjectFile, Mapping[str, Any]]]],
    *,
    registry: Optional[LibraryRegistry] = None,
    root_escape: RootEscape = "strict",
    builder: Optional[DependencyGraphBuilder] = None,
) -> CompilationUnit:
    """
    Assemble the compilation unit for ``root_id``.

    ``files`` may be a prebuilt graph result, a snapshot, or raw records. A
    ``builder`` lets callers share the incremental caches across requests.

    Raises
    ------
    UnknownFile
        If ``root_id`` is not in the snapshot or names a folder.
    """
    if isinstance(files, DependencyGraphResult):
        result = files
    else:
        builder = builder or DependencyGraphBuilder(registry, root_escape=root_escape)
        result = builder.build(files)
    return assemble_from_graph(root_id, result)


__all__ = [
    "CompilationUnit",
    "VisitState",
    "assemble_compilation_unit",
    "assemble_from_graph",
]
