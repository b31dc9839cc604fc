"""
Dependency graph construction.

For every source file and every import it declares, the builder decides one
of four outcomes:

- EXTERNAL    the path matches a known library prefix (no edge)
- INTERNAL    exactly one project file matches (edge source -> target)
- AMBIGUOUS   the filename fallback matched several files (no edge)
- UNRESOLVED  nothing matched, or the path escapes the project root

Matching is two-phase: canonical path first, then the bare filename. Each
phase also tries the name with every configured source suffix appended.
Only the first phase is unambiguous by construction.

:class:`DependencyGraphBuilder` keeps parsed imports keyed by content hash and
the last result keyed by the snapshot fingerprint, so rebuilding an unchanged
project is free and editing one file only re-parses that file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import PathEscapesRoot
from ..logging import get_logger
from .imports import parse_imports
from .libraries import LibraryInfo, LibraryRegistry, default_registry
from .paths import RootEscape, basename, candidate_paths, resolve_import
from .tree import ProjectFile, ProjectTree, as_tree

log = get_logger(__name__)

DEFAULT_SOURCE_SUFFIXES: Tuple[str, ...] = (".sol",)


class EdgeStatus(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"
    UNRESOLVED = "unresolved"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class ImportEdge:
    source_id: str
    raw_path: str
    status: EdgeStatus
    target_id: Optional[str] = None
    resolved_path: Optional[str] = None
    library_prefix: Optional[str] = None
    via_fallback: bool = False
    reason: Optional[str] = None
    candidates: Tuple[str, ...] = ()

    @property
    def target(self) -> str:
        """The target file id, or the status name for non-internal edges."""
        return self.target_id if self.status is EdgeStatus.INTERNAL else self.status.name


@dataclass(frozen=True)
class ExternalLibraryReference:
    prefix: str
    import_path: str
    info: LibraryInfo


@dataclass(frozen=True)
class AmbiguousImport:
    source_id: str
    raw_path: str
    candidates: Tuple[str, ...]

    @property
    def message(self) -> str:
        return f"Import {self.raw_path!r} matches several files by name: {', '.join(self.candidates)}"


@dataclass
class DependencyGraphResult:
    tree: ProjectTree
    graph: Dict[str, List[str]]
    edges: List[ImportEdge]
    external: List[ExternalLibraryReference]
    missing: List[str]
    ambiguous: List[AmbiguousImport]
    fingerprint: str
    _by_source: Dict[str, List[ImportEdge]] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if not self._by_source:
            for e in self.edges:
                self._by_source.setdefault(e.source_id, []).append(e)

    def edges_from(self, file_id: str) -> List[ImportEdge]:
        return list(self._by_source.get(file_id, ()))

    def dependencies_of(self, file_id: str) -> List[str]:
        return list(self.graph.get(file_id, ()))

    @property
    def unresolved(self) -> List[ImportEdge]:
        return [e for e in self.edges if e.status is EdgeStatus.UNRESOLVED]

    @property
    def library_manifest(self) -> List[str]:
        seen: Dict[str, None] = {}
        for ref in self.external:
            seen.setdefault(ref.prefix, None)
        return list(seen)


# --------------------------------- resolution ---------------------------------


def _lookup(
    tree: ProjectTree,
    resolved: str,
    raw_path: str,
    suffixes: Sequence[str] = DEFAULT_SOURCE_SUFFIXES,
) -> Tuple[List[ProjectFile], bool]:
    """
    Two-phase lookup. Returns (matches, via_fallback).

    Phase one can match at most one file because canonical paths are unique.
    """
    for cand in candidate_paths(resolved, suffixes):
        fid = tree.id_for_path(cand)
        if fid is not None:
            return [tree.get(fid)], False

    name = basename(raw_path)
    if not name or name in (".", ".."):
        return [], True
    matches: List[ProjectFile] = []
    for cand in candidate_paths(name, suffixes):
        matches.extend(tree.files_named(cand))
    return matches, True


def resolve_edge(
    tree: ProjectTree,
    source: ProjectFile,
    raw_path: str,
    registry: LibraryRegistry,
    *,
    root_escape: RootEscape = "strict",
    suffixes: Sequence[str] = DEFAULT_SOURCE_SUFFIXES,
) -> ImportEdge:
    match = registry.classify(raw_path)
    if match is not None:
        return ImportEdge(source.id, raw_path, EdgeStatus.EXTERNAL, library_prefix=match.prefix)

    source_path = tree.path_of(source.id)
    try:
        resolved = resolve_import(source_path, raw_path, root_escape=root_escape)
    except PathEscapesRoot:
        return ImportEdge(source.id, raw_path, EdgeStatus.UNRESOLVED, reason="escapes_root")

    matches, via_fallback = _lookup(tree, resolved, raw_path, suffixes)
    if not matches:
        return ImportEdge(source.id, raw_path, EdgeStatus.UNRESOLVED, resolved_path=resolved, reason="not_found")
    if len(matches) > 1:
        return ImportEdge(
            source.id,
            raw_path,
            EdgeStatus.AMBIGUOUS,
            resolved_path=resolved,
            reason="ambiguous",
            candidates=tuple(tree.path_of(m.id) for m in matches),
        )
    return ImportEdge(
        source.id,
        raw_path,
        EdgeStatus.INTERNAL,
        target_id=matches[0].id,
        resolved_path=tree.path_of(matches[0].id),
        via_fallback=via_fallback,
    )


# ---------------------------------- builder -----------------------------------


@dataclass
class CacheStats:
    graph_hits: int = 0
    graph_misses: int = 0
    parse_hits: int = 0
    parse_misses: int = 0


class DependencyGraphBuilder:
    """
    Incremental builder. Results are identical to a cold build; the caches
    only skip work whose inputs (content hashes / snapshot fingerprint) are
    unchanged.
    """

    def __init__(
        self,
        registry: Optional[LibraryRegistry] = None,
        *,
        root_escape: RootEscape = "strict",
        suffixes: Sequence[str] = DEFAULT_SOURCE_SUFFIXES,
    ):
        self.registry = registry or default_registry()
        self.root_escape = root_escape
        self.suffixes = tuple(suffixes)
        self.stats = CacheStats()
        self._imports: Dict[Tuple[str, str], List[str]] = {}
        self._last: Optional[DependencyGraphResult] = None

    def imports_of(self, tree: ProjectTree, file: ProjectFile) -> List[str]:
        key = (file.id, tree.content_hash(file.id))
        cached = self._imports.get(key)
        if cached is not None:
            self.stats.parse_hits += 1
            return list(cached)
        self.stats.parse_misses += 1
        parsed = parse_imports(file.content or "")
        self._imports[key] = parsed
        return list(parsed)

    def build(self, files: Union[ProjectTree, Iterable[Union[ProjectFile, Mapping[str, Any]]]]) -> DependencyGraphResult:
        tree = as_tree(files)
        if self._last is not None and self._last.fingerprint == tree.fingerprint:
            self.stats.graph_hits += 1
            log.debug("graph_cache_hit", fingerprint=tree.fingerprint[:12])
            return self._last
        self.stats.graph_misses += 1

        graph: Dict[str, List[str]] = {}
        edges: List[ImportEdge] = []
        external: List[ExternalLibraryReference] = []
        seen_external: set = set()
        missing: List[str] = []
        ambiguous: List[AmbiguousImport] = []
        live_keys = set()

        for f in tree.source_files(self.suffixes):
            live_keys.add((f.id, tree.content_hash(f.id)))
            deps = graph.setdefault(f.id, [])
            for raw in self.imports_of(tree, f):
                edge = resolve_edge(
                    tree, f, raw, self.registry, root_escape=self.root_escape, suffixes=self.suffixes
                )
                edges.append(edge)

                if edge.status is EdgeStatus.EXTERNAL:
                    key = (edge.library_prefix, raw)
                    if key not in seen_external:
                        seen_external.add(key)
                        info = self.registry.entries[edge.library_prefix]
                        external.append(ExternalLibraryReference(edge.library_prefix, raw, info))
                elif edge.status is EdgeStatus.INTERNAL:
                    if edge.target_id not in deps:
                        deps.append(edge.target_id)
                elif edge.status is EdgeStatus.AMBIGUOUS:
                    amb = AmbiguousImport(f.id, raw, edge.candidates)
                    ambiguous.append(amb)
                    log.warning("import_ambiguous", file=tree.path_of(f.id), import_path=raw, candidates=list(amb.candidates))
                else:
                    if raw not in missing:
                        missing.append(raw)
                    log.info("import_unresolved", file=tree.path_of(f.id), import_path=raw, reason=edge.reason)

        # drop parse results for files that changed or disappeared
        self._imports = {k: v for k, v in self._imports.items() if k in live_keys}

        result = DependencyGraphResult(
            tree=tree,
            graph=graph,
            edges=edges,
            external=external,
            missing=missing,
            ambiguous=ambiguous,
            fingerprint=tree.fingerprint,
        )
        self._last = result
        return result


def build_dependency_graph(
    files: Union[ProjectTree, Iterable[Union[ProjectFile, Mapping[str, Any]]]],
    *,
    registry: Optional[LibraryRegistry] = None,
    root_escape: RootEscape = "strict",
    suffixes: Sequence[str] = DEFAULT_SOURCE_SUFFIXES,
) -> DependencyGraphResult:
    """One-shot build with a throwaway builder."""
    return DependencyGraphBuilder(registry, root_escape=root_escape, suffixes=suffixes).build(files)


__all__ = [
    "AmbiguousImport",
    "CacheStats",
    "DEFAULT_SOURCE_SUFFIXES",
    "DependencyGraphBuilder",
    "DependencyGraphResult",
    "EdgeStatus",
    "ExternalLibraryReference",
    "ImportEdge",
    "build_dependency_graph",
    "resolve_edge",
]
