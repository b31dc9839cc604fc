"""
Relative import resolution over canonical project paths.

Canonical paths are ``/``-joined names from the project root, e.g.
``contracts/tokens/Token.sol``. Resolution is purely lexical; whether the
target exists is the graph builder's concern.
"""

from __future__ import annotations

from typing import List, Literal, Sequence

from ..errors import PathEscapesRoot
from .libraries import is_relative

RootEscape = Literal["strict", "lenient"]
ROOT_ESCAPE_MODES = ("strict", "lenient")

SOURCE_SUFFIX = ".sol"


def dirname(canonical_path: str) -> str:
    """Containing directory of a canonical path ('' at project root)."""
    head, sep, _ = canonical_path.rpartition("/")
    return head if sep else ""


def basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def join(*parts: str) -> str:
    return "/".join(p for p in parts if p)


def resolve_import(from_path: str, import_path: str, *, root_escape: RootEscape = "strict") -> str:
    """
    Resolve ``import_path`` as written in the file at ``from_path``.

    Non-relative paths come back unchanged. For ``./`` and ``../`` paths the
    importer's directory is used as a segment stack: ``..`` pops, ``.`` and
    empty segments are skipped, anything else is pushed.

    Raises
    ------
    PathEscapesRoot
        In ``strict`` mode, when ``..`` climbs above the project root.
        ``lenient`` mode drops the excess ``..`` instead.
    """
    if root_escape not in ROOT_ESCAPE_MODES:
        raise ValueError(f"root_escape must be one of {ROOT_ESCAPE_MODES}, got {root_escape!r}")
    if not is_relative(import_path):
        return import_path

    stack: List[str] = [s for s in dirname(from_path).split("/") if s]
    for segment in import_path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if stack:
                stack.pop()
            elif root_escape == "strict":
                raise PathEscapesRoot(from_path, import_path)
            continue
        stack.append(segment)
    return "/".join(stack)


def candidate_paths(resolved: str, suffixes: Sequence[str] = (SOURCE_SUFFIX,)) -> List[str]:
    """
    Exact-match candidates: the path itself and, unless it already carries one
    of ``suffixes``, the path with each suffix appended.
    """
    if resolved.endswith(tuple(suffixes)):
        return [resolved]
    return [resolved] + [resolved + s for s in suffixes]


__all__ = [
    "RootEscape",
    "ROOT_ESCAPE_MODES",
    "SOURCE_SUFFIX",
    "basename",
    "candidate_paths",
    "dirname",
    "join",
    "resolve_import",
]
