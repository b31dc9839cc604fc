"""
Read-only snapshot of the studio's virtual file system.

The file-system store owns the tree; the engine only reads it. A
:class:`ProjectTree` validates the structure once, derives canonical paths by
walking parent references, and fingerprints file contents so derived results
can be reused while nothing changes.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from ..errors import ProjectTreeError, UnknownFile

FileKind = Literal["file", "folder"]


@dataclass(frozen=True)
class ProjectFile:
    id: str
    name: str
    kind: FileKind = "file"
    content: Optional[str] = None
    parent: Optional[str] = None
    children: Tuple[str, ...] = ()

    @property
    def is_file(self) -> bool:
        return self.kind == "file"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], *, parent: Optional[str] = None) -> "ProjectFile":
        kind = raw.get("kind") or raw.get("type") or "file"
        if kind not in ("file", "folder"):
            raise ProjectTreeError(f"Unknown file kind {kind!r}", details={"id": raw.get("id")})
        children = raw.get("children") or ()
        return cls(
            id=str(raw["id"]),
            name=str(raw["name"]),
            kind=kind,
            content=raw.get("content") if kind == "file" else None,
            parent=raw.get("parent", parent),
            children=tuple(c["id"] if isinstance(c, Mapping) else str(c) for c in children),
        )


def content_hash(content: Optional[str]) -> str:
    return hashlib.sha256((content or "").encode("utf-8")).hexdigest()


class ProjectTree:
    """
    Validated snapshot of ProjectFile records.

    Invariants checked on construction:
    - ids are unique and every parent reference names an existing folder
    - folders form a rooted tree (no structural cycles)
    - names are unique among siblings
    """

    def __init__(self, files: Iterable[ProjectFile]):
        self._by_id: Dict[str, ProjectFile] = {}
        for f in files:
            if f.id in self._by_id:
                raise ProjectTreeError(f"Duplicate file id {f.id!r}", details={"id": f.id})
            if not f.name or "/" in f.name:
                raise ProjectTreeError(f"Invalid file name {f.name!r}", details={"id": f.id})
            self._by_id[f.id] = f

        self._order: Tuple[str, ...] = self._tree_order()
        self._paths: Dict[str, str] = {fid: self._walk_path(fid) for fid in self._order}
        self._by_path: Dict[str, str] = {p: fid for fid, p in self._paths.items()}
        self._hashes: Dict[str, str] = {
            fid: content_hash(self._by_id[fid].content) for fid in self._order if self._by_id[fid].is_file
        }
        self._fingerprint: Optional[str] = None

    # ------------------------------ construction ------------------------------

    @classmethod
    def from_records(cls, records: Iterable[Union[ProjectFile, Mapping[str, Any]]]) -> "ProjectTree":
        """
        Build from flat records (``parent`` references) or nested ones
        (``children`` holding full records), as the browser store emits them.
        """
        flat: List[ProjectFile] = []

        def _add(raw: Union[ProjectFile, Mapping[str, Any]], parent: Optional[str]) -> None:
            if isinstance(raw, ProjectFile):
                flat.append(raw)
                return
            flat.append(ProjectFile.from_dict(raw, parent=parent))
            for child in raw.get("children") or ():
                if isinstance(child, Mapping):
                    _add(child, str(raw["id"]))

        for rec in records:
            _add(rec, None)
        return cls(flat)

    @classmethod
    def from_directory(cls, root: Union[str, Path], *, suffixes: Sequence[str] = (".sol",)) -> "ProjectTree":
        """
        Load an on-disk project; ids are the POSIX paths relative to ``root``.
        Only files with one of ``suffixes`` are read.
        """
        root = Path(root)
        if not root.is_dir():
            raise ProjectTreeError(f"Not a directory: {root}")

        files: List[ProjectFile] = []

        def _walk(directory: Path, parent: Optional[str]) -> None:
            for entry in sorted(directory.iterdir(), key=lambda p: p.name):
                if entry.name.startswith("."):
                    continue
                rel = entry.relative_to(root).as_posix()
                if entry.is_dir():
                    files.append(ProjectFile(id=rel, name=entry.name, kind="folder", parent=parent))
                    _walk(entry, rel)
                elif entry.suffix in suffixes:
                    text = entry.read_text(encoding="utf-8")
                    files.append(ProjectFile(id=rel, name=entry.name, content=text, parent=parent))

        _walk(root, None)
        return cls(files)

    # ------------------------------ validation --------------------------------

    def _children_of(self, parent: Optional[str]) -> List[str]:
        declared: Tuple[str, ...] = ()
        if parent is not None:
            declared = self._by_id[parent].children
        kids = [f.id for f in self._by_id.values() if f.parent == parent]
        if declared:
            # declared order first, then anything the folder forgot to list
            rank = {cid: i for i, cid in enumerate(declared)}
            kids.sort(key=lambda cid: rank.get(cid, len(rank)))
        return kids

    def _tree_order(self) -> Tuple[str, ...]:
        for f in self._by_id.values():
            if f.parent is None:
                continue
            parent = self._by_id.get(f.parent)
            if parent is None:
                raise ProjectTreeError(f"File {f.id!r} has unknown parent {f.parent!r}", details={"id": f.id})
            if parent.kind != "folder":
                raise ProjectTreeError(f"Parent {f.parent!r} of {f.id!r} is not a folder", details={"id": f.id})

        order: List[str] = []

        def _visit(parent: Optional[str]) -> None:
            seen_names: Dict[str, str] = {}
            for cid in self._children_of(parent):
                name = self._by_id[cid].name
                if name in seen_names:
                    raise ProjectTreeError(
                        f"Duplicate name {name!r} in folder {parent or '<root>'}",
                        details={"ids": [seen_names[name], cid]},
                    )
                seen_names[name] = cid
                order.append(cid)
                if self._by_id[cid].kind == "folder":
                    _visit(cid)

        _visit(None)
        if len(order) != len(self._by_id):
            # anything unreachable from the root sits on a parent cycle
            stranded = sorted(set(self._by_id) - set(order))
            raise ProjectTreeError("Folder structure contains a cycle", details={"ids": stranded})
        return tuple(order)

    def _walk_path(self, file_id: str) -> str:
        names: List[str] = []
        cur: Optional[str] = file_id
        while cur is not None:
            f = self._by_id[cur]
            names.append(f.name)
            cur = f.parent
        return "/".join(reversed(names))

    # ------------------------------ queries -----------------------------------

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._by_id

    def __iter__(self) -> Iterator[ProjectFile]:
        return (self._by_id[fid] for fid in self._order)

    def __len__(self) -> int:
        return len(self._by_id)

    def get(self, file_id: str) -> ProjectFile:
        try:
            return self._by_id[file_id]
        except KeyError:
            raise UnknownFile(file_id) from None

    def path_of(self, file_id: str) -> str:
        self.get(file_id)
        return self._paths[file_id]

    def id_for_path(self, canonical_path: str) -> Optional[str]:
        fid = self._by_path.get(canonical_path)
        if fid is not None and self._by_id[fid].is_file:
            return fid
        return None

    def files(self) -> List[ProjectFile]:
        return [f for f in self if f.is_file]

    def source_files(self, suffixes: Sequence[str] = (".sol",)) -> List[ProjectFile]:
        return [f for f in self.files() if f.name.endswith(tuple(suffixes))]

    def files_named(self, name: str) -> List[ProjectFile]:
        return [f for f in self.files() if f.name == name]

    def content_hash(self, file_id: str) -> str:
        self.get(file_id)
        return self._hashes.get(file_id, "")

    @property
    def fingerprint(self) -> str:
        """sha256 over the ordered (id, path, content hash) triples."""
        if self._fingerprint is None:
            h = hashlib.sha256()
            for fid in self._order:
                h.update(f"{fid}\0{self._paths[fid]}\0{self._hashes.get(fid, '')}\n".encode("utf-8"))
            self._fingerprint = h.hexdigest()
        return self._fingerprint


def as_tree(files: Union[ProjectTree, Iterable[Union[ProjectFile, Mapping[str, Any]]]]) -> ProjectTree:
    """Accept a snapshot or raw records and return a validated snapshot."""
    if isinstance(files, ProjectTree):
        return files
    return ProjectTree.from_records(files)


__all__ = ["FileKind", "ProjectFile", "ProjectTree", "as_tree", "content_hash"]
