from __future__ import annotations

import pytest

from studio_compiler.engine.tree import ProjectFile, ProjectTree
from studio_compiler.errors import ProjectTreeError, UnknownFile


def test_paths_follow_parent_chain(make_records):
    tree = ProjectTree.from_records(make_records({"contracts/tokens/Token.sol": "", "Main.sol": ""}))
    assert tree.path_of("contracts/tokens/Token.sol") == "contracts/tokens/Token.sol"
    assert tree.id_for_path("Main.sol") == "Main.sol"
    assert tree.id_for_path("contracts") is None  # folders are not sources
    assert [f.name for f in tree.files()] == ["Token.sol", "Main.sol"]


def test_opaque_ids_and_nested_records():
    records = [
        {
            "id": "f1",
            "name": "contracts",
            "type": "folder",
            "children": [
                {"id": "f2", "name": "A.sol", "type": "file", "content": "contract A {}"},
            ],
        }
    ]
    tree = ProjectTree.from_records(records)
    assert tree.path_of("f2") == "contracts/A.sol"
    assert tree.get("f2").parent == "f1"


def test_unknown_file_id():
    tree = ProjectTree([ProjectFile(id="a", name="A.sol", content="")])
    with pytest.raises(UnknownFile) as ei:
        tree.get("nope")
    assert ei.value.status_code == 404


def test_duplicate_ids_are_rejected():
    with pytest.raises(ProjectTreeError):
        ProjectTree([ProjectFile(id="a", name="A.sol"), ProjectFile(id="a", name="B.sol")])


def test_duplicate_sibling_names_are_rejected():
    with pytest.raises(ProjectTreeError):
        ProjectTree([ProjectFile(id="a", name="A.sol"), ProjectFile(id="b", name="A.sol")])


def test_unknown_parent_is_rejected():
    with pytest.raises(ProjectTreeError):
        ProjectTree([ProjectFile(id="a", name="A.sol", parent="ghost")])


def test_file_as_parent_is_rejected():
    with pytest.raises(ProjectTreeError):
        ProjectTree([ProjectFile(id="a", name="A.sol"), ProjectFile(id="b", name="B.sol", parent="a")])


def test_folder_cycle_is_rejected():
    with pytest.raises(ProjectTreeError) as ei:
        ProjectTree(
            [
                ProjectFile(id="x", name="x", kind="folder", parent="y"),
                ProjectFile(id="y", name="y", kind="folder", parent="x"),
            ]
        )
    assert ei.value.details == {"ids": ["x", "y"]}


def test_unknown_kind_is_rejected():
    with pytest.raises(ProjectTreeError):
        ProjectTree.from_records([{"id": "a", "name": "A.sol", "kind": "symlink"}])


def test_fingerprint_tracks_content(make_records):
    a = ProjectTree.from_records(make_records({"A.sol": "contract A {}"}))
    b = ProjectTree.from_records(make_records({"A.sol": "contract A {}"}))
    c = ProjectTree.from_records(make_records({"A.sol": "contract A { uint x; }"}))
    assert a.fingerprint == b.fingerprint
    assert a.fingerprint != c.fingerprint
    assert a.content_hash("A.sol") != c.content_hash("A.sol")


def test_from_directory(write_project):
    root = write_project(
        {
            "contracts/Main.sol": 'import "./lib/Lib.sol";',
            "contracts/lib/Lib.sol": "library Lib {}",
            "README.md": "# not a source",
        }
    )
    tree = ProjectTree.from_directory(root)
    assert [tree.path_of(f.id) for f in tree.files()] == ["contracts/Main.sol", "contracts/lib/Lib.sol"]
    assert tree.get("contracts/lib/Lib.sol").content == "library Lib {}"


def test_from_directory_requires_directory(tmp_path):
    with pytest.raises(ProjectTreeError):
        ProjectTree.from_directory(tmp_path / "missing")
