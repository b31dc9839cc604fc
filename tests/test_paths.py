from __future__ import annotations

import pytest

from studio_compiler.engine.paths import (basename, candidate_paths, dirname,
                                          resolve_import)
from studio_compiler.errors import PathEscapesRoot


@pytest.mark.parametrize(
    "from_path, import_path, expected",
    [
        ("contracts/Main.sol", "./Lib.sol", "contracts/Lib.sol"),
        ("contracts/tokens/Token.sol", "../utils/Math.sol", "contracts/utils/Math.sol"),
        ("contracts/a/b/C.sol", "../../D.sol", "contracts/D.sol"),
        ("Main.sol", "./lib/A.sol", "lib/A.sol"),
        ("contracts/Main.sol", "./././Lib.sol", "contracts/Lib.sol"),
        ("contracts/Main.sol", ".//sub//X.sol", "contracts/sub/X.sol"),
    ],
)
def test_relative_resolution(from_path, import_path, expected):
    assert resolve_import(from_path, import_path) == expected


def test_non_relative_paths_are_returned_unchanged():
    assert resolve_import("a/B.sol", "@openzeppelin/contracts/X.sol") == "@openzeppelin/contracts/X.sol"
    assert resolve_import("a/B.sol", "lib/Y.sol") == "lib/Y.sol"


def test_strict_mode_rejects_escaping_the_root():
    with pytest.raises(PathEscapesRoot) as ei:
        resolve_import("Main.sol", "../Outside.sol")
    assert ei.value.status_code == 422
    assert ei.value.import_path == "../Outside.sol"


def test_lenient_mode_drops_excess_parent_segments():
    assert resolve_import("Main.sol", "../Outside.sol", root_escape="lenient") == "Outside.sol"
    assert resolve_import("a/Main.sol", "../../../x/Y.sol", root_escape="lenient") == "x/Y.sol"


def test_unknown_root_escape_mode():
    with pytest.raises(ValueError):
        resolve_import("a.sol", "./b.sol", root_escape="loose")  # type: ignore[arg-type]


def test_path_helpers():
    assert dirname("a/b/C.sol") == "a/b"
    assert dirname("C.sol") == ""
    assert basename("../x/Y.sol") == "Y.sol"
    assert candidate_paths("a/B.sol") == ["a/B.sol"]
    assert candidate_paths("a/B") == ["a/B", "a/B.sol"]
    assert candidate_paths("a/B", (".sol", ".yul")) == ["a/B", "a/B.sol", "a/B.yul"]
    assert candidate_paths("a/B.yul", (".sol", ".yul")) == ["a/B.yul"]
