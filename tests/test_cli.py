from __future__ import annotations

import json
import logging

import pytest
import structlog
from typer.testing import CliRunner

from studio_compiler import cli
from studio_compiler.app import build_compiler_client

runner = CliRunner()

PROJECT = {
    "contracts/Main.sol": 'import "./lib/Lib.sol";\nimport "@openzeppelin/contracts/access/Ownable.sol";\ncontract Main {}',
    "contracts/lib/Lib.sol": 'import "../Main.sol";\nlibrary Lib {}',
    "contracts/Orphan.sol": 'import "./Nowhere.sol";\ncontract Orphan {}',
}


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def _invoke(*args: str):
    return runner.invoke(cli.app, ["--log-level", "ERROR", *args])


def test_imports_command(tmp_path):
    src = tmp_path / "A.sol"
    src.write_text('import "./B.sol";\ncontract A {}', encoding="utf-8")

    result = _invoke("imports", str(src))
    assert result.exit_code == 0, result.output
    assert "./B.sol" in result.stdout
    assert "# contracts: A" in result.stdout

    result = _invoke("--json", "imports", str(src))
    assert json.loads(result.stdout) == {"imports": ["./B.sol"], "contracts": ["A"]}


def test_graph_command_json(write_project):
    root = write_project(PROJECT)
    result = _invoke("--json", "graph", str(root))
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["graph"]["contracts/Main.sol"] == ["contracts/lib/Lib.sol"]
    assert data["missing"] == ["./Nowhere.sol"]
    assert data["external"] == [
        {"prefix": "@openzeppelin/", "importPath": "@openzeppelin/contracts/access/Ownable.sol"}
    ]


def test_graph_command_text(write_project):
    root = write_project(PROJECT)
    result = _invoke("graph", str(root))
    assert result.exit_code == 0, result.output
    assert "contracts/Main.sol -> contracts/lib/Lib.sol" in result.stdout
    assert "missing: ./Nowhere.sol" in result.stdout


def test_unit_command_reports_cycle(write_project):
    root = write_project(PROJECT)
    result = _invoke("--json", "unit", str(root), "contracts/Main.sol")
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["hadCycle"] is True
    assert data["cycles"] == [["contracts/Main.sol", "contracts/lib/Lib.sol", "contracts/Main.sol"]]
    assert data["externalLibraries"] == ["@openzeppelin/"]
    assert "contracts/Orphan.sol" not in data["files"]


def test_unit_command_unknown_entry(write_project):
    root = write_project(PROJECT)
    result = _invoke("unit", str(root), "contracts/Nope.sol")
    assert result.exit_code == 2
    assert "error:" in result.output


def test_root_escape_option(write_project):
    root = write_project({"Main.sol": 'import "../Up.sol";', "Up.sol": "contract Up {}"})

    strict = json.loads(_invoke("--json", "graph", str(root)).stdout)
    assert strict["missing"] == ["../Up.sol"]

    lenient = json.loads(_invoke("--json", "--root-escape", "lenient", "graph", str(root)).stdout)
    assert lenient["graph"]["Main.sol"] == ["Up.sol"]

    bad = _invoke("--root-escape", "sloppy", "graph", str(root))
    assert bad.exit_code != 0


def test_explain_command():
    result = _invoke("explain", "TypeError: not enough arguments")
    assert result.exit_code == 0
    assert "missing arguments" in result.stdout

    result = _invoke("--json", "explain", "ParserError: x")
    assert json.loads(result.stdout)["kind"] == "parser_error"


def test_compile_command(write_project, fake_compiler, monkeypatch):
    monkeypatch.setattr(
        cli,
        "build_compiler_client",
        lambda settings: build_compiler_client(settings, transport=fake_compiler.transport),
    )
    root = write_project(PROJECT)

    result = _invoke("compile", str(root), "contracts/Main.sol")
    assert result.exit_code == 0, result.output
    assert "compiled contracts/Main.sol (multi, 2 files)" in result.stdout
    assert "deployed bytecode size: 5 bytes" in result.stdout

    ((path, body),) = fake_compiler.calls
    assert path == "/api/compile-multi"
    assert body["mainFile"] == "contracts/Main.sol"


def test_compile_command_failure(write_project, fake_compiler, monkeypatch):
    monkeypatch.setattr(
        cli,
        "build_compiler_client",
        lambda settings: build_compiler_client(settings, transport=fake_compiler.transport),
    )
    fake_compiler.queue((400, {"error": "ParserError: Expected ';'"}))
    root = write_project({"A.sol": "contract A {"})

    result = _invoke("compile", str(root), "A.sol")
    assert result.exit_code == 2
    assert "Syntax error in contract code" in result.output
