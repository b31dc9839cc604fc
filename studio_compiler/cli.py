"""
Developer CLI for Studio Compiler.

Works on on-disk projects: a directory is loaded as a project tree whose file
ids are the POSIX paths relative to it.

Commands:
  - imports FILE        : import paths and declared contracts of one source file
  - graph DIR           : dependency graph, external libraries, missing/ambiguous imports
  - unit DIR ENTRY      : compilation unit for ENTRY (a path relative to DIR)
  - compile DIR ENTRY   : assemble ENTRY and submit it to the compiler service
  - explain MESSAGE     : interpret a compiler error message

Usage:
  studio-compiler <command> [options]
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer

from .app import build_compiler_client
from .config import Settings
from .engine.diagnostics import classify_compiler_error
from .engine.imports import extract_contract_names, get_imports_for
from .engine.tree import ProjectTree
from .errors import ApiError
from .logging import setup_logging
from .services.compile import build_graph, build_unit, compile_unit

app = typer.Typer(add_completion=False, help="Studio Compiler: Solidity dependency tools")


@dataclass
class AppCtx:
    settings: Settings
    as_json: bool = False


def _ctx(ctx: typer.Context) -> AppCtx:
    return ctx.obj


def _emit(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=False))


def _fail(err: ApiError) -> NoReturn:
    typer.echo(f"error: {err.message}", err=True)
    raise typer.Exit(code=2)


def _load(settings: Settings, directory: Path) -> ProjectTree:
    try:
        return ProjectTree.from_directory(directory, suffixes=settings.engine.source_suffixes)
    except ApiError as e:
        _fail(e)


@app.callback()
def main(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of text"),
    root_escape: Optional[str] = typer.Option(
        None, "--root-escape", help="Override ROOT_ESCAPE: strict or lenient"
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for engine events"),
):
    """
    Shared options for all subcommands.
    """
    setup_logging(service_name="studio-compiler-cli", level=log_level.upper(), log_format="console")
    if root_escape is not None and root_escape not in ("strict", "lenient"):
        raise typer.BadParameter("must be 'strict' or 'lenient'", param_hint="--root-escape")
    settings = Settings(ROOT_ESCAPE=root_escape) if root_escape else Settings()
    ctx.obj = AppCtx(settings=settings, as_json=as_json)


@app.command("imports")
def imports_cmd(ctx: typer.Context, file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True)):
    """
    Print the import paths and declared contracts of FILE.
    """
    content = file.read_text(encoding="utf-8")
    imports = get_imports_for(content)
    contracts = extract_contract_names(content)
    if _ctx(ctx).as_json:
        _emit({"imports": imports, "contracts": contracts})
        return
    for path in imports:
        typer.echo(path)
    if contracts:
        typer.echo(f"# contracts: {', '.join(contracts)}")


@app.command("graph")
def graph_cmd(ctx: typer.Context, directory: Path = typer.Argument(..., exists=True, file_okay=False)):
    """
    Print the dependency graph of the project in DIRECTORY.
    """
    c = _ctx(ctx)
    result = build_graph(_load(c.settings, directory), c.settings)
    if c.as_json:
        _emit(
            {
                "graph": result.graph,
                "external": [{"prefix": r.prefix, "importPath": r.import_path} for r in result.external],
                "missing": result.missing,
                "ambiguous": [
                    {"sourceId": a.source_id, "importPath": a.raw_path, "candidates": list(a.candidates)}
                    for a in result.ambiguous
                ],
            }
        )
        return
    for fid, deps in result.graph.items():
        typer.echo(f"{fid} -> {', '.join(deps) if deps else '(none)'}")
    for ref in result.external:
        typer.echo(f"external: {ref.import_path} [{ref.prefix}]")
    for raw in result.missing:
        typer.echo(f"missing: {raw}")
    for amb in result.ambiguous:
        typer.echo(f"ambiguous: {amb.raw_path} in {amb.source_id} ({', '.join(amb.candidates)})")


@app.command("unit")
def unit_cmd(
    ctx: typer.Context,
    directory: Path = typer.Argument(..., exists=True, file_okay=False),
    entry: str = typer.Argument(..., help="Entry file path relative to DIRECTORY"),
):
    """
    Print the compilation unit for ENTRY.
    """
    c = _ctx(ctx)
    try:
        unit = build_unit(entry, _load(c.settings, directory), c.settings)
    except ApiError as e:
        _fail(e)
        return
    if c.as_json:
        _emit(unit.to_dict())
        return
    typer.echo(f"entry: {unit.entry_path}")
    for path in unit.compile_order:
        typer.echo(f"  {path}")
    if unit.external_libraries:
        typer.echo(f"libraries: {', '.join(unit.external_libraries)}")
    for cycle in unit.cycles:
        typer.echo(f"cycle: {' -> '.join(cycle)}")
    for raw in unit.missing:
        typer.echo(f"missing: {raw}")


@app.command("compile")
def compile_cmd(
    ctx: typer.Context,
    directory: Path = typer.Argument(..., exists=True, file_okay=False),
    entry: str = typer.Argument(..., help="Entry file path relative to DIRECTORY"),
):
    """
    Assemble ENTRY and submit it to the compiler service (COMPILER_URL).
    """
    c = _ctx(ctx)

    async def _run():
        client = build_compiler_client(c.settings)
        async with client:
            unit = build_unit(entry, _load(c.settings, directory), c.settings)
            return await compile_unit(client, unit)

    try:
        outcome = asyncio.run(_run())
    except ApiError as e:
        _fail(e)
        return

    if c.as_json:
        _emit(outcome.to_dict())
        return
    r = outcome.result
    typer.echo(f"compiled {outcome.unit.entry_path} ({outcome.mode}, {len(outcome.unit.files)} files)")
    typer.echo(f"contract: {r.contract_name}")
    typer.echo(f"deployed bytecode size: {r.deployed_bytecode_size} bytes")
    for w in r.warnings:
        typer.echo(f"warning: {w}")


@app.command("explain")
def explain_cmd(ctx: typer.Context, message: str = typer.Argument(..., help="Raw compiler error text")):
    """
    Interpret a compiler error message.
    """
    found = classify_compiler_error(message)
    if _ctx(ctx).as_json:
        _emit(found.to_dict())
        return
    typer.echo(found.message)


if __name__ == "__main__":
    app()
