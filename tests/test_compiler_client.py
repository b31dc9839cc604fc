from __future__ import annotations

import pytest

from studio_compiler.adapters.compiler_client import (MULTI_PATH, SINGLE_PATH,
                                                      CompilerClient,
                                                      CompilerClientConfig,
                                                      CompilerTransportError,
                                                      PayloadLimits, mode_for)
from studio_compiler.engine.assemble import assemble_compilation_unit
from studio_compiler.engine.diagnostics import CompileFailure, CompileSuccess
from studio_compiler.errors import PayloadTooLarge

COMPILER_URL = "http://compiler.test"


def _client(fake, *, limits=None, max_retries=2) -> CompilerClient:
    cfg = CompilerClientConfig(url=COMPILER_URL, max_retries=max_retries, backoff_base_s=0.0)
    return CompilerClient(cfg, limits=limits, transport=fake.transport)


@pytest.mark.asyncio
async def test_single_file_unit_uses_single_endpoint(fake_compiler, make_records):
    unit = assemble_compilation_unit(
        "Main.sol",
        make_records({"Main.sol": 'import "@openzeppelin/contracts/access/Ownable.sol";\ncontract Main {}'}),
    )
    async with _client(fake_compiler) as client:
        result = await client.compile_unit(unit)

    assert isinstance(result, CompileSuccess)
    assert mode_for(unit) == "single"
    ((path, body),) = fake_compiler.calls
    assert path == SINGLE_PATH
    assert body["code"].startswith("import")
    assert body["externalLibraries"] == ["@openzeppelin/contracts/access/Ownable.sol"]


@pytest.mark.asyncio
async def test_multi_file_unit_uses_multi_endpoint(fake_compiler, make_records):
    unit = assemble_compilation_unit(
        "src/Main.sol",
        make_records({"src/Main.sol": 'import "./Lib.sol";', "src/Lib.sol": "library Lib {}"}),
    )
    async with _client(fake_compiler) as client:
        await client.compile_unit(unit)

    ((path, body),) = fake_compiler.calls
    assert mode_for(unit) == "multi"
    assert path == MULTI_PATH
    assert body["mainFile"] == "src/Main.sol"
    assert set(body["files"]) == {"src/Main.sol", "src/Lib.sol"}
    assert "externalLibraries" not in body


@pytest.mark.asyncio
async def test_retries_on_unavailable_then_succeeds(fake_compiler):
    fake_compiler.queue((503, {"error": "busy"}), "connect_error")
    async with _client(fake_compiler) as client:
        result = await client.compile_single("contract A {}")
    assert isinstance(result, CompileSuccess)
    assert len(fake_compiler.calls) == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(fake_compiler):
    fake_compiler.default = (502, {"error": "bad gateway"})
    async with _client(fake_compiler, max_retries=1) as client:
        with pytest.raises(CompilerTransportError) as ei:
            await client.compile_single("contract A {}")
    assert ei.value.attempts == 2
    assert ei.value.status == 502
    assert len(fake_compiler.calls) == 2


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(fake_compiler):
    fake_compiler.queue((400, {"error": "ParserError: Expected ';'"}))
    async with _client(fake_compiler) as client:
        result = await client.compile_single("contract A {")
    assert isinstance(result, CompileFailure)
    assert result.kind == "parser_error"
    assert len(fake_compiler.calls) == 1


@pytest.mark.asyncio
async def test_limits_are_checked_before_sending(fake_compiler):
    limits = PayloadLimits(max_files=1)
    async with _client(fake_compiler, limits=limits) as client:
        with pytest.raises(PayloadTooLarge):
            await client.compile_multi({"A.sol": "", "B.sol": ""}, "A.sol")
    assert fake_compiler.calls == []


@pytest.mark.asyncio
async def test_main_file_must_be_submitted(fake_compiler):
    async with _client(fake_compiler) as client:
        with pytest.raises(ValueError):
            await client.compile_multi({"A.sol": ""}, "B.sol")


def test_payload_limits_measure_utf8_bytes():
    limits = PayloadLimits(max_files=10, max_file_size=4, max_total_size=100)
    limits.check({"A.sol": "abcd"})
    with pytest.raises(PayloadTooLarge) as ei:
        limits.check({"A.sol": "abc\u00e9"})
    assert ei.value.details["size"] == 5


def test_payload_limits_total_size():
    limits = PayloadLimits(max_files=10, max_file_size=10, max_total_size=15)
    with pytest.raises(PayloadTooLarge) as ei:
        limits.check({"A.sol": "x" * 8, "B.sol": "y" * 8})
    assert ei.value.status_code == 413
    assert ei.value.details["total_size"] == 16
