from __future__ import annotations

import pytest

from studio_compiler.engine.diagnostics import (CompileFailure,
                                                CompileSuccess,
                                                classify_compiler_error,
                                                interpret_compiler_error,
                                                parse_compiler_response)


def test_version_mismatch_names_current_compiler():
    raw = (
        'ParserError: Source file requires different compiler version '
        '(current compiler is 0.8.19+commit.7dd6d404.Emscripten.clang) - note that nightly builds...'
    )
    found = classify_compiler_error(raw)
    assert found.kind == "version_mismatch"
    assert "0.8.19" in found.message
    assert "pragma solidity ^0.8.0" in found.message


def test_undeclared_identifier():
    found = classify_compiler_error("TypeError: undeclared identifier 'balanceOff' used in Main.sol")
    assert found.kind == "undeclared_identifier"
    assert found.detail == "balanceOff"
    assert "'balanceOff'" in found.message


def test_solc_undeclared_identifier_is_a_declaration_error():
    raw = "DeclarationError: Undeclared identifier.\n --> Main.sol:5:9:\n  |\n5 |         totl += 1;\n  |         ^^^^"
    found = classify_compiler_error(raw)
    assert found.kind == "declaration_error"
    assert "unknown" not in found.message


@pytest.mark.parametrize(
    "raw, kind",
    [
        ("ParserError: Expected ';' but got '}'", "parser_error"),
        ("DeclarationError: Identifier already declared.", "declaration_error"),
        ('Source "x.sol" not found: File not found.', "missing_import"),
        ("TypeError: not enough arguments for call", "missing_arguments"),
        ("External imports not available", "external_imports_unavailable"),
        ("sender doesn't have insufficient funds for gas", "insufficient_funds"),
        ("call to not a contract address", "not_a_contract"),
        ("ERC20: transfer amount exceeds balance", "transfer_exceeds_balance"),
    ],
)
def test_known_signatures(raw, kind):
    found = classify_compiler_error(raw)
    assert found.kind == kind
    assert found.recognized is True


def test_ownable_argument_count_variants():
    base = "TypeError: Wrong argument count for modifier invocation: 1 arguments given but {}. Ownable(msg.sender)"
    v4 = classify_compiler_error(base.format("expected 0"))
    v5 = classify_compiler_error(base.format("expected 1"))
    other = classify_compiler_error(base.format("expected 2"))
    assert v4.kind == v5.kind == other.kind == "constructor_argument_count"
    assert "v4.x" in v4.message
    assert "initial owner address" in v5.message
    assert other.detail is None


def test_argument_count_without_ownable_is_passed_through():
    raw = "TypeError: Wrong argument count for modifier invocation: 1 arguments given but expected 0."
    assert interpret_compiler_error(raw) == raw


def test_unrecognized_text_is_returned_unchanged():
    raw = "Something entirely different happened"
    found = classify_compiler_error(raw)
    assert found.kind is None
    assert found.recognized is False
    assert interpret_compiler_error(raw) == raw
    assert interpret_compiler_error(None) == ""


def test_parse_success_derives_deployed_size():
    result = parse_compiler_response(
        200,
        {"abi": [], "bytecode": "0x60806040", "contractName": "Main", "warnings": [{"formattedMessage": "w1"}, "w2"]},
    )
    assert isinstance(result, CompileSuccess)
    assert result.deployed_bytecode_size == 4
    assert result.warnings == ["w1", "w2"]
    assert result.to_dict()["contractName"] == "Main"


def test_parse_success_keeps_reported_size():
    result = parse_compiler_response(200, {"bytecode": "6080", "deployedBytecodeSize": 99})
    assert result.deployed_bytecode_size == 99


def test_parse_error_field_is_interpreted():
    result = parse_compiler_response(400, {"error": "ParserError: Expected pragma"})
    assert isinstance(result, CompileFailure)
    assert result.kind == "parser_error"
    assert result.raw_message == "ParserError: Expected pragma"
    assert result.status_code == 400


def test_parse_errors_list_keeps_only_errors():
    payload = {
        "errors": [
            {"severity": "warning", "formattedMessage": "Warning: unused variable"},
            {"severity": "error", "formattedMessage": "DeclarationError: Identifier already declared."},
        ]
    }
    result = parse_compiler_response(200, payload)
    assert isinstance(result, CompileFailure)
    assert "Warning" not in result.raw_message
    assert result.kind == "declaration_error"


def test_parse_missing_bytecode_and_non_mapping():
    assert parse_compiler_response(200, {}).raw_message == "Compilation failed"
    failure = parse_compiler_response(500, "upstream exploded")
    assert isinstance(failure, CompileFailure)
    assert failure.message == "upstream exploded"
