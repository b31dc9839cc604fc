"""
Compiler response interpretation.

``classify_compiler_error`` matches raw compiler text against a small ordered
table of known signatures and returns an :class:`InterpretedError`;
``interpret_compiler_error`` is the string-only shortcut used by the UI.
Unrecognized text is passed through unchanged.

``parse_compiler_response`` turns the compiler service's JSON reply into a
:class:`CompileSuccess` or :class:`CompileFailure`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class InterpretedError:
    kind: Optional[str]
    message: str
    detail: Optional[str] = None

    @property
    def recognized(self) -> bool:
        return self.kind is not None

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "detail": self.detail}


# ----------------------------- Signatures ----------------------------------- #

_VERSION_RE = re.compile(r"current compiler is ([0-9][0-9A-Za-z.+\-]*[0-9A-Za-z])")
# lowercase only: solc's own "Undeclared identifier." belongs to DeclarationError
_IDENTIFIER_RE = re.compile(r"undeclared identifier '([^']+)'")


def _version_mismatch(raw: str) -> Optional[InterpretedError]:
    if "requires different compiler version" not in raw:
        return None
    m = _VERSION_RE.search(raw)
    current = m.group(1) if m else "unknown"
    return InterpretedError(
        "version_mismatch",
        "Compiler version mismatch: the contract's pragma does not match the current "
        f"compiler ({current}). Update your pragma statement to a compatible version "
        "range using the ^ symbol (e.g., pragma solidity ^0.8.0).",
        current,
    )


def _undeclared_identifier(raw: str) -> Optional[InterpretedError]:
    m = _IDENTIFIER_RE.search(raw)
    if m is None:
        return None
    ident = m.group(1)
    return InterpretedError(
        "undeclared_identifier",
        f"Undeclared identifier: '{ident}' is not defined. Make sure you've declared this "
        "variable, function, or imported the contract that defines it.",
        ident,
    )


def _ownable_argument_count(raw: str) -> Optional[InterpretedError]:
    if "Wrong argument count for modifier invocation" not in raw or "Ownable(" not in raw:
        return None
    if "expected 0" in raw:
        return InterpretedError(
            "constructor_argument_count",
            "Wrong argument count for Ownable constructor. You are using OpenZeppelin v4.x "
            "but providing constructor arguments.\n\n"
            "OpenZeppelin v5.0+ is required for Ownable with arguments. Either update your "
            "import to use v5.0+ or remove the constructor arguments.",
            "0",
        )
    if "expected 1" in raw:
        return InterpretedError(
            "constructor_argument_count",
            "Wrong argument count for Ownable constructor. You need to provide an address "
            "argument for OpenZeppelin v5.x.\n\n"
            "When using OpenZeppelin v5.0+, you must pass an initial owner address to the "
            "Ownable constructor.",
            "1",
        )
    return InterpretedError(
        "constructor_argument_count",
        "Wrong argument count for Ownable constructor. Check that you are using the correct "
        "OpenZeppelin version for your constructor invocation.",
    )


def _contains(needle: str, kind: str, message: str) -> Callable[[str], Optional[InterpretedError]]:
    def _match(raw: str) -> Optional[InterpretedError]:
        return InterpretedError(kind, message) if needle in raw else None

    return _match


ErrorSignature = Callable[[str], Optional[InterpretedError]]

# first match wins
SIGNATURES: Tuple[ErrorSignature, ...] = (
    _version_mismatch,
    _undeclared_identifier,
    _contains("ParserError", "parser_error", "Syntax error in contract code. Please check your syntax."),
    _contains(
        "DeclarationError",
        "declaration_error",
        "Declaration error - identifier may not be declared or might be declared multiple times.",
    ),
    _contains("not found: File not found", "missing_import", "Import not found. Check your import paths."),
    _ownable_argument_count,
    _contains(
        "not enough arguments",
        "missing_arguments",
        "Function call missing arguments: You're not providing all the required arguments "
        "to this function call.",
    ),
    _contains(
        "External imports not available",
        "external_imports_unavailable",
        "Failed to fetch external libraries. Please check your internet connection and try again.",
    ),
    _contains(
        "insufficient funds",
        "insufficient_funds",
        "Insufficient funds: The account doesn't have enough balance to execute this transaction.",
    ),
    _contains(
        "not a contract",
        "not_a_contract",
        "Not a contract: You're trying to interact with an address that doesn't have contract code.",
    ),
    _contains(
        "transfer amount exceeds balance",
        "transfer_exceeds_balance",
        "Transfer exceeds balance: You're trying to transfer more tokens than the account has.",
    ),
)

ERROR_KINDS: Tuple[str, ...] = (
    "version_mismatch",
    "undeclared_identifier",
    "parser_error",
    "declaration_error",
    "missing_import",
    "constructor_argument_count",
    "missing_arguments",
    "external_imports_unavailable",
    "insufficient_funds",
    "not_a_contract",
    "transfer_exceeds_balance",
)


def classify_compiler_error(raw: Optional[str]) -> InterpretedError:
    text = raw or ""
    for signature in SIGNATURES:
        found = signature(text)
        if found is not None:
            return found
    return InterpretedError(None, text)


def interpret_compiler_error(raw: Optional[str]) -> str:
    """
    Return a user-facing explanation of ``raw`` compiler text.

    >>> interpret_compiler_error("something odd")
    'something odd'
    """
    return classify_compiler_error(raw).message


# ----------------------------- Responses ------------------------------------ #


@dataclass
class CompileSuccess:
    abi: List[Any]
    bytecode: str
    contract_name: str
    compiler_version: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    gas_estimates: Optional[Dict[str, Any]] = None
    deployed_bytecode_size: Optional[int] = None
    contracts: Dict[str, Any] = field(default_factory=dict)

    ok = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "abi": self.abi,
            "bytecode": self.bytecode,
            "contractName": self.contract_name,
            "compilerVersion": self.compiler_version,
            "warnings": list(self.warnings),
            "gasEstimates": self.gas_estimates,
            "deployedBytecodeSize": self.deployed_bytecode_size,
            "contracts": dict(self.contracts),
        }


@dataclass
class CompileFailure:
    raw_message: str
    message: str
    kind: Optional[str] = None
    status_code: Optional[int] = None

    ok = False

    @classmethod
    def from_raw(cls, raw: str, *, status_code: Optional[int] = None) -> "CompileFailure":
        interpreted = classify_compiler_error(raw)
        return cls(raw_message=raw, message=interpreted.message, kind=interpreted.kind, status_code=status_code)

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "message": self.message, "rawMessage": self.raw_message, "kind": self.kind}


CompilerResult = Union[CompileSuccess, CompileFailure]


def _message_of(entry: Any) -> str:
    if isinstance(entry, Mapping):
        return str(entry.get("formattedMessage") or entry.get("message") or "")
    return str(entry)


def _bytecode_size(bytecode: str) -> int:
    body = bytecode[2:] if bytecode.startswith("0x") else bytecode
    return len(body) // 2


def _failure_text(payload: Mapping[str, Any]) -> str:
    if payload.get("error"):
        return str(payload["error"])
    parts: List[str] = []
    if payload.get("message"):
        parts.append(str(payload["message"]))
    entries: Sequence[Any] = payload.get("errors") or ()
    for entry in entries:
        if isinstance(entry, Mapping) and entry.get("severity", "error") != "error":
            continue
        text = _message_of(entry)
        if text:
            parts.append(text)
    return "\n".join(parts) or "Compilation failed"


def parse_compiler_response(status_code: int, payload: Any) -> CompilerResult:
    """
    Normalize a compiler service reply.

    A 2xx reply carrying ``bytecode`` is a success; anything else is a
    failure whose text is interpreted through :func:`classify_compiler_error`.
    """
    if not isinstance(payload, Mapping):
        return CompileFailure.from_raw(str(payload or "Invalid response from compiler service"), status_code=status_code)

    if not (200 <= status_code < 300) or not payload.get("bytecode"):
        return CompileFailure.from_raw(_failure_text(payload), status_code=status_code)

    bytecode = str(payload["bytecode"])
    deployed = payload.get("deployedBytecodeSize")
    return CompileSuccess(
        abi=list(payload.get("abi") or []),
        bytecode=bytecode,
        contract_name=str(payload.get("contractName") or ""),
        compiler_version=payload.get("compilerVersion"),
        warnings=[_message_of(w) for w in payload.get("warnings") or []],
        gas_estimates=payload.get("gasEstimates"),
        deployed_bytecode_size=int(deployed) if deployed is not None else _bytecode_size(bytecode),
        contracts=dict(payload.get("contracts") or {}),
    )


__all__ = [
    "CompileFailure",
    "CompileSuccess",
    "CompilerResult",
    "ERROR_KINDS",
    "ErrorSignature",
    "InterpretedError",
    "SIGNATURES",
    "classify_compiler_error",
    "interpret_compiler_error",
    "parse_compiler_response",
]
