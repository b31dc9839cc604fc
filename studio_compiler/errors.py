from __future__ import annotations

"""
Error hierarchy and helpers for Studio Compiler.

Every error raised across the engine, the compiler adapter and the HTTP layer
derives from :class:`ApiError`, so a FastAPI exception handler can render it
as an RFC 7807 "problem+json" body while library callers can still catch
specific subclasses.

Usage
-----
    from studio_compiler.errors import UnknownFile

    raise UnknownFile("f-42")

Design
------
- Every error has:
  - ``status_code`` (int): HTTP status
  - ``code`` (str): stable machine code (e.g., "path_escapes_root")
  - ``message`` (str): human-friendly summary
  - ``details`` (dict|None): optional structured diagnostics
- ``to_problem()`` returns an RFC 7807 dict.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence


DEFAULT_ERROR_DOCS_BASE = "https://docs.studio-compiler.dev/errors"


@dataclass
class ApiError(Exception):
    message: str
    status_code: int = 400
    code: str = "bad_request"
    details: Optional[Mapping[str, Any]] = None
    type_uri_base: str = DEFAULT_ERROR_DOCS_BASE

    def __post_init__(self) -> None:
        super().__init__(self.message)

    # --- RFC 7807 helpers -------------------------------------------------- #

    def type_uri(self) -> str:
        return f"{self.type_uri_base}#{self.code}"

    def title(self) -> str:
        return {
            "bad_request": "Bad Request",
            "invalid_project_tree": "Invalid Project Tree",
            "unknown_file": "Unknown File",
            "path_escapes_root": "Import Escapes Project Root",
            "payload_too_large": "Compilation Payload Too Large",
            "compile_failed": "Compilation Failed",
            "compiler_unavailable": "Compiler Service Unavailable",
            "server_error": "Internal Server Error",
        }.get(self.code, self.message or "Error")

    def to_problem(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "type": self.type_uri(),
            "title": self.title(),
            "status": self.status_code,
            "code": self.code,
            "detail": self.message,
        }
        if self.details:
            body["details"] = dict(self.details)
        return body

    @classmethod
    def from_unexpected(cls, err: BaseException) -> "ApiError":
        """
        Convert an unexpected exception into a generic server error while
        preserving a minimal diagnostic in ``details``.
        """
        return ServerError(
            "Unhandled server error",
            details={"exc_type": err.__class__.__name__, "str": str(err)},
        )


# ------------------------------ Concrete types ------------------------------- #


class BadRequest(ApiError):
    def __init__(self, message: str = "Bad request", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=400, code="bad_request", details=details)


class ProjectTreeError(ApiError):
    """The file-system snapshot violates a structural invariant."""

    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=400, code="invalid_project_tree", details=details)


class UnknownFile(ApiError):
    def __init__(self, file_id: str, *, reason: str = "not found"):
        super().__init__(
            message=f"File {file_id!r} {reason}",
            status_code=404,
            code="unknown_file",
            details={"file_id": file_id},
        )
        self.file_id = file_id


class PathEscapesRoot(ApiError):
    """A relative import climbs above the project root."""

    def __init__(self, from_path: str, import_path: str):
        super().__init__(
            message=f"Import {import_path!r} in {from_path!r} escapes the project root",
            status_code=422,
            code="path_escapes_root",
            details={"from_path": from_path, "import_path": import_path},
        )
        self.from_path = from_path
        self.import_path = import_path


class PayloadTooLarge(ApiError):
    def __init__(self, message: str, *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=413, code="payload_too_large", details=details)


class CompileFailed(ApiError):
    """
    The compiler service rejected the unit. ``message`` is the interpreted
    explanation; the raw compiler text is kept in ``raw_message``.
    """

    def __init__(
        self,
        message: str,
        *,
        raw_message: str,
        kind: Optional[str] = None,
        missing: Sequence[str] = (),
    ):
        details: Dict[str, Any] = {"raw_message": raw_message, "kind": kind}
        if missing:
            details["missing"] = list(missing)
        super().__init__(message=message, status_code=422, code="compile_failed", details=details)
        self.raw_message = raw_message
        self.kind = kind


class CompilerUnavailable(ApiError):
    def __init__(self, message: str = "Compiler service unavailable", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=502, code="compiler_unavailable", details=details)


class ServerError(ApiError):
    def __init__(self, message: str = "Internal server error", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=500, code="server_error", details=details)


__all__ = [
    "ApiError",
    "BadRequest",
    "ProjectTreeError",
    "UnknownFile",
    "PathEscapesRoot",
    "PayloadTooLarge",
    "CompileFailed",
    "CompilerUnavailable",
    "ServerError",
]
