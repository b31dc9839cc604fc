"""
HTTP client for the external Solidity compiler service.

The compiler service exposes two endpoints:

* ``POST /api/compile``        ``{"code": str, "externalLibraries": [str]}``
* ``POST /api/compile-multi``  ``{"files": {path: src}, "mainFile": path, "externalLibraries": [str]}``

This adapter provides:
- a retrying async transport (transport errors and 502/503/504, exponential backoff)
- payload limit checks applied before anything is sent
- ``compile_unit`` which picks single or multi-file mode from the unit size

Replies are normalized with :func:`studio_compiler.engine.diagnostics.parse_compiler_response`;
a non-2xx reply that is not retriable becomes a :class:`CompileFailure`, not an exception.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import httpx

from ..engine.assemble import CompilationUnit
from ..engine.diagnostics import CompilerResult, parse_compiler_response
from ..errors import PayloadTooLarge

log = logging.getLogger(__name__)

SINGLE_PATH = "/api/compile"
MULTI_PATH = "/api/compile-multi"


# ----------------------------- Errors ---------------------------------------


class CompilerClientError(Exception):
    """Base class for compiler adapter errors."""


class CompilerTransportError(CompilerClientError):
    """Network/HTTP transport-level error that survived all retries."""

    def __init__(self, message: str, *, attempts: int, status: Optional[int] = None):
        super().__init__(message)
        self.attempts = attempts
        self.status = status


# ----------------------------- Helpers --------------------------------------


RETRY_STATUSES = (502, 503, 504)


def _build_headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    hdrs = {
        "content-type": "application/json",
        "accept": "application/json",
    }
    if extra:
        hdrs.update(extra)
    return hdrs


def _decode_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


# ----------------------------- Limits ---------------------------------------


@dataclass(frozen=True)
class PayloadLimits:
    max_files: int = 100
    max_file_size: int = 500 * 1024
    max_total_size: int = 2 * 1024 * 1024

    def check(self, files: Mapping[str, str]) -> None:
        """
        Raise :class:`PayloadTooLarge` if ``files`` exceeds any limit.
        Sizes are UTF-8 byte lengths.
        """
        if len(files) > self.max_files:
            raise PayloadTooLarge(
                f"Too many files ({len(files)}); the limit is {self.max_files}",
                details={"files": len(files), "max_files": self.max_files},
            )
        total = 0
        for path, src in files.items():
            size = len(src.encode("utf-8"))
            if size > self.max_file_size:
                raise PayloadTooLarge(
                    f"File {path} is {size} bytes; the limit is {self.max_file_size}",
                    details={"path": path, "size": size, "max_file_size": self.max_file_size},
                )
            total += size
        if total > self.max_total_size:
            raise PayloadTooLarge(
                f"Total source size {total} bytes exceeds {self.max_total_size}",
                details={"total_size": total, "max_total_size": self.max_total_size},
            )


# ----------------------------- Client ---------------------------------------


@dataclass
class CompilerClientConfig:
    url: str
    timeout_s: float = 30.0
    max_retries: int = 2
    backoff_base_s: float = 0.25  # exponential backoff starting delay
    headers: Optional[Dict[str, str]] = None


class CompilerClient:
    """
    Minimal async client for the compiler service.

    ``transport`` is passed straight to :class:`httpx.AsyncClient`; tests use
    :class:`httpx.MockTransport`.
    """

    def __init__(
        self,
        config: CompilerClientConfig,
        *,
        limits: Optional[PayloadLimits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._cfg = config
        self.limits = limits or PayloadLimits()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ---------- lifecycle ----------

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._cfg.url,
                timeout=self._cfg.timeout_s,
                headers=_build_headers(self._cfg.headers),
                transport=self._transport,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CompilerClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- core transport ----------

    async def _post(self, path: str, payload: Dict[str, Any]) -> Tuple[int, Any]:
        """
        POST ``payload`` with retries; return (status, decoded body).
        """
        if self._client is None:
            await self.start()

        assert self._client is not None  # for type-checkers

        attempt = 0
        while True:
            attempt += 1
            status: Optional[int] = None
            try:
                resp = await self._client.post(path, json=payload)
                status = resp.status_code
                if status not in RETRY_STATUSES:
                    return status, _decode_body(resp)
                reason = f"HTTP {status}: {resp.text[:256]!r}"
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                reason = f"{exc.__class__.__name__}: {exc}"

            if attempt > self._cfg.max_retries:
                raise CompilerTransportError(
                    f"compiler call failed after {attempt} attempts: {reason}",
                    attempts=attempt,
                    status=status,
                )
            delay = self._cfg.backoff_base_s * (2 ** (attempt - 1))
            log.warning("compiler call to %s failed (%s); retrying in %.2fs", path, reason, delay)
            await asyncio.sleep(delay)

    # ---------- typed methods ----------

    async def compile_single(self, code: str, external_libraries: Sequence[str] = ()) -> CompilerResult:
        self.limits.check({"contract.sol": code})
        payload: Dict[str, Any] = {"code": code}
        if external_libraries:
            payload["externalLibraries"] = list(external_libraries)
        status, body = await self._post(SINGLE_PATH, payload)
        return parse_compiler_response(status, body)

    async def compile_multi(
        self,
        files: Mapping[str, str],
        main_file: str,
        external_libraries: Sequence[str] = (),
    ) -> CompilerResult:
        if main_file not in files:
            raise ValueError(f"main file {main_file!r} is not part of the submitted files")
        self.limits.check(files)
        payload: Dict[str, Any] = {"files": dict(files), "mainFile": main_file}
        if external_libraries:
            payload["externalLibraries"] = list(external_libraries)
        status, body = await self._post(MULTI_PATH, payload)
        return parse_compiler_response(status, body)

    async def compile_unit(self, unit: CompilationUnit) -> CompilerResult:
        """Submit ``unit``; more than one file selects multi-file mode."""
        if unit.is_multi_file:
            return await self.compile_multi(unit.files, unit.entry_path, unit.external_imports)
        return await self.compile_single(unit.files[unit.entry_path], unit.external_imports)


def mode_for(unit: CompilationUnit) -> str:
    return "multi" if unit.is_multi_file else "single"


__all__ = [
    "CompilerClient",
    "CompilerClientConfig",
    "CompilerClientError",
    "CompilerTransportError",
    "MULTI_PATH",
    "PayloadLimits",
    "SINGLE_PATH",
    "mode_for",
]
