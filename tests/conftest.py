from __future__ import annotations

import json
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from studio_compiler.app import build_compiler_client, create_app
from studio_compiler.config import Settings
from studio_compiler.engine.libraries import LibraryRegistry, default_registry

COMPILER_URL = "http://compiler.test"

KNOWN_LIBRARIES = {
    "@known/": {
        "url": "https://example.test/known",
        "docs": "https://example.test/known/docs",
        "description": "Known test library",
    }
}

SUCCESS_BODY: Dict[str, Any] = {
    "abi": [{"type": "function", "name": "ping", "inputs": [], "outputs": []}],
    "bytecode": "0x6080604052",
    "contractName": "Main",
    "compilerVersion": "0.8.19+commit.7dd6d404",
    "warnings": [],
}


# ----------------------------
# Project tree helpers
# ----------------------------
def records_from_paths(sources: Dict[str, str]) -> List[Dict[str, Any]]:
    """
    Flat ProjectFile records for ``{"a/b/C.sol": "..."}``; ids are the paths
    and intermediate folders are created on the way.
    """
    records: List[Dict[str, Any]] = []
    folders: Dict[str, Dict[str, Any]] = {}
    for path, content in sources.items():
        parts = path.split("/")
        parent: Optional[str] = None
        for i, name in enumerate(parts[:-1]):
            fid = "/".join(parts[: i + 1])
            if fid not in folders:
                folders[fid] = {"id": fid, "name": name, "kind": "folder", "parent": parent}
                records.append(folders[fid])
            parent = fid
        records.append({"id": path, "name": parts[-1], "kind": "file", "content": content, "parent": parent})
    return records


@pytest.fixture
def make_records() -> Callable[[Dict[str, str]], List[Dict[str, Any]]]:
    return records_from_paths


@pytest.fixture
def registry() -> LibraryRegistry:
    return default_registry()


@pytest.fixture
def known_registry() -> LibraryRegistry:
    return LibraryRegistry.from_mapping(KNOWN_LIBRARIES)


@pytest.fixture
def write_project(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """Materialize ``{"rel/path.sol": source}`` under a temp dir; returns the root."""

    def _write(sources: Dict[str, str]) -> Path:
        root = tmp_path / "project"
        for rel, content in sources.items():
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return root

    return _write


# ----------------------------
# Fake compiler service
# ----------------------------
Reply = Union[Tuple[int, Any], str]


class FakeCompiler:
    """
    httpx.MockTransport handler standing in for the compiler service.

    Queued replies are consumed in order; once empty, ``default`` is used.
    A reply of ``"connect_error"`` raises a transport error instead.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.replies: List[Reply] = []
        self.default: Reply = (200, SUCCESS_BODY)

    def queue(self, *replies: Reply) -> None:
        self.replies.extend(replies)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.url.path, json.loads(request.content or b"{}")))
        reply = self.replies.pop(0) if self.replies else self.default
        if reply == "connect_error":
            raise httpx.ConnectError("connection refused", request=request)
        status, body = reply
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        COMPILER_URL=COMPILER_URL,
        COMPILER_BACKOFF_S=0.0,
        COMPILER_MAX_RETRIES=2,
        ROOT_ESCAPE="strict",
        KNOWN_LIBRARIES=json.dumps(KNOWN_LIBRARIES),
    )


# ----------------------------
# FastAPI application fixtures
# ----------------------------
@pytest.fixture
def app(settings: Settings, fake_compiler: FakeCompiler) -> FastAPI:
    client = build_compiler_client(settings, transport=fake_compiler.transport)
    return create_app(settings, compiler=client)


@pytest.fixture
async def aclient(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    await app.state.compiler.close()
