from __future__ import annotations

import re

import pytest

from studio_compiler.version import __version__

# Liveness, version and the Prometheus exporter mounted by create_app().


@pytest.mark.asyncio
async def test_healthz_ok(aclient):
    resp = await aclient.get("/healthz")
    assert resp.status_code == 200
    assert "application/json" in resp.headers.get("content-type", "").lower()

    data = resp.json()
    assert data["ok"] is True
    assert data["compiler_url"] == "http://compiler.test"
    assert data["root_escape"] == "strict"
    assert data["uptime_s"] >= 0


@pytest.mark.asyncio
async def test_version_endpoint(aclient):
    resp = await aclient.get("/version")
    assert resp.status_code == 200

    data = resp.json()
    assert data["version"] == __version__
    assert re.match(r"^\d+\.\d+\.\d+", data["version"])
    assert "python" in data


@pytest.mark.asyncio
async def test_metrics_exporter(aclient):
    await aclient.get("/healthz")
    resp = await aclient.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")

    text = resp.text
    assert 'http_requests_total{method="GET",path="/healthz",status="200"} 1.0' in text
    assert "service_info" in text
    assert "compile_requests_total" in text


@pytest.mark.asyncio
async def test_cors_preflight(aclient):
    resp = await aclient.options(
        "/compile",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"


@pytest.mark.asyncio
async def test_cors_rejects_unknown_origin(aclient):
    resp = await aclient.options(
        "/compile",
        headers={
            "Origin": "http://evil.test",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert resp.status_code == 400
    assert "access-control-allow-origin" not in resp.headers
