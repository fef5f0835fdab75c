"""Tests for security middleware — headers, request IDs."""

import pytest

from headacher.middleware.request_id import resolve_request_id


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "Cache-Control" not in r.headers


@pytest.mark.asyncio
async def test_auth_responses_are_not_cacheable(client, wallet):
    r = await client.get("/api/auth/nonce", params={"address": wallet.address})
    assert r.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    r1 = await client.get("/api/health")
    r2 = await client.get("/api/health")
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/api/health", headers={"X-Request-ID": "test-trace-12345"})
    assert r.headers["X-Request-ID"] == "test-trace-12345"


@pytest.mark.asyncio
async def test_request_id_on_error_responses(client):
    r = await client.get("/api/headaches", headers={"X-Request-ID": "trace-401"})
    assert r.status_code == 401
    assert r.headers["X-Request-ID"] == "trace-401"


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    r = await client.get("/api/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.parametrize("incoming", [None, "", "has spaces", "x" * 129, "bad\x00id"])
def test_untrusted_request_ids_are_replaced(incoming):
    resolved = resolve_request_id(incoming)
    assert resolved != incoming
    assert len(resolved) == 36
