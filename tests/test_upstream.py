"""Tests for the single-call upstream client: headers, errors, configuration."""

from __future__ import annotations

import httpx
import pytest

from cms_gateway.config import GatewayConfig
from cms_gateway.errors import ConfigurationError, UpstreamError
from cms_gateway.upstream import UpstreamClient, extract_message


@pytest.mark.asyncio
async def test_sets_auth_and_version_headers(upstream, fake):
    """Bearer token and version tag are sent; no content-type without a body."""
    fake.add("GET", "/sites", (200, []))
    data = await upstream.request("GET", "/sites", "2.0.0")
    assert data == []
    call = fake.calls[0]
    assert call.headers["authorization"] == "Bearer test-token"
    assert call.version == "2.0.0"
    assert "content-type" not in call.headers


@pytest.mark.asyncio
async def test_content_type_only_with_body(upstream, fake):
    fake.add("POST", "/collections/c/items", (200, {"id": "i1"}))
    await upstream.request("POST", "/collections/c/items", "2.0.0", body={"fieldData": {}})
    assert fake.calls[0].headers["content-type"] == "application/json"
    assert fake.calls[0].body == {"fieldData": {}}


@pytest.mark.asyncio
async def test_query_params_are_passed(upstream, fake):
    fake.add("GET", "/collections/c/items", (200, {"items": []}))
    await upstream.request("GET", "/collections/c/items", "2.0.0", params={"offset": 0, "limit": 10})
    assert fake.calls[0].params == {"offset": "0", "limit": "10"}


@pytest.mark.asyncio
async def test_error_carries_status_message_and_details(upstream, fake):
    fake.add("GET", "/sites/x", (403, {"err": "Forbidden site", "message": "ignored"}))
    with pytest.raises(UpstreamError) as info:
        await upstream.request("GET", "/sites/x", "2.0.0")
    err = info.value
    assert err.status == 403
    assert err.message == "Forbidden site"
    assert err.details == {"path": "/sites/x", "body": {"err": "Forbidden site", "message": "ignored"}, "status": 403}


@pytest.mark.asyncio
async def test_empty_success_body_returns_none(upstream, fake):
    fake.add("DELETE", "/collections/c/items/i", (204, None))
    assert await upstream.request("DELETE", "/collections/c/items/i", "2.0.0") is None


@pytest.mark.asyncio
async def test_missing_token_fails_before_network(fake):
    """No credentials: ConfigurationError and no request issued."""
    client = UpstreamClient(GatewayConfig(api_token=""), fake.client())
    with pytest.raises(ConfigurationError):
        await client.request("GET", "/sites", "2.0.0")
    assert fake.calls == []


@pytest.mark.asyncio
async def test_transport_failure_becomes_upstream_error(cfg):
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = UpstreamClient(cfg, httpx.AsyncClient(transport=httpx.MockTransport(boom)))
    with pytest.raises(UpstreamError) as info:
        await client.request("GET", "/sites", "2.0.0")
    assert info.value.status == 502


def test_extract_message_order():
    assert extract_message({"msg": "c", "message": "b", "err": "a"}, 400) == "a"
    assert extract_message({"msg": "c", "message": "b"}, 400) == "b"
    assert extract_message({"msg": "c"}, 400) == "c"
    assert extract_message({"other": 1}, 418) == "Upstream request failed with status 418"
    assert extract_message("plain text", 500) == "Upstream request failed with status 500"


def test_error_name_from_envelope():
    err = UpstreamError(400, "bad", {"body": {"code": "UnsupportedVersion"}})
    assert err.name == "UnsupportedVersion"
    assert UpstreamError(400, "bad", {"body": "text"}).name is None
