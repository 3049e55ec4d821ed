"""Tests for the gateway REST client (urlopen is patched)."""

from __future__ import annotations

import io
import json
import urllib.error

import pytest

from cms_gateway import client as client_module
from cms_gateway.client import CmsGatewayClient


class _Resp(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def captured(monkeypatch):
    seen = []

    def fake_urlopen(req, timeout=None):
        seen.append(req)
        return _Resp(json.dumps({"status": "ok", "totals": {}, "collections": []}).encode())

    monkeypatch.setattr(client_module.urllib.request, "urlopen", fake_urlopen)
    return seen


def test_audit_posts_options_with_token(captured):
    gw = CmsGatewayClient(base_url="http://gw.test/", api_token="tok")
    gw.audit(run_smoke_test=True, site_id="s1")
    req = captured[0]
    assert req.full_url == "http://gw.test/audit"
    assert req.get_method() == "POST"
    assert req.get_header("Authorization") == "Bearer tok"
    assert json.loads(req.data) == {
        "scanSiteWide": False,
        "runSmokeTest": True,
        "runPublishStep": False,
        "siteId": "s1",
    }


def test_collections_query_string(captured):
    gw = CmsGatewayClient(base_url="http://gw.test", api_token="")
    assert gw.collections(configured=True) == []
    assert captured[0].full_url == "http://gw.test/collections?configured=true"
    assert captured[0].data is None
    assert captured[0].get_header("Authorization") is None


def test_http_error_raises_runtime_error(monkeypatch):
    def failing(req, timeout=None):
        raise urllib.error.HTTPError(req.full_url, 502, "Bad Gateway", {}, io.BytesIO(b'{"status":"error"}'))

    monkeypatch.setattr(client_module.urllib.request, "urlopen", failing)
    with pytest.raises(RuntimeError, match="HTTP 502"):
        CmsGatewayClient(base_url="http://gw.test").health()
