"""Shared test fixtures: a scripted fake CMS behind httpx.MockTransport."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import pytest

from cms_gateway.config import GatewayConfig
from cms_gateway.gateway import CmsGateway
from cms_gateway.negotiation import PayloadShapeWriter, VersionDispatcher
from cms_gateway.upstream import UpstreamClient


@dataclass
class RecordedCall:
    method: str
    path: str
    version: Optional[str]
    params: dict[str, str]
    body: Any
    headers: httpx.Headers


class FakeUpstream:
    """Scripted CMS: responses are queued per (method, path) and consumed in order.

    The last queued response for a route is repeated once the queue runs dry.
    Unscripted routes answer 404.
    """

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self._routes: dict[tuple[str, str], list[tuple[int, Any]]] = {}

    def add(self, method: str, path: str, *responses: tuple[int, Any]) -> None:
        self._routes.setdefault((method, path), []).extend(responses)

    def calls_to(self, method: str, path: str) -> list[RecordedCall]:
        return [c for c in self.calls if c.method == method and c.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append(
            RecordedCall(
                method=request.method,
                path=request.url.path,
                version=request.headers.get("accept-version"),
                params=dict(request.url.params),
                body=body,
                headers=request.headers,
            )
        )
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": f"no route {request.method} {request.url.path}"})
        status, payload = queue.pop(0) if len(queue) > 1 else queue[0]
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(status, json=payload)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def cfg() -> GatewayConfig:
    return GatewayConfig(
        api_token="test-token",
        api_base="https://cms.test",
        site_id="site_1",
        resources_collection_id="col_res",
        articles_collection_id="col_art",
        page_size=100,
        max_list_pages=50,
    )


@pytest.fixture
def fake() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def upstream(cfg: GatewayConfig, fake: FakeUpstream) -> UpstreamClient:
    return UpstreamClient(cfg, fake.client())


@pytest.fixture
def dispatcher(upstream: UpstreamClient) -> VersionDispatcher:
    return VersionDispatcher(upstream)


@pytest.fixture
def writer(dispatcher: VersionDispatcher) -> PayloadShapeWriter:
    return PayloadShapeWriter(dispatcher)


@pytest.fixture
def gateway(cfg: GatewayConfig, fake: FakeUpstream) -> CmsGateway:
    return CmsGateway(cfg, fake.client())
