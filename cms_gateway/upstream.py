"""Single-call HTTP client for the upstream CMS API."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from cms_gateway.config import GatewayConfig
from cms_gateway.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

VERSION_HEADER = "accept-version"
MESSAGE_FIELDS = ("err", "message", "msg")


def extract_message(body: Any, status: int) -> str:
    """Pull a human message out of the upstream error envelope."""
    if isinstance(body, dict):
        for key in MESSAGE_FIELDS:
            value = body.get(key)
            if value:
                return str(value)
    return f"Upstream request failed with status {status}"


def _parse_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


class UpstreamClient:
    """Issues one request per call against the CMS and surfaces errors uniformly."""

    def __init__(self, config: GatewayConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout_s)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def _headers(self, version: str, has_body: bool) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.config.api_token}",
            "Accept": "application/json",
            VERSION_HEADER: version,
        }
        # An empty body sent as JSON is rejected as malformed upstream
        if has_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        version: str,
        params: Optional[dict[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        if not self.config.api_token:
            raise ConfigurationError("WEBFLOW_API_TOKEN is not configured")

        url = self.config.api_base.rstrip("/") + path
        has_body = body is not None
        try:
            resp = await self._http.request(
                method,
                url,
                params=params,
                json=body if has_body else None,
                headers=self._headers(version, has_body),
            )
        except httpx.HTTPError as e:
            raise UpstreamError(
                502,
                f"Upstream request failed: {e}",
                {"path": path, "body": None, "status": 502},
            ) from e

        data = _parse_body(resp)
        logger.debug("%s %s [%s] -> %s", method, path, version, resp.status_code)
        if resp.is_success:
            return data

        raise UpstreamError(
            resp.status_code,
            extract_message(data, resp.status_code),
            {"path": path, "body": data, "status": resp.status_code},
        )
