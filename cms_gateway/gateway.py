"""Facade over the upstream stack, used by the REST layer and the CLI."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from cms_gateway.audit import AuditOptions, run_audit
from cms_gateway.config import GatewayConfig
from cms_gateway.discovery import configured_collections, resolve_collections, summarize_configured
from cms_gateway.errors import ValidationError
from cms_gateway.models import Collection
from cms_gateway.negotiation import PayloadShapeWriter, VersionDispatcher, WriteResult
from cms_gateway.pagination import list_all_items, list_page
from cms_gateway.smoke import publish_items
from cms_gateway.upstream import UpstreamClient

WRITE_METHODS = ("POST", "PATCH")


class CmsGateway:
    """One upstream client per gateway; use as an async context manager."""

    def __init__(self, config: GatewayConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.upstream = UpstreamClient(config, http_client)
        self.dispatcher = VersionDispatcher(self.upstream)
        self.writer = PayloadShapeWriter(self.dispatcher)

    async def __aenter__(self) -> "CmsGateway":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.upstream.aclose()

    # -----------------------------------------------------------------
    # Core operations
    # -----------------------------------------------------------------
    async def run_audit(self, options: AuditOptions) -> dict[str, Any]:
        return await run_audit(self.dispatcher, self.writer, self.config, options)

    async def write_item(
        self,
        collection_id: str,
        method: str,
        field_data: dict[str, Any],
        item_id: Optional[str] = None,
        flags: Optional[dict[str, Any]] = None,
    ) -> WriteResult:
        method = method.upper()
        if method not in WRITE_METHODS:
            raise ValidationError(f"Unsupported write method: {method}", details={"allowed": list(WRITE_METHODS)})
        if not isinstance(field_data, dict):
            raise ValidationError("fieldData must be an object")
        path = f"/collections/{collection_id}/items"
        if method == "PATCH":
            if not item_id:
                raise ValidationError("An item id is required to update an item")
            path = f"{path}/{item_id}"
        return await self.writer.write(path, method, field_data, flags)

    async def list_items(
        self,
        collection_id: str,
        offset: int = 0,
        limit: Optional[int] = None,
        all_pages: bool = False,
    ) -> list[dict[str, Any]]:
        limit = limit or self.config.page_size
        if all_pages:
            return await list_all_items(
                self.dispatcher, collection_id, page_size=limit, max_pages=self.config.max_list_pages
            )
        return await list_page(self.dispatcher, collection_id, offset=offset, limit=limit)

    async def resolve_collections(self, site_id: Optional[str] = None, configured: bool = False) -> list[Collection]:
        if configured:
            return configured_collections(self.config)
        return await resolve_collections(self.dispatcher, site_id or self.config.site_id)

    # -----------------------------------------------------------------
    # Supporting operations
    # -----------------------------------------------------------------
    async def publish_items(self, collection_id: str, item_ids: list[str], site_id: Optional[str] = None) -> Any:
        return await publish_items(self.dispatcher, collection_id, item_ids, site_id=site_id or self.config.site_id)

    async def delete_item(self, collection_id: str, item_id: str) -> Any:
        return await self.dispatcher.request("DELETE", f"/collections/{collection_id}/items/{item_id}")

    async def summarize(self) -> list[dict[str, Any]]:
        return await summarize_configured(self.dispatcher, self.config)

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Read-only pass-through for the few upstream reads the REST layer exposes."""
        return await self.dispatcher.request("GET", path, params=params)
