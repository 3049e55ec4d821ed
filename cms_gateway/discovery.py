"""Collection discovery and the safe-mode summary of configured collections."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from cms_gateway.config import GatewayConfig
from cms_gateway.errors import ConfigurationError, GatewayError
from cms_gateway.models import Collection
from cms_gateway.negotiation import VersionDispatcher
from cms_gateway.pagination import list_page, parse_list_body

logger = logging.getLogger(__name__)


async def resolve_collections(dispatcher: VersionDispatcher, site_id: Optional[str]) -> list[Collection]:
    """Collections of a site: the per-site path first, the query form on a 400."""
    if site_id:
        try:
            body = await dispatcher.request("GET", f"/sites/{site_id}/collections")
            return _collections(body)
        except GatewayError as e:
            if e.status != 400:
                raise
            logger.info("Site collections path rejected (400), falling back to ?siteId=")
        body = await dispatcher.request("GET", "/collections", params={"siteId": site_id})
    else:
        body = await dispatcher.request("GET", "/collections")
    return _collections(body)


def _collections(body: Any) -> list[Collection]:
    records = parse_list_body(body, "collections").items
    return [Collection.from_api(r) for r in records if isinstance(r, dict)]


def configured_collections(config: GatewayConfig) -> list[Collection]:
    """The statically configured collections, without touching the upstream."""
    found = []
    if config.resources_collection_id:
        found.append(Collection(id=config.resources_collection_id, name="Resources", slug="resources"))
    if config.articles_collection_id:
        found.append(Collection(id=config.articles_collection_id, name="Articles", slug="articles"))
    if not found:
        raise ConfigurationError(
            "No collections configured: set RESOURCES_COLLECTION_ID or ARTICLES_COLLECTION_ID"
        )
    return found


async def _summarize_one(dispatcher: VersionDispatcher, collection: Collection) -> dict[str, Any]:
    entry: dict[str, Any] = {"id": collection.id, "name": collection.name, "error": None}
    try:
        meta, sample = await asyncio.gather(
            dispatcher.request("GET", f"/collections/{collection.id}"),
            list_page(dispatcher, collection.id, offset=0, limit=1),
        )
    except GatewayError as e:
        entry["error"] = e.to_dict()
        return entry
    if isinstance(meta, dict):
        entry["name"] = meta.get("displayName") or meta.get("name") or collection.name
        entry["slug"] = meta.get("slug")
        entry["fields"] = len(meta.get("fields") or [])
    entry["hasItems"] = bool(sample)
    return entry


async def summarize_configured(dispatcher: VersionDispatcher, config: GatewayConfig) -> list[dict[str, Any]]:
    """Read-only lookups for every configured collection, issued concurrently."""
    collections = configured_collections(config)
    return list(await asyncio.gather(*(_summarize_one(dispatcher, c) for c in collections)))
