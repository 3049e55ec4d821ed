"""List-response parsing and the collection item aggregator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from cms_gateway.errors import PaginationLimitError, UpstreamError
from cms_gateway.negotiation import VersionDispatcher

logger = logging.getLogger(__name__)


class ListVariant(Enum):
    ARRAY = "array"
    WRAPPED = "wrapped"


@dataclass
class ParsedList:
    variant: ListVariant
    items: list[Any]


def parse_list_body(body: Any, key: str) -> ParsedList:
    """Normalize a bare array or an object exposing ``key`` as an array."""
    if isinstance(body, list):
        return ParsedList(ListVariant.ARRAY, body)
    if isinstance(body, dict) and isinstance(body.get(key), list):
        return ParsedList(ListVariant.WRAPPED, body[key])
    raise UpstreamError(
        502,
        f"Unexpected list response: expected an array or an object with '{key}'",
        {"body": body, "status": 502},
    )


async def list_page(
    dispatcher: VersionDispatcher,
    collection_id: str,
    offset: int = 0,
    limit: int = 100,
) -> list[dict[str, Any]]:
    body = await dispatcher.request(
        "GET",
        f"/collections/{collection_id}/items",
        params={"offset": offset, "limit": limit},
    )
    return parse_list_body(body, "items").items


async def list_all_items(
    dispatcher: VersionDispatcher,
    collection_id: str,
    page_size: int = 100,
    max_pages: int = 1000,
) -> list[dict[str, Any]]:
    """Collect every item of a collection; a short page ends the walk."""
    items: list[dict[str, Any]] = []
    offset = 0
    for _ in range(max_pages):
        page = await list_page(dispatcher, collection_id, offset=offset, limit=page_size)
        items.extend(page)
        if len(page) < page_size:
            return items
        offset += page_size

    logger.warning("Collection %s still returning full pages after %d pages", collection_id, max_pages)
    raise PaginationLimitError(
        f"Pagination limit of {max_pages} pages reached for collection {collection_id}",
        details={"collectionId": collection_id, "pages": max_pages, "items": len(items)},
    )
