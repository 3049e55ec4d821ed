"""Tests for list parsing and the page aggregator."""

from __future__ import annotations

import pytest

from cms_gateway.errors import PaginationLimitError, UpstreamError
from cms_gateway.pagination import ListVariant, list_all_items, parse_list_body

ITEMS = "/collections/c1/items"


def _page(n: int, start: int = 0) -> list[dict]:
    return [{"id": f"item{start + i}"} for i in range(n)]


def test_parse_bare_array():
    parsed = parse_list_body([{"id": 1}], "items")
    assert parsed.variant is ListVariant.ARRAY
    assert parsed.items == [{"id": 1}]


def test_parse_wrapped_object():
    parsed = parse_list_body({"items": [], "pagination": {"total": 0}}, "items")
    assert parsed.variant is ListVariant.WRAPPED
    assert parsed.items == []


def test_parse_rejects_other_shapes():
    with pytest.raises(UpstreamError) as info:
        parse_list_body({"collections": []}, "items")
    assert info.value.status == 502


@pytest.mark.asyncio
async def test_aggregates_until_short_page(dispatcher, fake):
    """Pages of 100, 100, 37: 237 items in 3 calls at increasing offsets."""
    fake.add(
        "GET",
        ITEMS,
        (200, {"items": _page(100)}),
        (200, _page(100, 100)),
        (200, {"items": _page(37, 200)}),
    )
    items = await list_all_items(dispatcher, "c1", page_size=100)
    assert len(items) == 237
    assert items[0]["id"] == "item0"
    assert items[-1]["id"] == "item236"
    assert [c.params["offset"] for c in fake.calls] == ["0", "100", "200"]
    assert all(c.params["limit"] == "100" for c in fake.calls)


@pytest.mark.asyncio
async def test_empty_first_page(dispatcher, fake):
    fake.add("GET", ITEMS, (200, {"items": []}))
    items = await list_all_items(dispatcher, "c1", page_size=100)
    assert items == []
    assert len(fake.calls) == 1


@pytest.mark.asyncio
async def test_exact_multiple_needs_trailing_empty_page(dispatcher, fake):
    fake.add("GET", ITEMS, (200, _page(10)), (200, []))
    items = await list_all_items(dispatcher, "c1", page_size=10)
    assert len(items) == 10
    assert len(fake.calls) == 2


@pytest.mark.asyncio
async def test_full_pages_forever_hit_the_limit(dispatcher, fake):
    fake.add("GET", ITEMS, (200, _page(5)))
    with pytest.raises(PaginationLimitError) as info:
        await list_all_items(dispatcher, "c1", page_size=5, max_pages=3)
    assert len(fake.calls) == 3
    assert info.value.details["items"] == 15


@pytest.mark.asyncio
async def test_page_failure_propagates(dispatcher, fake):
    fake.add("GET", ITEMS, (200, _page(2)), (500, {"message": "boom"}))
    with pytest.raises(UpstreamError):
        await list_all_items(dispatcher, "c1", page_size=2)
