"""Tests for Markdown rendering of audit reports."""

from __future__ import annotations

from cms_gateway.report import generate_markdown


def _report() -> dict:
    return {
        "mode": "configured",
        "siteId": "site_1",
        "startedAt": "2026-01-01T00:00:00+00:00",
        "finishedAt": "2026-01-01T00:00:05+00:00",
        "collections": [
            {
                "id": "c1",
                "name": "Posts",
                "error": None,
                "counts": {"items": 3, "missingSlugs": 0, "missingNames": 1, "drafts": 1, "archived": 0, "duplicateSlugGroups": 1},
                "duplicateSlugs": [{"slug": "a|b", "itemIds": ["1", "2"]}],
                "patchSuggestions": [{"itemId": "1", "changes": {"slug": "a|b-1"}, "patch": {}}],
            },
            {"id": "c2", "name": "Broken", "error": {"status": 500, "message": "boom"}},
        ],
        "totals": {"items": 3, "missingNames": 1, "drafts": 1, "duplicateSlugGroups": 1, "patchSuggestions": 1, "failedCollections": 1},
        "smokeTest": {
            "collectionId": "c1",
            "ok": False,
            "created": {"ok": True},
            "error": {"status": 409, "message": "Conflict", "details": {"orphanedItemId": "tmp1"}},
        },
    }


def test_summary_rows():
    md = generate_markdown(_report())
    assert md.startswith("# CMS Content Audit\n")
    assert "| `Posts` | 3 | 0 | 1 | 1 | 0 | 1 | 1 |  |" in md
    assert "| `Broken` |  |  |  |  |  |  |  | `500: boom` |" in md
    assert "1 failed |" in md


def test_pipes_are_escaped():
    md = generate_markdown(_report())
    assert "`a\\|b`: 1, 2" in md


def test_smoke_section_lists_orphan():
    md = generate_markdown(_report())
    assert "- Result: `FAILED`" in md
    assert "- created: `ok`" in md
    assert "`tmp1`" in md
