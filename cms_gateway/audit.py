"""
Content audit engine.

Inventories collections, classifies their items, and proposes corrective
patches. Patches are returned in the report only; nothing here writes to
the CMS except the optional smoke test at the end of a run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from cms_gateway.config import GatewayConfig
from cms_gateway.discovery import configured_collections, resolve_collections
from cms_gateway.errors import ConfigurationError, GatewayError
from cms_gateway.models import AuditFinding, Collection, DuplicateGroup, Item, PatchSuggestion
from cms_gateway.negotiation import PayloadShapeWriter, VersionDispatcher
from cms_gateway.pagination import list_all_items
from cms_gateway.smoke import run_smoke_test

logger = logging.getLogger(__name__)

AUTO_SLUG_PREFIX = "auto-"
ID_SUFFIX_LEN = 6

COUNT_KEYS = ("items", "missingSlugs", "missingNames", "drafts", "archived", "duplicateSlugGroups")


@dataclass
class AuditOptions:
    scan_site_wide: bool = False
    site_id: Optional[str] = None
    run_smoke_test: bool = False
    run_publish_step: bool = False
    page_size: Optional[int] = None


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def id_suffix(item_id: str) -> str:
    return str(item_id)[-ID_SUFFIX_LEN:]


def analyze_items(items: list[Item]) -> AuditFinding:
    """Single pass over the items; duplicate groups keep encounter order."""
    finding = AuditFinding()
    by_slug: dict[str, list[str]] = {}
    for item in items:
        if not item.slug:
            finding.missing_slugs.append(item.id)
        else:
            by_slug.setdefault(item.slug, []).append(item.id)
        if not item.name:
            finding.missing_names.append(item.id)
        if item.draft:
            finding.drafts.append(item.id)
        if item.archived:
            finding.archived.append(item.id)

    finding.duplicates = [
        DuplicateGroup(slug=slug, item_ids=ids) for slug, ids in by_slug.items() if len(ids) > 1
    ]
    return finding


def suggest_patches(items: list[Item], finding: AuditFinding) -> list[PatchSuggestion]:
    """Propose slug/name fixes that keep each item's current lifecycle flags."""
    duplicated = {item_id for group in finding.duplicates for item_id in group.item_ids}
    suggestions = []
    for item in items:
        suffix = id_suffix(item.id)
        changes: dict[str, Any] = {}
        if not item.slug:
            changes["slug"] = f"{AUTO_SLUG_PREFIX}{suffix}"
        elif item.id in duplicated:
            # the new suffix is not re-checked for collisions
            changes["slug"] = f"{item.slug}-{suffix}"
        if not item.name:
            changes["name"] = f"Missing name {suffix}"
        if not changes:
            continue
        patch = {"fieldData": {**changes, "_draft": item.draft, "_archived": item.archived}}
        suggestions.append(PatchSuggestion(item_id=item.id, changes=changes, patch=patch))
    return suggestions


def _empty_totals() -> dict[str, int]:
    totals = {key: 0 for key in COUNT_KEYS}
    totals.update({"collections": 0, "failedCollections": 0, "patchSuggestions": 0})
    return totals


async def audit_collection(
    dispatcher: VersionDispatcher,
    collection: Collection,
    page_size: int,
    max_pages: int,
) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": collection.id,
        "name": collection.name,
        "slug": collection.slug,
        "error": None,
    }
    try:
        records = await list_all_items(dispatcher, collection.id, page_size=page_size, max_pages=max_pages)
    except GatewayError as e:
        logger.warning("Audit of collection %s failed: %s %s", collection.id, e.status, e.message)
        entry["error"] = e.to_dict()
        return entry

    items = [Item.from_api(r) for r in records if isinstance(r, dict)]
    finding = analyze_items(items)
    entry["counts"] = finding.counts(len(items))
    entry["duplicateSlugs"] = [g.to_dict() for g in finding.duplicates]
    entry["patchSuggestions"] = [s.to_dict() for s in suggest_patches(items, finding)]
    return entry


async def run_audit(
    dispatcher: VersionDispatcher,
    writer: PayloadShapeWriter,
    config: GatewayConfig,
    options: AuditOptions,
) -> dict[str, Any]:
    """Inventory, classify, suggest patches, then optionally smoke-test writes."""
    report: dict[str, Any] = {"status": "ok", "startedAt": utc_now()}

    if options.scan_site_wide:
        site_id = options.site_id or config.site_id
        if not site_id:
            raise ConfigurationError("Site-wide audit requires a site id (WEBFLOW_SITE_ID)")
        report["mode"] = "site"
        report["siteId"] = site_id
        collections = await resolve_collections(dispatcher, site_id)
    else:
        report["mode"] = "configured"
        report["siteId"] = options.site_id or config.site_id
        collections = configured_collections(config)

    page_size = options.page_size or config.page_size
    totals = _empty_totals()
    entries = []
    for collection in collections:
        entry = await audit_collection(dispatcher, collection, page_size, config.max_list_pages)
        entries.append(entry)
        if entry["error"] is not None:
            totals["failedCollections"] += 1
            continue
        totals["collections"] += 1
        for key in COUNT_KEYS:
            totals[key] += entry["counts"][key]
        totals["patchSuggestions"] += len(entry["patchSuggestions"])

    report["collections"] = entries
    report["totals"] = totals
    logger.info(
        "Audit finished: %d collections, %d items, %d failed",
        totals["collections"], totals["items"], totals["failedCollections"],
    )

    if options.run_smoke_test:
        smoke = await run_smoke_test(
            dispatcher,
            writer,
            config,
            discovered=collections,
            publish=options.run_publish_step,
            site_id=report.get("siteId"),
        )
        report["smokeTest"] = smoke.to_dict()

    report["finishedAt"] = utc_now()
    return report
