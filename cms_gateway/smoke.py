"""Write-path smoke test: create, update, optionally publish, then delete."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

from cms_gateway.config import GatewayConfig
from cms_gateway.errors import GatewayError, SmokeTestError, ValidationError
from cms_gateway.models import Collection, SmokeTestRun
from cms_gateway.negotiation import PayloadShapeWriter, VersionDispatcher

logger = logging.getLogger(__name__)

SMOKE_SLUG_PREFIX = "mcp-smoke-"
SMOKE_NAME_PREFIX = "MCP Smoke Test "


def extract_item_id(created: Any) -> Optional[str]:
    """Find the new item's id in whichever field this generation used."""
    if not isinstance(created, dict):
        return None
    nested = created.get("item") if isinstance(created.get("item"), dict) else {}
    for value in (
        created.get("id"),
        created.get("_id"),
        nested.get("id"),
        nested.get("_id"),
        created.get("itemId"),
    ):
        if value:
            return str(value)
    return None


def pick_target(config: GatewayConfig, discovered: Optional[list[Collection]] = None) -> Optional[str]:
    configured = config.configured_collection_ids()
    if configured:
        return configured[0]
    if discovered:
        return discovered[0].id
    return None


async def publish_items(
    dispatcher: VersionDispatcher,
    collection_id: str,
    item_ids: list[str],
    site_id: Optional[str] = None,
) -> Any:
    """Publish items; a 400 on the primary call falls back to the legacy payload."""
    if not item_ids:
        raise ValidationError("itemIds must be a non-empty list")
    path = f"/collections/{collection_id}/items/publish"
    body: dict[str, Any] = {"itemIds": list(item_ids)}
    if site_id:
        body["publishTo"] = [site_id]
    try:
        return await dispatcher.request("POST", path, body=body)
    except GatewayError as e:
        if e.status != 400:
            raise
        logger.info("Publish rejected (400), retrying with legacy payload")
    return await dispatcher.request("PUT", path, body={"itemIds": list(item_ids), "live": True})


def _failure(e: GatewayError) -> dict[str, Any]:
    return {"ok": False, "status": e.status, "message": e.message}


async def run_smoke_test(
    dispatcher: VersionDispatcher,
    writer: PayloadShapeWriter,
    config: GatewayConfig,
    discovered: Optional[list[Collection]] = None,
    publish: bool = False,
    site_id: Optional[str] = None,
) -> SmokeTestRun:
    target = pick_target(config, discovered)
    run = SmokeTestRun(collection_id=target, started_at=datetime.now(timezone.utc).isoformat())
    if not target:
        run.error = {"status": 400, "message": "No collection id available for smoke test", "details": None}
        run.finished_at = datetime.now(timezone.utc).isoformat()
        return run

    ts = int(time.time() * 1000)
    run.slug = f"{SMOKE_SLUG_PREFIX}{ts}"
    run.name = f"{SMOKE_NAME_PREFIX}{ts}"
    items_path = f"/collections/{target}/items"
    item_id: Optional[str] = None
    stage = "created"

    try:
        created = await writer.write(
            items_path, "POST", {"name": run.name, "slug": run.slug, "_draft": True, "_archived": False}
        )
        item_id = extract_item_id(created.data)
        if not item_id:
            raise SmokeTestError(
                "Smoke test could not read the created item id",
                details={"response": created.data},
            )
        run.created = {"ok": True, "itemId": item_id, **created.outcome.to_dict()}
        stage = "updated"

        updated = await writer.write(
            f"{items_path}/{item_id}",
            "PATCH",
            {"name": f"{run.name} (updated)", "_draft": True, "_archived": False},
        )
        run.updated = {"ok": True, **updated.outcome.to_dict()}

        if publish:
            try:
                data = await publish_items(dispatcher, target, [item_id], site_id=site_id or config.site_id)
                run.published = {"ok": True, "data": data}
            except GatewayError as e:
                logger.warning("Smoke test publish failed: %s %s", e.status, e.message)
                run.published = _failure(e)

        stage = "deleted"
        await dispatcher.request("DELETE", f"{items_path}/{item_id}")
        run.deleted = {"ok": True}
        run.ok = True
        item_id = None
    except GatewayError as e:
        logger.warning("Smoke test against %s failed: %s %s", target, e.status, e.message)
        details = dict(e.details)
        if item_id:
            details["orphanedItemId"] = item_id
            details["collectionId"] = target
        setattr(run, stage, _failure(e))
        run.error = {"status": e.status, "message": e.message, "details": details}

    run.finished_at = datetime.now(timezone.utc).isoformat()
    return run
