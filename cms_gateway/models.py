"""Data models: collections, items, audit findings, smoke-test runs."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

# Keys that describe an item record rather than its content
RESERVED_ITEM_KEYS = {
    "id", "_id", "itemId", "cmsLocaleId", "lastPublished", "lastUpdated",
    "createdOn", "updatedOn", "publishedOn", "isDraft", "isArchived",
    "fieldData", "fields", "_cid",
}


def _first_str(record: dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = record.get(key)
        if value:
            return str(value)
    return None


def _text(*values: Any) -> Optional[str]:
    # first usable scalar; objects, lists and booleans count as missing
    for value in values:
        if isinstance(value, bool):
            continue
        if isinstance(value, str) and value:
            return value
        if isinstance(value, (int, float)):
            return str(value)
    return None


def _flag(record: dict[str, Any], field_data: dict[str, Any], top_key: str, nested_key: str) -> bool:
    # top-level wins over nested; absence is False
    for value in (record.get(top_key), record.get(nested_key), field_data.get(nested_key)):
        if value is not None:
            return bool(value)
    return False


@dataclass(frozen=True)
class Collection:
    id: str
    name: str = ""
    slug: str = ""

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "Collection":
        return cls(
            id=_first_str(record, "id", "_id") or "",
            name=_first_str(record, "displayName", "name") or "",
            slug=_first_str(record, "slug") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Item:
    id: str
    field_data: dict[str, Any] = field(default_factory=dict)
    draft: bool = False
    archived: bool = False
    slug: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> "Item":
        """Read either generation's item representation."""
        if isinstance(record.get("fieldData"), dict):
            field_data = record["fieldData"]
        elif isinstance(record.get("fields"), dict):
            field_data = record["fields"]
        else:
            # legacy items are flat
            field_data = {k: v for k, v in record.items() if k not in RESERVED_ITEM_KEYS}
        return cls(
            id=_first_str(record, "id", "_id", "itemId") or "",
            field_data=field_data,
            draft=_flag(record, field_data, "isDraft", "_draft"),
            archived=_flag(record, field_data, "isArchived", "_archived"),
            slug=_text(record.get("slug"), field_data.get("slug")),
            name=_text(record.get("name"), field_data.get("name")),
        )


@dataclass
class DuplicateGroup:
    slug: str
    item_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"slug": self.slug, "itemIds": list(self.item_ids)}


@dataclass
class AuditFinding:
    missing_slugs: list[str] = field(default_factory=list)
    missing_names: list[str] = field(default_factory=list)
    drafts: list[str] = field(default_factory=list)
    archived: list[str] = field(default_factory=list)
    duplicates: list[DuplicateGroup] = field(default_factory=list)

    def counts(self, item_count: int) -> dict[str, int]:
        return {
            "items": item_count,
            "missingSlugs": len(self.missing_slugs),
            "missingNames": len(self.missing_names),
            "drafts": len(self.drafts),
            "archived": len(self.archived),
            "duplicateSlugGroups": len(self.duplicates),
        }


@dataclass
class PatchSuggestion:
    item_id: str
    changes: dict[str, Any]
    patch: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"itemId": self.item_id, "changes": self.changes, "patch": self.patch}


@dataclass(frozen=True)
class VersionFallbackOutcome:
    api_version: str
    payload_shape: str
    used_legacy_version: bool = False
    used_alternate_shape: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "payloadShape": self.payload_shape,
            "usedLegacyVersion": self.used_legacy_version,
            "usedAlternateShape": self.used_alternate_shape,
        }


@dataclass
class SmokeTestRun:
    collection_id: Optional[str]
    slug: str = ""
    name: str = ""
    started_at: str = ""
    finished_at: Optional[str] = None
    created: Optional[dict[str, Any]] = None
    updated: Optional[dict[str, Any]] = None
    published: Optional[dict[str, Any]] = None
    deleted: Optional[dict[str, Any]] = None
    ok: bool = False
    error: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "collectionId": self.collection_id,
            "slug": self.slug,
            "name": self.name,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
            "ok": self.ok,
        }
        for stage in ("created", "updated", "published", "deleted"):
            value = getattr(self, stage)
            if value is not None:
                out[stage] = value
        if self.error is not None:
            out["error"] = self.error
        return out
