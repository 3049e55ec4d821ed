"""Markdown rendering of an audit report."""

from __future__ import annotations

from typing import Any, Dict, List


def markdown_escape(s: str) -> str:
    return s.replace("|", "\\|")


def generate_markdown(report: Dict[str, Any], max_rows: int = 25) -> str:
    lines: List[str] = []
    lines.append("# CMS Content Audit")
    lines.append("")
    lines.append(f"- Mode: `{report.get('mode')}`")
    if report.get("siteId"):
        lines.append(f"- Site: `{report['siteId']}`")
    lines.append(f"- Started: `{report.get('startedAt')}`")
    lines.append(f"- Finished: `{report.get('finishedAt')}`")
    lines.append("")

    totals = report.get("totals") or {}
    lines.append("## Summary")
    lines.append("")
    lines.append("| Collection | items | missing slug | missing name | drafts | archived | dup groups | patches | error |")
    lines.append("|---|---:|---:|---:|---:|---:|---:|---:|---|")
    for col in report.get("collections") or []:
        name = markdown_escape(col.get("name") or col["id"])
        if col.get("error"):
            msg = markdown_escape(str(col["error"].get("message", "")))
            lines.append(f"| `{name}` |  |  |  |  |  |  |  | `{col['error'].get('status')}: {msg}` |")
            continue
        c = col["counts"]
        lines.append(
            f"| `{name}` | {c['items']} | {c['missingSlugs']} | {c['missingNames']} | {c['drafts']} | {c['archived']} | {c['duplicateSlugGroups']} | {len(col.get('patchSuggestions') or [])} |  |"
        )
    lines.append(
        f"| **total** | {totals.get('items', 0)} | {totals.get('missingSlugs', 0)} | {totals.get('missingNames', 0)} | {totals.get('drafts', 0)} | {totals.get('archived', 0)} | {totals.get('duplicateSlugGroups', 0)} | {totals.get('patchSuggestions', 0)} | {totals.get('failedCollections', 0)} failed |"
    )
    lines.append("")

    lines.append("## Details")
    lines.append("")
    for col in report.get("collections") or []:
        if col.get("error"):
            continue
        dups = col.get("duplicateSlugs") or []
        patches = col.get("patchSuggestions") or []
        if not dups and not patches:
            continue
        lines.append(f"### `{markdown_escape(col.get('name') or col['id'])}`")
        if dups:
            lines.append("- Duplicate slugs:")
            for group in dups:
                lines.append(f"  - `{markdown_escape(group['slug'])}`: {', '.join(group['itemIds'])}")
        if patches:
            lines.append("")
            lines.append("<details><summary>Patch suggestions</summary>")
            lines.append("")
            lines.append("| Item | Changes |")
            lines.append("|---|---|")
            for p in patches[:max_rows]:
                changes = ", ".join(f"{k}={v}" for k, v in p["changes"].items())
                lines.append(f"| `{p['itemId']}` | `{markdown_escape(changes)}` |")
            if len(patches) > max_rows:
                lines.append(f"| (and {len(patches) - max_rows} more...) |  |")
            lines.append("")
            lines.append("</details>")
        lines.append("")

    smoke = report.get("smokeTest")
    if smoke:
        lines.append("## Smoke Test")
        lines.append("")
        lines.append(f"- Collection: `{smoke.get('collectionId')}`")
        lines.append(f"- Result: `{'OK' if smoke.get('ok') else 'FAILED'}`")
        for stage in ("created", "updated", "published", "deleted"):
            if stage in smoke:
                lines.append(f"- {stage}: `{'ok' if smoke[stage].get('ok') else 'failed'}`")
        err = smoke.get("error")
        if err:
            lines.append(f"- Error: `{err.get('status')}: {markdown_escape(str(err.get('message', '')))}`")
            orphan = (err.get("details") or {}).get("orphanedItemId")
            if orphan:
                lines.append(f"- Orphaned item needing manual cleanup: `{orphan}`")
        lines.append("")

    return "\n".join(lines) + "\n"
