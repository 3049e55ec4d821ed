#!/usr/bin/env python3
"""
Content audit against the upstream CMS, without going through the gateway server.

Inventories collections, flags missing/duplicate slugs and names, proposes
patches, and optionally rehearses the write path (create/update/delete).

Typical usage:
  python3 scripts/run_audit.py \
    --site-wide --site-id 5f0c8c9e1c9d440000e8d8c0 \
    --smoke \
    --out-md docs/status/cms-audit.md \
    --out-json output/cms-audit.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os

from cms_gateway import config
from cms_gateway.audit import AuditOptions
from cms_gateway.gateway import CmsGateway
from cms_gateway.report import generate_markdown


async def run(args: argparse.Namespace) -> dict:
    options = AuditOptions(
        scan_site_wide=args.site_wide,
        site_id=args.site_id,
        run_smoke_test=args.smoke,
        run_publish_step=args.publish,
        page_size=args.page_size,
    )
    async with CmsGateway(config.load_config()) as gateway:
        return await gateway.run_audit(options)


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--site-wide", action="store_true", help="Discover and audit every collection of the site")
    ap.add_argument("--site-id", default=None, help="Site id (default: WEBFLOW_SITE_ID)")
    ap.add_argument("--smoke", action="store_true", help="Run the create/update/delete smoke test")
    ap.add_argument("--publish", action="store_true", help="Include the publish step in the smoke test")
    ap.add_argument("--page-size", type=int, default=None, help="Items per list call (default: PAGE_SIZE)")
    ap.add_argument("--out-json", default="output/cms-audit.json", help="Write machine report JSON here")
    ap.add_argument("--out-md", default="docs/status/cms-audit.md", help="Write markdown report here")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    report = asyncio.run(run(args))

    os.makedirs(os.path.dirname(args.out_json) or ".", exist_ok=True)
    with open(args.out_json, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2)

    md = generate_markdown(report)
    os.makedirs(os.path.dirname(args.out_md) or ".", exist_ok=True)
    with open(args.out_md, "w", encoding="utf-8") as f:
        f.write(md)

    print(f"Wrote {args.out_json}")
    print(f"Wrote {args.out_md}")


if __name__ == "__main__":
    main()
