#!/usr/bin/env python3
"""
CMS gateway REST service.

Provides:
- Content audit with integrity checks, patch suggestions and a write-path smoke test
- Item listing and version/shape-negotiated writes against the upstream CMS
- Safe-mode summary of the statically configured collections
- Optional bearer-token auth (API_TOKEN)
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from cms_gateway import config
from cms_gateway.audit import AuditOptions
from cms_gateway.config import GatewayConfig, load_config
from cms_gateway.errors import GatewayError, error_envelope, ok
from cms_gateway.gateway import CmsGateway

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic models for REST API
# ---------------------------------------------------------------------------
class AuditRequest(BaseModel):
    scanSiteWide: bool = Field(False, description="Discover every collection of the site")
    siteId: Optional[str] = Field(None, description="Site to scan (defaults to WEBFLOW_SITE_ID)")
    runSmokeTest: bool = Field(False, description="Run the create/update/delete rehearsal")
    runPublishStep: bool = Field(False, description="Include a publish step in the smoke test")
    pageSize: Optional[int] = Field(None, ge=1, le=100)


class WriteItemRequest(BaseModel):
    fieldData: dict[str, Any] = Field(..., description="Item field values")
    isDraft: Optional[bool] = Field(None, description="Top-level draft flag, used when fieldData has no _draft")
    isArchived: Optional[bool] = Field(None, description="Top-level archived flag, used when fieldData has no _archived")

    def flags(self) -> dict[str, bool]:
        return {k: v for k, v in (("isDraft", self.isDraft), ("isArchived", self.isArchived)) if v is not None}


class PublishRequest(BaseModel):
    itemIds: list[str] = Field(default_factory=list)
    siteId: Optional[str] = None


# ---------------------------------------------------------------------------
# Auth gate
# ---------------------------------------------------------------------------
def _auth_dependency(cfg: GatewayConfig):
    async def require_token(authorization: Optional[str] = Header(None)) -> None:
        if not cfg.gateway_token:
            return
        if authorization != f"Bearer {cfg.gateway_token}":
            raise GatewayError("Unauthorized", status=401)

    return require_token


def _gateway(request: Request) -> CmsGateway:
    return request.app.state.gateway


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------
def create_app(cfg: Optional[GatewayConfig] = None, gateway: Optional[CmsGateway] = None) -> FastAPI:
    cfg = cfg or (gateway.config if gateway else load_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if gateway is not None:
            yield
            return
        app.state.gateway = CmsGateway(cfg)
        try:
            yield
        finally:
            await app.state.gateway.aclose()

    app = FastAPI(title=cfg.service_name, lifespan=lifespan)
    if gateway is not None:
        app.state.gateway = gateway
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        logger.error(
            "[%s] Error %s on %s %s: %s",
            cfg.service_name, exc.status, request.method, request.url.path, exc.message,
        )
        return JSONResponse(status_code=exc.status, content=error_envelope(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = "Not Found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "message": message, "details": {"path": request.url.path}},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"status": "error", "message": "Invalid request", "details": {"errors": jsonable_encoder(exc.errors())}},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("[%s] Unhandled error on %s %s", cfg.service_name, request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": "Internal Server Error", "details": None},
        )

    @app.get("/health")
    async def health():
        return ok(service=cfg.service_name)

    auth = [Depends(_auth_dependency(cfg))]

    @app.post("/audit", dependencies=auth)
    async def api_audit(req: AuditRequest, gw: CmsGateway = Depends(_gateway)):
        """Inventory collections, report defects, and optionally smoke-test writes."""
        options = AuditOptions(
            scan_site_wide=req.scanSiteWide,
            site_id=req.siteId,
            run_smoke_test=req.runSmokeTest,
            run_publish_step=req.runPublishStep,
            page_size=req.pageSize,
        )
        return await gw.run_audit(options)

    @app.get("/collections", dependencies=auth)
    async def api_collections(
        siteId: Optional[str] = None,
        configured: bool = False,
        gw: CmsGateway = Depends(_gateway),
    ):
        collections = await gw.resolve_collections(site_id=siteId, configured=configured)
        return ok(collections=[c.to_dict() for c in collections])

    @app.get("/collections/summary", dependencies=auth)
    async def api_summary(gw: CmsGateway = Depends(_gateway)):
        """Safe mode: read-only summary of the configured collections."""
        return ok(collections=await gw.summarize())

    @app.get("/collections/{collection_id}/items", dependencies=auth)
    async def api_list_items(
        collection_id: str,
        all: bool = False,
        offset: int = Query(0, ge=0),
        limit: Optional[int] = Query(None, ge=1, le=100),
        gw: CmsGateway = Depends(_gateway),
    ):
        items = await gw.list_items(collection_id, offset=offset, limit=limit, all_pages=all)
        return ok(items=items, count=len(items))

    @app.post("/collections/{collection_id}/items", status_code=201, dependencies=auth)
    async def api_create_item(collection_id: str, req: WriteItemRequest, gw: CmsGateway = Depends(_gateway)):
        result = await gw.write_item(collection_id, "POST", req.fieldData, flags=req.flags())
        return ok(created=result.annotated(), usedAlternateShape=result.used_alternate_shape)

    @app.post("/collections/{collection_id}/items/publish", dependencies=auth)
    async def api_publish(collection_id: str, req: PublishRequest, gw: CmsGateway = Depends(_gateway)):
        data = await gw.publish_items(collection_id, req.itemIds, site_id=req.siteId)
        return ok(published=data)

    @app.patch("/collections/{collection_id}/items/{item_id}", dependencies=auth)
    async def api_update_item(
        collection_id: str, item_id: str, req: WriteItemRequest, gw: CmsGateway = Depends(_gateway)
    ):
        result = await gw.write_item(collection_id, "PATCH", req.fieldData, item_id=item_id, flags=req.flags())
        return ok(updated=result.annotated(), usedAlternateShape=result.used_alternate_shape)

    @app.delete("/collections/{collection_id}/items/{item_id}", dependencies=auth)
    async def api_delete_item(collection_id: str, item_id: str, gw: CmsGateway = Depends(_gateway)):
        return ok(deleted=await gw.delete_item(collection_id, item_id))

    @app.get("/auth/user", dependencies=auth)
    async def api_auth_user(gw: CmsGateway = Depends(_gateway)):
        return ok(user=await gw.get("/token/authorized_by"))

    @app.get("/sites", dependencies=auth)
    async def api_sites(gw: CmsGateway = Depends(_gateway)):
        return ok(sites=await gw.get("/sites"))

    @app.get("/sites/{site_id}", dependencies=auth)
    async def api_site(site_id: str, gw: CmsGateway = Depends(_gateway)):
        return ok(site=await gw.get(f"/sites/{site_id}"))

    return app


# ---------------------------------------------------------------------------
# Build and run
# ---------------------------------------------------------------------------
def main():
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()

    print(f"Starting {config.SERVICE_NAME} on http://{config.HOST}:{config.PORT}")
    print(f"  API docs:  http://localhost:{config.PORT}/docs")
    print(f"  Audit:     http://localhost:{config.PORT}/audit")
    print(f"  Upstream:  {config.WEBFLOW_API_BASE} (v{config.WEBFLOW_API_VERSION}, legacy v{config.WEBFLOW_LEGACY_API_VERSION})")

    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
