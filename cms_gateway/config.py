"""Configuration for the CMS gateway service."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# --- Upstream CMS ---

WEBFLOW_API_TOKEN = os.environ.get("WEBFLOW_API_TOKEN", "")
WEBFLOW_API_BASE = os.environ.get("WEBFLOW_API_BASE", "https://api.webflow.com")

# Primary and legacy protocol generations (sent as the accept-version header)
WEBFLOW_API_VERSION = os.environ.get("WEBFLOW_API_VERSION", "2.0.0")
WEBFLOW_LEGACY_API_VERSION = os.environ.get("WEBFLOW_LEGACY_API_VERSION", "1.0.0")

# Per-request timeout against the upstream (seconds)
UPSTREAM_TIMEOUT_S = float(os.environ.get("UPSTREAM_TIMEOUT_S", "30"))

# --- Default ids ---
WEBFLOW_SITE_ID = os.environ.get("WEBFLOW_SITE_ID", "")
RESOURCES_COLLECTION_ID = os.environ.get("RESOURCES_COLLECTION_ID", "")
ARTICLES_COLLECTION_ID = os.environ.get("ARTICLES_COLLECTION_ID", "")

# --- Listing ---
PAGE_SIZE = int(os.environ.get("PAGE_SIZE", "100"))

# Hard stop for the pagination loop against a misbehaving upstream
MAX_LIST_PAGES = int(os.environ.get("MAX_LIST_PAGES", "1000"))

# --- Server ---
SERVICE_NAME = os.environ.get("SERVICE_NAME", "cms-gateway")
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8080"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# --- Security ---
# Optional bearer token for API auth
API_TOKEN = os.environ.get("API_TOKEN", "")


@dataclass(frozen=True)
class GatewayConfig:
    api_token: str = ""
    api_base: str = "https://api.webflow.com"
    api_version: str = "2.0.0"
    legacy_api_version: str = "1.0.0"
    timeout_s: float = 30.0
    site_id: Optional[str] = None
    resources_collection_id: Optional[str] = None
    articles_collection_id: Optional[str] = None
    page_size: int = 100
    max_list_pages: int = 1000
    service_name: str = "cms-gateway"
    gateway_token: str = ""

    def configured_collection_ids(self) -> list[str]:
        """Statically configured collections, in smoke-test preference order."""
        ids = [self.resources_collection_id, self.articles_collection_id]
        return [cid for cid in ids if cid]


def load_config() -> GatewayConfig:
    """Freeze the module-level settings into an immutable config value."""
    return GatewayConfig(
        api_token=WEBFLOW_API_TOKEN,
        api_base=WEBFLOW_API_BASE,
        api_version=WEBFLOW_API_VERSION,
        legacy_api_version=WEBFLOW_LEGACY_API_VERSION,
        timeout_s=UPSTREAM_TIMEOUT_S,
        site_id=WEBFLOW_SITE_ID or None,
        resources_collection_id=RESOURCES_COLLECTION_ID or None,
        articles_collection_id=ARTICLES_COLLECTION_ID or None,
        page_size=PAGE_SIZE,
        max_list_pages=MAX_LIST_PAGES,
        service_name=SERVICE_NAME,
        gateway_token=API_TOKEN,
    )
