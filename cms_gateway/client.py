"""
Simple Python client for the CMS gateway service.

Usage:
    from cms_gateway.client import CmsGatewayClient

    gw = CmsGatewayClient()
    report = gw.audit(run_smoke_test=True)
    print(report["totals"])
"""

import json
import os
import urllib.error
import urllib.parse
import urllib.request


class CmsGatewayClient:
    """Client for the gateway REST API."""

    def __init__(self, base_url: str | None = None, api_token: str | None = None, timeout: int = 300):
        self.base_url = (base_url or os.environ.get("CMS_GATEWAY_URL", "http://localhost:8080")).rstrip("/")
        self.api_token = api_token or os.environ.get("CMS_GATEWAY_API_TOKEN", "")
        self.timeout = timeout

    def _request(self, method: str, path: str, body: dict | None = None, query: dict | None = None) -> dict:
        url = f"{self.base_url}{path}"
        if query:
            url = url + "?" + urllib.parse.urlencode(query)
        data = json.dumps(body).encode() if body is not None else None
        headers = {"Accept": "application/json"}
        if data is not None:
            headers["Content-Type"] = "application/json"
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"

        req = urllib.request.Request(url, data=data, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            error_body = e.read().decode()
            raise RuntimeError(f"HTTP {e.code}: {error_body}") from e

    def audit(
        self,
        scan_site_wide: bool = False,
        site_id: str | None = None,
        run_smoke_test: bool = False,
        run_publish_step: bool = False,
    ) -> dict:
        """Run a content audit and return the report."""
        body = {
            "scanSiteWide": scan_site_wide,
            "runSmokeTest": run_smoke_test,
            "runPublishStep": run_publish_step,
        }
        if site_id:
            body["siteId"] = site_id
        return self._request("POST", "/audit", body)

    def collections(self, site_id: str | None = None, configured: bool = False) -> list:
        query = {"configured": "true"} if configured else {}
        if site_id:
            query["siteId"] = site_id
        return self._request("GET", "/collections", query=query)["collections"]

    def items(self, collection_id: str, all_pages: bool = True) -> list:
        query = {"all": "true"} if all_pages else {}
        return self._request("GET", f"/collections/{collection_id}/items", query=query)["items"]

    def create_item(self, collection_id: str, field_data: dict) -> dict:
        return self._request("POST", f"/collections/{collection_id}/items", {"fieldData": field_data})

    def update_item(self, collection_id: str, item_id: str, field_data: dict) -> dict:
        return self._request("PATCH", f"/collections/{collection_id}/items/{item_id}", {"fieldData": field_data})

    def health(self) -> dict:
        """Check service health."""
        return self._request("GET", "/health")


if __name__ == "__main__":
    import sys

    gw = CmsGatewayClient()
    smoke = "--smoke" in sys.argv[1:]

    try:
        report = gw.audit(run_smoke_test=smoke)
        totals = report["totals"]
        print(f"Collections: {totals['collections']} ({totals['failedCollections']} failed)")
        print(f"Items: {totals['items']}, patch suggestions: {totals['patchSuggestions']}")
        if "smokeTest" in report:
            print(f"Smoke test ok: {report['smokeTest']['ok']}")
    except RuntimeError as e:
        print(f"Error: {e}")
