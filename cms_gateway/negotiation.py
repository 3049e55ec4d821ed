"""
Version and payload-shape negotiation with the upstream CMS.

The CMS has two incompatible API generations and two incompatible item body
shapes. Failures are first classified into a closed set of kinds; a small
policy table then decides, per negotiation stage, whether the one permitted
retry applies. Nothing here retries more than once.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from cms_gateway.errors import GatewayError, UpstreamError
from cms_gateway.models import VersionFallbackOutcome
from cms_gateway.upstream import UpstreamClient

logger = logging.getLogger(__name__)

PRIMARY_CONTAINER = "fieldData"
ALTERNATE_CONTAINER = "fields"

UNSUPPORTED_VERSION_NAME = "UnsupportedVersion"
FIELDS_REQUIRED_RE = re.compile(r"'?fields'?\s+(is\s+)?required", re.IGNORECASE)

# (nested flag in the field-data map, alternate top-level name)
LIFECYCLE_FLAGS = (("_draft", "isDraft"), ("_archived", "isArchived"))


class ErrorKind(Enum):
    VERSION_MISMATCH = "version_mismatch"
    SHAPE_MISMATCH = "shape_mismatch"
    OTHER = "other"


# error kind -> the negotiation stage that may retry it once
RETRY_POLICY: dict[ErrorKind, str] = {
    ErrorKind.VERSION_MISMATCH: "version",
    ErrorKind.SHAPE_MISMATCH: "shape",
}


def legacy_range_re(legacy_version: str) -> re.Pattern:
    """Message saying the only valid range includes the legacy version."""
    return re.compile(rf"\bvalid\b.*{re.escape(legacy_version)}", re.IGNORECASE)


def classify_error(exc: BaseException, legacy_version: str = "1.0.0") -> ErrorKind:
    """Map an upstream failure onto the fallback-relevant kinds."""
    if not isinstance(exc, UpstreamError) or exc.status != 400:
        return ErrorKind.OTHER
    message = exc.message or ""
    if exc.name == UNSUPPORTED_VERSION_NAME or legacy_range_re(legacy_version).search(message):
        return ErrorKind.VERSION_MISMATCH
    if FIELDS_REQUIRED_RE.search(message):
        return ErrorKind.SHAPE_MISMATCH
    return ErrorKind.OTHER


def should_retry(stage: str, exc: BaseException, legacy_version: str = "1.0.0") -> bool:
    return RETRY_POLICY.get(classify_error(exc, legacy_version)) == stage


class VersionDispatcher:
    """Calls the primary API generation and falls back once to the legacy one."""

    def __init__(self, upstream: UpstreamClient):
        self.upstream = upstream
        self.primary_version = upstream.config.api_version
        self.legacy_version = upstream.config.legacy_api_version

    async def dispatch(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        body: Any = None,
    ) -> tuple[Any, str]:
        """Return the response body and the version tag that produced it."""
        try:
            data = await self.upstream.request(method, path, self.primary_version, params=params, body=body)
            return data, self.primary_version
        except GatewayError as e:
            if not should_retry("version", e, self.legacy_version):
                raise
            logger.info(
                "%s %s rejected version %s, retrying with %s",
                method, path, self.primary_version, self.legacy_version,
            )
        data = await self.upstream.request(method, path, self.legacy_version, params=params, body=body)
        return data, self.legacy_version

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        data, _ = await self.dispatch(method, path, params=params, body=body)
        return data


def normalize_flags(field_data: dict[str, Any], original: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Return a copy of ``field_data`` that always carries both lifecycle flags.

    An explicit ``_draft``/``_archived`` wins; otherwise a boolean
    ``isDraft``/``isArchived`` on the original input is used (the top-level
    request body when given, else the map itself); otherwise ``False``.
    """
    normalized = dict(field_data)
    for nested, alternate in LIFECYCLE_FLAGS:
        alt_value = normalized.pop(alternate, None)
        if original is not None and isinstance(original.get(alternate), bool):
            alt_value = original[alternate]
        if isinstance(normalized.get(nested), bool):
            continue
        normalized[nested] = alt_value if isinstance(alt_value, bool) else False
    return normalized


@dataclass
class WriteResult:
    data: Any
    used_alternate_shape: bool
    outcome: VersionFallbackOutcome

    def annotated(self) -> Any:
        """Response body with the negotiation outcome attached for diagnosis."""
        if isinstance(self.data, dict):
            return {**self.data, "_gateway": self.outcome.to_dict()}
        return {"result": self.data, "_gateway": self.outcome.to_dict()}


class PayloadShapeWriter:
    """Sends create/update bodies, retrying once with the alternate container key."""

    def __init__(self, dispatcher: VersionDispatcher):
        self.dispatcher = dispatcher

    @staticmethod
    def build_body(container: str, fields: dict[str, Any]) -> dict[str, Any]:
        return {
            container: fields,
            "isDraft": fields["_draft"],
            "isArchived": fields["_archived"],
        }

    async def write(
        self,
        path: str,
        method: str,
        field_data: dict[str, Any],
        original: Optional[dict[str, Any]] = None,
    ) -> WriteResult:
        fields = normalize_flags(field_data, original)
        container = PRIMARY_CONTAINER
        try:
            data, version = await self.dispatcher.dispatch(method, path, body=self.build_body(container, fields))
        except GatewayError as e:
            if not should_retry("shape", e, self.dispatcher.legacy_version):
                raise
            logger.info("%s %s requires '%s', retrying with alternate shape", method, path, ALTERNATE_CONTAINER)
            container = ALTERNATE_CONTAINER
            data, version = await self.dispatcher.dispatch(method, path, body=self.build_body(container, fields))

        used_alternate = container == ALTERNATE_CONTAINER
        outcome = VersionFallbackOutcome(
            api_version=version,
            payload_shape=container,
            used_legacy_version=version != self.dispatcher.primary_version,
            used_alternate_shape=used_alternate,
        )
        return WriteResult(data=data, used_alternate_shape=used_alternate, outcome=outcome)
