"""
Moderation gateway: external content check with local fallback.

When no endpoint is configured the local heuristic is the answer. When one is,
the listing content is POSTed to it as ``{title, description, images}`` and the
reply ``{title_status, description_status, images_status, score, details}`` is
normalized. Any failure is absorbed: callers always get a ModerationResult, and
can tell the provenance from ``details["mode"]``.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Sequence

from marketplace.core.config import Settings, settings
from marketplace.services.content_check import (
    MODE_EXTERNAL,
    MODE_FALLBACK,
    TRAFFIC_LIGHTS,
    ModerationResult,
    clamp01,
    evaluate,
)
from marketplace.services.http_client import ServiceHttpClient

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 7.0


class UpstreamError(Exception):
    """External content check failed; never leaves the gateway."""


@dataclass(frozen=True)
class GatewayConfig:
    endpoint_url: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_settings(cls, s: Settings = settings) -> "GatewayConfig":
        return cls(
            endpoint_url=(s.content_check_url or None),
            timeout_seconds=s.content_check_timeout_seconds,
        )


def _traffic_light(value: Any) -> str:
    if isinstance(value, str) and value.upper() in TRAFFIC_LIGHTS:
        return value.upper()
    return "ORANGE"


def _score(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise UpstreamError(f"invalid score: {value!r}")
    try:
        n = float(value)
    except (TypeError, ValueError):
        raise UpstreamError(f"invalid score: {value!r}") from None
    if math.isnan(n):
        raise UpstreamError("invalid score: NaN")
    return clamp01(n)


def parse_external_result(data: dict[str, Any]) -> ModerationResult:
    raw_details = data.get("details", {})
    details = dict(raw_details) if isinstance(raw_details, dict) else {"data": raw_details}
    details["mode"] = MODE_EXTERNAL

    return ModerationResult(
        title_status=_traffic_light(data.get("title_status")),
        description_status=_traffic_light(data.get("description_status")),
        images_status=_traffic_light(data.get("images_status")),
        score=_score(data.get("score")),
        details=details,
    )


class ModerationGateway:
    def __init__(self, config: GatewayConfig, *, http: ServiceHttpClient | None = None):
        self.config = config
        self._http = http
        if config.endpoint_url and self._http is None:
            self._http = ServiceHttpClient(timeout_seconds=config.timeout_seconds)

    @property
    def external(self) -> bool:
        return bool(self.config.endpoint_url)

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()

    async def _call_external(self, title: str, description: str, image_urls: list[str]) -> ModerationResult:
        assert self._http is not None and self.config.endpoint_url
        res = await self._http.post_json(
            url=self.config.endpoint_url,
            json_body={"title": title, "description": description, "images": image_urls},
        )
        if not res.ok:
            raise UpstreamError(res.error_message or "content check failed")
        if not res.json_object:
            raise UpstreamError("content check returned a non-object body")
        return parse_external_result(res.detail)

    async def run_check(
        self,
        *,
        title: str | None,
        description: str | None,
        image_urls: Sequence[str] | None,
    ) -> ModerationResult:
        t = title or ""
        d = description or ""
        urls = list(image_urls or [])

        if not self.external:
            return evaluate(t, d, urls)

        try:
            return await self._call_external(t, d, urls)
        except UpstreamError as e:
            log.warning("content check failed, using local heuristic: %s", e)
            return evaluate(t, d, urls).with_details({"mode": MODE_FALLBACK, "error": str(e)})


_gateway: ModerationGateway | None = None


def get_moderation_gateway() -> ModerationGateway:
    global _gateway
    if _gateway is None:
        _gateway = ModerationGateway(GatewayConfig.from_settings())
    return _gateway


async def close_moderation_gateway() -> None:
    global _gateway
    if _gateway is not None:
        await _gateway.aclose()
        _gateway = None
