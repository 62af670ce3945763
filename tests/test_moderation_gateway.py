import json

import httpx
import pytest

from marketplace.services.content_check import MODE_EXTERNAL, MODE_FALLBACK, MODE_LOCAL, evaluate
from marketplace.services.http_client import ServiceHttpClient
from marketplace.services.moderation_gateway import GatewayConfig, ModerationGateway

URL = "https://moderation.test/check"
TITLE = "Vintage leather jacket"
DESCRIPTION = "Genuine leather, size M, worn twice and kept in a smoke free home."
IMAGES = ["https://cdn.test/1.jpg", "https://cdn.test/2.jpg"]


def _gateway(handler) -> ModerationGateway:
    http = ServiceHttpClient(timeout_seconds=1.0, transport=httpx.MockTransport(handler))
    return ModerationGateway(GatewayConfig(endpoint_url=URL, timeout_seconds=1.0), http=http)


@pytest.mark.asyncio
async def test_no_endpoint_uses_local_heuristic():
    gw = ModerationGateway(GatewayConfig())
    result = await gw.run_check(title=TITLE, description=DESCRIPTION, image_urls=IMAGES)

    assert not gw.external
    assert result == evaluate(TITLE, DESCRIPTION, IMAGES)
    assert result.mode == MODE_LOCAL


@pytest.mark.asyncio
async def test_external_result_is_normalized():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "title_status": "green",
                "description_status": "PURPLE",
                "images_status": "RED",
                "score": 1.7,
                "details": {"model": "mod-v2"},
            },
        )

    gw = _gateway(handler)
    try:
        result = await gw.run_check(title=TITLE, description=DESCRIPTION, image_urls=IMAGES)
    finally:
        await gw.aclose()

    assert seen["body"] == {"title": TITLE, "description": DESCRIPTION, "images": IMAGES}
    assert result.title_status == "GREEN"
    assert result.description_status == "ORANGE"
    assert result.images_status == "RED"
    assert result.score == 1.0
    assert result.details == {"model": "mod-v2", "mode": MODE_EXTERNAL}


@pytest.mark.asyncio
async def test_missing_fields_default():
    gw = _gateway(lambda request: httpx.Response(200, json={}))
    try:
        result = await gw.run_check(title=TITLE, description=DESCRIPTION, image_urls=IMAGES)
    finally:
        await gw.aclose()

    assert (result.title_status, result.description_status, result.images_status) == ("ORANGE", "ORANGE", "ORANGE")
    assert result.score == 0.0
    assert result.mode == MODE_EXTERNAL


def _timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "handler",
    [
        _timeout,
        lambda request: httpx.Response(503, json={"error": "down"}),
        lambda request: httpx.Response(200, json={"score": "not-a-number"}),
        lambda request: httpx.Response(200, json={"score": True}),
        lambda request: httpx.Response(200, json=[1, 2, 3]),
        lambda request: httpx.Response(200, text="<html>oops</html>"),
    ],
    ids=["timeout", "http-503", "bad-score", "bool-score", "list-body", "html-body"],
)
async def test_failures_fall_back_to_local(handler):
    gw = _gateway(handler)
    try:
        result = await gw.run_check(title=TITLE, description=DESCRIPTION, image_urls=IMAGES)
    finally:
        await gw.aclose()

    local = evaluate(TITLE, DESCRIPTION, IMAGES)
    assert (result.title_status, result.description_status, result.images_status) == (
        local.title_status,
        local.description_status,
        local.images_status,
    )
    assert result.score == local.score
    assert result.details["mode"] == MODE_FALLBACK
    assert result.details["error"]
