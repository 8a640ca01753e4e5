import json

import httpx
import pytest

from exchanges.errors import DeliveryError
from services.notifications.webhook import WebhookSink, split_content

WEBHOOK_URL = "https://discord.test/api/webhooks/1/token"


def _sink(handler, **kwargs) -> WebhookSink:
    return WebhookSink(WEBHOOK_URL, transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_send_posts_json_content():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    sink = _sink(handler)
    await sink.send("Long SOL 10")
    await sink.aclose()

    assert len(requests) == 1
    assert str(requests[0].url) == WEBHOOK_URL
    assert requests[0].headers["content-type"] == "application/json"
    assert json.loads(requests[0].content) == {"content": "Long SOL 10"}


@pytest.mark.asyncio
async def test_non_success_status_raises_delivery_error():
    sink = _sink(lambda request: httpx.Response(429, json={"retry_after": 1}))
    with pytest.raises(DeliveryError) as excinfo:
        await sink.send("Short ETH 2")
    assert excinfo.value.status_code == 429
    await sink.aclose()


@pytest.mark.asyncio
async def test_transport_error_raises_delivery_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    sink = _sink(handler)
    with pytest.raises(DeliveryError) as excinfo:
        await sink.send("Short ETH 2")
    assert excinfo.value.status_code is None
    await sink.aclose()


@pytest.mark.asyncio
async def test_long_content_is_split_across_posts():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content)["content"])
        return httpx.Response(200)

    sink = _sink(handler, max_content_length=25)
    await sink.send("Long BTC 1\nShort ETH 2\nLong SOL 10")
    await sink.aclose()

    assert bodies == ["Long BTC 1\nShort ETH 2", "Long SOL 10"]


def test_split_content_truncates_oversized_lines():
    assert split_content("abcdef", 10) == ["abcdef"]
    assert split_content("abcdefghij\nxy", 4) == ["abcd", "xy"]


def test_empty_url_is_rejected():
    with pytest.raises(ValueError):
        WebhookSink("")
