import json

import httpx
import pytest

from quickshow.core.config import Settings
from quickshow.services.event_publisher import EventPublisher, EventPublishError


def make_settings(event_key="evt-key"):
    return Settings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_123",
        currency="usd",
        inngest_event_key=event_key,
        inngest_base_url="https://inn.example/",
    )


@pytest.mark.asyncio
async def test_send_posts_event_with_id():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ids": ["01H"], "status": 200})

    publisher = EventPublisher(make_settings(), transport=httpx.MockTransport(handler))

    sent = await publisher.send("app/show.booked", {"bookingId": "b1"}, event_id="show-booked-b1")

    assert sent is True
    assert str(requests[0].url) == "https://inn.example/e/evt-key"
    assert json.loads(requests[0].content) == {
        "name": "app/show.booked",
        "data": {"bookingId": "b1"},
        "id": "show-booked-b1",
    }


@pytest.mark.asyncio
async def test_send_without_event_key_is_skipped():
    def handler(request):
        raise AssertionError("no request expected")

    publisher = EventPublisher(make_settings(event_key=None), transport=httpx.MockTransport(handler))

    assert await publisher.send("app/show.booked", {"bookingId": "b1"}) is False


@pytest.mark.asyncio
async def test_send_raises_on_rejection():
    publisher = EventPublisher(make_settings(), transport=httpx.MockTransport(lambda request: httpx.Response(401)))

    with pytest.raises(EventPublishError):
        await publisher.send("app/show.booked", {"bookingId": "b1"})
