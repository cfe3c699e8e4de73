import logging
from typing import Any, Dict, Optional

import httpx

from quickshow.core.config import Settings

logger = logging.getLogger(__name__)

SHOW_BOOKED = "app/show.booked"


class EventPublishError(Exception):
    """The event API rejected or could not receive an event."""


class EventPublisher:
    """Sends events to the Inngest Event API."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 5.0):
        self.event_key = settings.inngest_event_key
        self.base_url = settings.inngest_base_url
        self.transport = transport
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.event_key)

    async def send(self, name: str, data: Dict[str, Any], event_id: Optional[str] = None) -> bool:
        """
        Emit one event. Returns False when no event key is configured.

        `event_id` lets Inngest drop duplicates, so a redelivered webhook
        does not trigger downstream work twice.
        """
        if not self.enabled:
            logger.warning("Inngest event key not set; skipping event %s %s", name, data)
            return False

        payload: Dict[str, Any] = {"name": name, "data": data}
        if event_id:
            payload["id"] = event_id

        url = f"{self.base_url}/e/{self.event_key}"
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to send event %s: %s", name, exc)
            raise EventPublishError(f"Failed to send event {name}: {exc}") from exc

        logger.info("Event %s sent: %s", name, data)
        return True
