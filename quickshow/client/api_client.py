"""Async HTTP client for the booking API, as used by the web frontend."""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[Optional[str]]]


class BookingNotFoundError(Exception):
    pass


class BookingApiClient:
    def __init__(
        self,
        base_url: str,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self._client = httpx.AsyncClient(base_url=self.base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "BookingApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _headers(self) -> Dict[str, str]:
        if self.token_provider is None:
            return {}
        token = await self.token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def get_booking(self, booking_id: str) -> Dict[str, Any]:
        response = await self._client.get(f"/api/booking/{booking_id}", headers=await self._headers())
        if response.status_code == 404:
            raise BookingNotFoundError(booking_id)
        response.raise_for_status()
        return response.json()["booking"]

    async def get_my_bookings(self) -> List[Dict[str, Any]]:
        response = await self._client.get("/api/user/bookings", headers=await self._headers())
        response.raise_for_status()
        data = response.json()
        return data.get("bookings", []) if data.get("success") else []

    def payment_url(self, booking_id: str) -> str:
        """Server route that redirects to the hosted checkout page."""
        return f"{self.base_url}/api/booking/pay/{booking_id}"
