"""
Client-side payment confirmation.

After the hosted checkout redirects back, the webhook may not have landed
yet, so the client polls the booking status endpoint until it sees the paid
flag or gives up.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional

from quickshow.client.api_client import BookingApiClient
from quickshow.client.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

VERIFYING = "Verifying payment..."
CONFIRMED = "Payment confirmed! Refreshing bookings..."
NOT_CONFIRMED = "Could not confirm payment yet. Please refresh later."


class PollResult(NamedTuple):
    confirmed: bool
    attempts: int
    message: str
    booking: Optional[Dict[str, Any]]


class BookingStatusPoller:
    def __init__(
        self,
        api: BookingApiClient,
        policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
        on_message: Optional[Callable[[str], None]] = None,
    ):
        self.api = api
        self.policy = policy or RetryPolicy()
        self.sleep = sleep
        self.on_message = on_message

    def _notify(self, message: str) -> None:
        if self.on_message is not None:
            self.on_message(message)

    async def poll(self, booking_id: str) -> PollResult:
        """
        Query the booking until the policy's success predicate holds.

        A failed attempt (network error, 404, bad payload) is logged and
        counted, never raised. There is no wait after the final attempt.
        """
        self._notify(VERIFYING)
        logger.info("🔁 Starting polling for booking ID: %s", booking_id)

        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                booking = await self.api.get_booking(booking_id)
                logger.debug("⏳ Poll attempt %d: %s", attempt, booking)
                if self.policy.success(booking):
                    logger.info("✅ Booking %s marked as paid on server", booking_id)
                    self._notify(CONFIRMED)
                    return PollResult(True, attempt, CONFIRMED, booking)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("❌ Polling error (attempt %d): %s", attempt, e)

            if attempt < self.policy.max_attempts:
                await self.sleep(self.policy.interval)

        self._notify(NOT_CONFIRMED)
        return PollResult(False, self.policy.max_attempts, NOT_CONFIRMED, None)


class MyBookingsView:
    """
    State behind the "My Bookings" page: the user's bookings, the payment
    polling banner, and a delayed refresh in case the webhook is slow.
    """

    def __init__(
        self,
        api: BookingApiClient,
        policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
        refresh_delay: float = 5.0,
    ):
        self.api = api
        self.sleep = sleep
        self.refresh_delay = refresh_delay
        self.poller = BookingStatusPoller(api, policy, sleep=sleep, on_message=self._set_message)

        self.bookings: List[Dict[str, Any]] = []
        self.is_loading = True
        self.is_polling = False
        self.polling_message = ""

        self._poll_task: Optional[asyncio.Task] = None
        self._refresh_task: Optional[asyncio.Task] = None

    def _set_message(self, message: str) -> None:
        self.polling_message = message

    async def load_bookings(self) -> None:
        try:
            self.bookings = await self.api.get_my_bookings()
        except Exception as e:
            logger.warning("Error fetching bookings: %s", e)
        finally:
            self.is_loading = False

    async def open(self, booking_id: Optional[str] = None) -> None:
        """Load bookings, start polling `booking_id` if given, and schedule one refresh."""
        await self.load_bookings()
        if booking_id:
            self._poll_task = asyncio.create_task(self.poll_booking_status(booking_id))
        self._refresh_task = asyncio.create_task(self._refresh_later())

    async def poll_booking_status(self, booking_id: str) -> PollResult:
        self.is_polling = True
        try:
            result = await self.poller.poll(booking_id)
            if result.confirmed:
                self._mark_paid(booking_id)
            return result
        finally:
            self.is_polling = False

    async def close(self) -> None:
        """Cancel the pending refresh and any poll still in flight."""
        for task in (self._refresh_task, self._poll_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._refresh_task = None
        self._poll_task = None

    async def wait_for_poll(self) -> Optional[PollResult]:
        if self._poll_task is None:
            return None
        return await self._poll_task

    def pay_now_url(self, booking: Dict[str, Any]) -> Optional[str]:
        """Server redirect to the booking's checkout page, or None once there is nothing to pay."""
        if booking.get("is_paid") or not booking.get("payment_link"):
            return None
        return self.api.payment_url(booking["id"])

    def _mark_paid(self, booking_id: str) -> None:
        for booking in self.bookings:
            if booking.get("id") == booking_id:
                booking["is_paid"] = True
                booking["payment_link"] = ""

    async def _refresh_later(self) -> None:
        await self.sleep(self.refresh_delay)
        await self.load_bookings()
