"""
Background worker that releases bookings left unpaid past the hold window
"""
import asyncio
import logging
from typing import Optional

from sqlalchemy.orm import sessionmaker

from quickshow.services.booking_service import release_expired_bookings
from quickshow.services.payment_service import StripeGateway

logger = logging.getLogger(__name__)


class ExpiryWorker:
    """Periodically releases stale unpaid bookings so their seats can be sold again"""

    def __init__(
        self,
        session_factory: sessionmaker,
        gateway: Optional[StripeGateway],
        hold_minutes: int,
        interval_seconds: float,
    ):
        self.session_factory = session_factory
        self.gateway = gateway
        self.hold_minutes = hold_minutes
        self.interval_seconds = interval_seconds
        self.running = False
        self.task: Optional[asyncio.Task] = None

    async def start(self):
        if self.running:
            logger.warning("⚠️ Expiry worker already running")
            return

        self.running = True
        self.task = asyncio.create_task(self._run())
        logger.info("✅ Expiry worker started (interval: %ss, hold: %s min)", self.interval_seconds, self.hold_minutes)

    async def stop(self):
        if not self.running:
            return

        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
        logger.info("🛑 Expiry worker stopped")

    def run_once(self) -> int:
        db = self.session_factory()
        try:
            return release_expired_bookings(db, self.hold_minutes, gateway=self.gateway)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def _run(self):
        while self.running:
            try:
                await asyncio.to_thread(self.run_once)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("❌ Error releasing expired bookings: %s", e)
            await asyncio.sleep(self.interval_seconds)
