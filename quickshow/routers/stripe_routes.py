# quickshow/routers/stripe_routes.py
"""
Stripe webhook receiver.

The handler reads the raw request body itself: the signature covers the
exact bytes Stripe sent, so nothing may parse or re-encode them first.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from quickshow.database.database import get_db
from quickshow.deps import get_event_publisher, get_payment_gateway
from quickshow.services import booking_service
from quickshow.services.event_publisher import SHOW_BOOKED, EventPublisher
from quickshow.services.payment_service import (
    CHECKOUT_COMPLETED,
    StripeGateway,
    WebhookVerificationError,
    booking_id_from_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Stripe"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    payload = await request.body()

    try:
        event = gateway.verify_webhook(payload, stripe_signature or "")
    except WebhookVerificationError as e:
        logger.warning("❌ Stripe webhook signature verification failed: %s", e)
        return PlainTextResponse(f"Webhook Error: {e}", status_code=status.HTTP_400_BAD_REQUEST)

    try:
        event_type = event.get("type")
        if event_type == CHECKOUT_COMPLETED:
            booking_id = booking_id_from_event(event)
            logger.info("✅ Payment completed for booking: %s", booking_id)

            booking, transitioned = (None, False)
            if booking_id:
                booking, transitioned = booking_service.mark_booking_paid(db, str(booking_id))
            if booking is None:
                logger.error("⚠️ Booking not found: %s", booking_id)
                return PlainTextResponse("Booking not found", status_code=status.HTTP_404_NOT_FOUND)
            if not transitioned:
                logger.info("Booking %s already paid (event %s redelivered)", booking.id, event.get("id"))

            # Trigger downstream actions; the fixed event id lets Inngest drop duplicates
            await publisher.send(SHOW_BOOKED, {"bookingId": booking.id}, event_id=f"show-booked-{booking.id}")
        else:
            logger.info("ℹ️ Unhandled event type: %s", event_type)

        return {"received": True}
    except Exception as e:
        logger.exception("❌ Error handling Stripe webhook: %s", e)
        try:
            db.rollback()
        except Exception:
            logger.exception("Failed to rollback DB session after webhook error")
        return PlainTextResponse("Internal Server Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
