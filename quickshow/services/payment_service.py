"""Stripe helpers for checkout sessions and webhook verification."""
import json
import logging
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, NamedTuple

import stripe

from quickshow.core.config import Settings

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


class PaymentGatewayError(Exception):
    """Stripe refused or failed to create a checkout session."""


class WebhookVerificationError(Exception):
    """An inbound webhook could not be authenticated or parsed."""


class CheckoutSession(NamedTuple):
    id: str
    url: str


def to_minor_units(amount: float) -> int:
    """Convert a major-unit amount to integer cents, rounding half up."""
    cents = (Decimal(str(amount)) * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


class StripeGateway:
    def __init__(self, settings: Settings):
        self.api_key = settings.stripe_secret_key
        self.webhook_secret = settings.stripe_webhook_secret
        self.tolerance = settings.stripe_webhook_tolerance
        self.currency = settings.currency
        self.checkout_expiry_minutes = settings.checkout_expiry_minutes

    def create_checkout_session(
        self,
        *,
        booking_id: str,
        title: str,
        amount: float,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """Create a hosted checkout session whose metadata points back at the booking."""
        expires_at = int(time.time()) + self.checkout_expiry_minutes * 60
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": self.currency,
                            "product_data": {"name": title},
                            "unit_amount": to_minor_units(amount),
                        },
                        "quantity": 1,
                    }
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={"bookingId": booking_id},
                expires_at=expires_at,
            )
        except stripe.StripeError as exc:
            logger.warning("Stripe checkout session creation failed for booking %s: %s", booking_id, exc)
            raise PaymentGatewayError(getattr(exc, "user_message", None) or str(exc)) from exc

        logger.info("Checkout session %s created for booking %s", session.id, booking_id)
        return CheckoutSession(id=session.id, url=session.url)

    def close_checkout_session(self, session_id: str) -> bool:
        """
        Make sure a checkout session can no longer take payment.

        Returns True once the session is expired (expiring it if still open)
        and False when it already completed, in which case the booking has
        been paid for and must not be released.
        """
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
            if session.status == "complete":
                return False
            if session.status == "open":
                session = stripe.checkout.Session.expire(session_id, api_key=self.api_key)
                logger.info("Checkout session %s expired", session_id)
        except stripe.StripeError as exc:
            raise PaymentGatewayError(getattr(exc, "user_message", None) or str(exc)) from exc
        return session.status == "expired"

    def verify_webhook(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Authenticate a webhook body against the `stripe-signature` header and
        return the decoded event.

        The raw bytes are verified exactly as received; parsing happens only
        after the signature checks out.
        """
        if not signature:
            raise WebhookVerificationError("Missing stripe-signature header")
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WebhookVerificationError("Payload is not valid UTF-8") from exc

        try:
            stripe.WebhookSignature.verify_header(text, signature, self.webhook_secret, self.tolerance)
        except stripe.SignatureVerificationError as exc:
            raise WebhookVerificationError(str(exc)) from exc

        try:
            event = json.loads(text)
        except ValueError as exc:
            raise WebhookVerificationError(f"Invalid payload: {exc}") from exc
        if not isinstance(event, dict) or "type" not in event:
            raise WebhookVerificationError("Invalid payload: missing event type")
        return event


def booking_id_from_event(event: Dict[str, Any]) -> Any:
    """Pull `metadata.bookingId` out of a checkout session event, or None."""
    session = (event.get("data") or {}).get("object") or {}
    metadata = session.get("metadata") or {}
    return metadata.get("bookingId")
