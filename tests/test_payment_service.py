import time
from types import SimpleNamespace

import pytest
import stripe

from quickshow.services.payment_service import PaymentGatewayError, StripeGateway, to_minor_units


@pytest.fixture
def stripe_gateway(settings):
    return StripeGateway(settings)


def test_to_minor_units_rounds_half_up():
    assert to_minor_units(10) == 1000
    assert to_minor_units(10.005) == 1001
    assert to_minor_units(0.1 + 0.2) == 30


def test_checkout_session_carries_booking_metadata(monkeypatch, stripe_gateway):
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id="cs_live_1", url="https://checkout.stripe.com/c/pay/cs_live_1")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    before = int(time.time())

    session = stripe_gateway.create_checkout_session(
        booking_id="b1",
        title="Paper Moons",
        amount=25.5,
        success_url="http://localhost:5173/loading/my-bookings?bookingId=b1",
        cancel_url="http://localhost:5173/my-bookings",
    )

    assert session.id == "cs_live_1"
    assert session.url == "https://checkout.stripe.com/c/pay/cs_live_1"
    kwargs = calls[0]
    assert kwargs["api_key"] == "sk_test_123"
    assert kwargs["mode"] == "payment"
    assert kwargs["metadata"] == {"bookingId": "b1"}
    assert kwargs["line_items"] == [
        {
            "price_data": {"currency": "usd", "product_data": {"name": "Paper Moons"}, "unit_amount": 2550},
            "quantity": 1,
        }
    ]
    assert before + 30 * 60 <= kwargs["expires_at"] <= int(time.time()) + 30 * 60


def test_checkout_failure_becomes_gateway_error(monkeypatch, stripe_gateway):
    def fake_create(**kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    with pytest.raises(PaymentGatewayError):
        stripe_gateway.create_checkout_session(
            booking_id="b1", title="t", amount=1.0, success_url="http://s", cancel_url="http://c"
        )


@pytest.mark.parametrize(
    "status, expected, expired",
    [("open", True, ["cs_1"]), ("expired", True, []), ("complete", False, [])],
)
def test_close_checkout_session(monkeypatch, stripe_gateway, status, expected, expired):
    expire_calls = []

    def fake_expire(session_id, api_key=None):
        expire_calls.append(session_id)
        return SimpleNamespace(id=session_id, status="expired")

    def fake_retrieve(session_id, api_key=None):
        return SimpleNamespace(id=session_id, status=status)

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", fake_retrieve)
    monkeypatch.setattr(stripe.checkout.Session, "expire", fake_expire)

    assert stripe_gateway.close_checkout_session("cs_1") is expected
    assert expire_calls == expired


def test_close_checkout_session_error(monkeypatch, stripe_gateway):
    def fake_retrieve(session_id, api_key=None):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", fake_retrieve)

    with pytest.raises(PaymentGatewayError):
        stripe_gateway.close_checkout_session("cs_1")
