import hashlib
import hmac
import json
import time
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from quickshow.core.config import Settings
from quickshow.database.models import Booking, Movie, Show
from quickshow.deps import get_seat_lock_redis
from quickshow.main import create_app
from quickshow.services import lock_service
from quickshow.services.event_publisher import EventPublisher
from quickshow.services.payment_service import CheckoutSession, PaymentGatewayError, StripeGateway

WEBHOOK_SECRET = "whsec_test_secret"
JWT_SECRET = "test-jwt-secret"


class FakeGateway(StripeGateway):
    """Real webhook verification, canned checkout sessions."""

    def __init__(self, settings):
        super().__init__(settings)
        self.sessions = []
        self.fail_with = None
        self.session_status = {}
        self.closed = []

    def create_checkout_session(self, *, booking_id, title, amount, success_url, cancel_url):
        if self.fail_with is not None:
            raise PaymentGatewayError(self.fail_with)
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.sessions.append(
            {
                "booking_id": booking_id,
                "title": title,
                "amount": amount,
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        return CheckoutSession(id=session_id, url=f"https://checkout.stripe.com/c/pay/{session_id}")

    def close_checkout_session(self, session_id):
        status = self.session_status.get(session_id, "open")
        if status == "error":
            raise PaymentGatewayError("stripe unavailable")
        if status == "complete":
            return False
        self.closed.append(session_id)
        self.session_status[session_id] = "expired"
        return True


class RecordingPublisher(EventPublisher):
    def __init__(self, settings):
        super().__init__(settings)
        self.events = []
        self.fail = False

    async def send(self, name, data, event_id=None):
        if self.fail:
            from quickshow.services.event_publisher import EventPublishError

            raise EventPublishError("event API unavailable")
        self.events.append({"name": name, "data": data, "id": event_id})
        return True


class FakeRedis:
    """In-memory stand-in that runs the seat lock scripts in Python."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def delete(self, key):
        self.ttls.pop(key, None)
        return 1 if self.store.pop(key, None) is not None else 0

    async def eval(self, script, numkeys, *args):
        keys, argv = list(args[:numkeys]), list(args[numkeys:])
        owner = argv[0]
        if script == lock_service.MULTI_LOCK_LUA:
            conflicts = [
                [i, self.store[key]]
                for i, key in enumerate(keys, start=1)
                if key in self.store and self.store[key] != owner
            ]
            if conflicts:
                return [0, json.dumps(conflicts)]
            for key in keys:
                self.store[key] = owner
                self.ttls[key] = int(argv[1])
            return [1, ""]
        if script == lock_service.RELEASE_LUA_SCRIPT:
            released = 0
            for key in keys:
                if self.store.get(key) == owner:
                    await self.delete(key)
                    released += 1
            return released
        raise NotImplementedError(script)


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a `stripe-signature` header the way Stripe does."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_completed_event(booking_id, event_id="evt_test_1") -> bytes:
    event = {
        "id": event_id,
        "object": "event",
        "type": "checkout.session.completed",
        "data": {"object": {"id": "cs_test_1", "object": "checkout.session", "metadata": {"bookingId": booking_id}}},
    }
    return json.dumps(event).encode("utf-8")


def auth_headers(user_id: str = "user_1") -> dict:
    token = jwt.encode({"sub": user_id}, JWT_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings():
    return Settings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        currency="usd",
        database_url="sqlite://",
        auth_jwt_key=JWT_SECRET,
        auth_jwt_algorithm="HS256",
        frontend_url="http://localhost:5173",
    )


@pytest.fixture
def gateway(settings):
    return FakeGateway(settings)


@pytest.fixture
def publisher(settings):
    return RecordingPublisher(settings)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def app(settings, gateway, publisher, fake_redis):
    application = create_app(settings, payment_gateway=gateway, event_publisher=publisher)
    application.dependency_overrides[get_seat_lock_redis] = lambda: fake_redis
    return application


@pytest.fixture
def client(app):
    # no context manager: lifespan (Redis connect, expiry worker) stays off
    return TestClient(app)


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def show(db):
    movie = Movie(title="Paper Moons", runtime=104, poster_path="/paper-moons.jpg")
    db.add(movie)
    db.flush()
    show = Show(movie_id=movie.id, show_datetime=datetime.utcnow() + timedelta(days=1), show_price=10.0)
    db.add(show)
    db.commit()
    return show


@pytest.fixture
def make_booking(db, show):
    def _make(seats=("A1", "A2"), user_id="user_1", is_paid=False, created_at=None, checkout_session_id=None):
        booking = Booking(
            show_id=show.id,
            user_id=user_id,
            booked_seats=list(seats),
            amount=10.0 * len(seats),
            is_paid=is_paid,
            payment_link="" if is_paid else "https://checkout.stripe.com/c/pay/cs_test_seed",
            checkout_session_id=checkout_session_id,
            created_at=created_at or datetime.utcnow(),
        )
        db.add(booking)
        db.commit()
        return booking

    return _make
