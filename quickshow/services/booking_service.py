"""
Booking creation, seat occupancy and payment-state transitions.

All functions take an open SQLAlchemy session; callers own its lifetime.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_, update
from sqlalchemy.orm import Session, joinedload

from quickshow.core.config import Settings
from quickshow.database.models import Booking, Show
from quickshow.database.schemas import BookingDetailResponse
from quickshow.services.lock_service import acquire_seat_locks, release_seat_locks
from quickshow.services.payment_service import PaymentGatewayError, StripeGateway

logger = logging.getLogger(__name__)


class ShowNotFoundError(Exception):
    pass


class InvalidSeatsError(ValueError):
    pass


class SeatsUnavailableError(Exception):
    def __init__(self, seats: List[str]):
        self.seats = seats
        super().__init__(f"Seats not available: {', '.join(seats)}")


def normalize_seats(seats: List[Any]) -> List[str]:
    """Strip seat ids and reject empty or repeated ones, keeping request order and case."""
    normalized: List[str] = []
    for raw in seats or []:
        seat = str(raw).strip()
        if not seat:
            raise InvalidSeatsError("Seat identifiers must not be empty")
        if seat in normalized:
            raise InvalidSeatsError(f"Seat {seat} selected more than once")
        normalized.append(seat)
    if not normalized:
        raise InvalidSeatsError("No seats selected")
    return normalized


def get_show(db: Session, show_id: str) -> Show:
    show = db.query(Show).options(joinedload(Show.movie)).filter(Show.id == show_id).first()
    if show is None:
        raise ShowNotFoundError(show_id)
    return show


def get_occupied_seats(db: Session, show_id: str) -> List[str]:
    """Seats held by any live booking of the show (paid, or unpaid and not released)."""
    get_show(db, show_id)
    occupied = set()
    live = or_(Booking.is_paid.is_(True), Booking.released_at.is_(None))
    for (seats,) in db.query(Booking.booked_seats).filter(Booking.show_id == show_id, live):
        occupied.update(seats or [])
    return sorted(occupied)


def create_booking(db: Session, show: Show, user_id: str, seats: List[str]) -> Booking:
    """Insert an unpaid booking after checking the seats are free. Flushes, does not commit."""
    taken = set(get_occupied_seats(db, show.id))
    clashes = [seat for seat in seats if seat in taken]
    if clashes:
        raise SeatsUnavailableError(clashes)

    booking = Booking(
        show_id=show.id,
        user_id=user_id,
        booked_seats=list(seats),
        amount=round(float(show.show_price) * len(seats), 2),
        is_paid=False,
        payment_link="",
    )
    db.add(booking)
    db.flush()
    return booking


async def start_checkout(
    db: Session,
    *,
    settings: Settings,
    gateway: StripeGateway,
    redis,
    show_id: str,
    user_id: str,
    seats: List[Any],
    origin: Optional[str] = None,
) -> Booking:
    """
    Reserve seats for `user_id` and open a Stripe checkout session for them.

    Seat locks in Redis serialize concurrent checkouts of the same seats
    between the occupancy check and the commit. The booking is only committed
    once Stripe has returned a payment link.
    """
    selected = normalize_seats(seats)
    show = get_show(db, show_id)

    # one owner token per checkout attempt, so parallel attempts by one user still exclude each other
    lock_owner = uuid.uuid4().hex
    lock = await acquire_seat_locks(
        redis, show.id, selected, owner=lock_owner, ttl_ms=settings.seat_lock_ttl_ms, prefix=settings.seat_lock_prefix
    )
    if not lock["success"]:
        raise SeatsUnavailableError([c["seat"] for c in lock["conflicts"]])

    try:
        booking = create_booking(db, show, user_id, selected)
        base = (origin or settings.frontend_url).rstrip("/")
        session = gateway.create_checkout_session(
            booking_id=booking.id,
            title=show.movie.title if show.movie else "Movie ticket",
            amount=booking.amount,
            success_url=f"{base}/loading/my-bookings?bookingId={booking.id}",
            cancel_url=f"{base}/my-bookings",
        )
        booking.payment_link = session.url
        booking.checkout_session_id = session.id
        db.commit()
        db.refresh(booking)
    except Exception:
        db.rollback()
        raise
    finally:
        try:
            await release_seat_locks(redis, show.id, selected, lock_owner, prefix=settings.seat_lock_prefix)
        except Exception as e:
            logger.warning("Seat lock release failed (locks will expire): %s", e)

    logger.info("Booking %s created for user %s, seats %s", booking.id, user_id, selected)
    return booking


def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
    return (
        db.query(Booking)
        .options(joinedload(Booking.show).joinedload(Show.movie))
        .filter(Booking.id == booking_id)
        .first()
    )


def list_user_bookings(db: Session, user_id: str) -> List[Booking]:
    return (
        db.query(Booking)
        .options(joinedload(Booking.show).joinedload(Show.movie))
        .filter(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc())
        .all()
    )


def mark_booking_paid(db: Session, booking_id: str) -> Tuple[Optional[Booking], bool]:
    """
    Flip a booking to paid and clear its payment link.

    The update only matches unpaid rows, so applying it again for a
    redelivered event is a no-op. A booking whose hold was already released
    is still found and revived, since the customer has been charged. Returns
    the booking (None if unknown) and whether this call performed the
    transition.
    """
    released_at = db.query(Booking.released_at).filter(Booking.id == booking_id).scalar()
    result = db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.is_paid.is_(False))
        .values(is_paid=True, payment_link="", released_at=None, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    transitioned = result.rowcount == 1
    if transitioned and released_at is not None:
        logger.warning("⚠️ Booking %s paid after its hold was released at %s; check its seats", booking_id, released_at)

    booking = db.get(Booking, booking_id)
    if booking is not None:
        db.refresh(booking)
    return booking, transitioned


def release_expired_bookings(
    db: Session,
    hold_minutes: int,
    gateway: Optional[StripeGateway] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Release unpaid bookings older than the hold window, freeing their seats.

    Each booking's checkout session is closed first; a session that already
    completed keeps its booking, and a gateway error leaves it for the next
    run. Released rows are kept (marked with `released_at`) so a late
    webhook can still find them.
    """
    now = now or datetime.utcnow()
    cutoff = now - timedelta(minutes=hold_minutes)
    candidates = (
        db.query(Booking)
        .filter(Booking.is_paid.is_(False), Booking.released_at.is_(None), Booking.created_at < cutoff)
        .all()
    )

    released = 0
    for booking in candidates:
        if booking.checkout_session_id and gateway is not None:
            try:
                if not gateway.close_checkout_session(booking.checkout_session_id):
                    logger.warning("Booking %s has a completed checkout but is unpaid; keeping it", booking.id)
                    continue
            except PaymentGatewayError as e:
                logger.warning("Could not close checkout for booking %s, retrying later: %s", booking.id, e)
                continue

        result = db.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.is_paid.is_(False), Booking.released_at.is_(None))
            .values(released_at=now, payment_link="", updated_at=now)
            .execution_options(synchronize_session=False)
        )
        released += result.rowcount or 0
    db.commit()

    if released:
        logger.info("Released %d unpaid bookings created before %s", released, cutoff.isoformat())
    return released


def serialize_booking(booking: Booking) -> Dict[str, Any]:
    return BookingDetailResponse.model_validate(booking).model_dump(mode="json")
