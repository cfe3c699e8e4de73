# quickshow/routers/booking_routes.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from redis.asyncio import Redis
from sqlalchemy.orm import Session

from quickshow.auth import get_current_user_id
from quickshow.core.config import Settings
from quickshow.database.database import get_db
from quickshow.database.schemas import (
    BookingCreate,
    BookingStatusEnvelope,
    CreateBookingResponse,
    OccupiedSeatsResponse,
)
from quickshow.deps import get_payment_gateway, get_seat_lock_redis, get_settings
from quickshow.services import booking_service
from quickshow.services.booking_service import InvalidSeatsError, SeatsUnavailableError, ShowNotFoundError
from quickshow.services.payment_service import PaymentGatewayError, StripeGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/booking", tags=["Bookings"])


# -------------------- Create --------------------
@router.post("/create", response_model=CreateBookingResponse)
async def create_booking(
    payload: BookingCreate,
    origin: Optional[str] = Header(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateway: StripeGateway = Depends(get_payment_gateway),
    redis: Optional[Redis] = Depends(get_seat_lock_redis),
):
    """
    Reserve the selected seats and return the hosted checkout URL.
    Accepts `{showId, selectedSeats}` (snake_case keys work too).
    """
    try:
        booking = await booking_service.start_checkout(
            db,
            settings=settings,
            gateway=gateway,
            redis=redis,
            show_id=payload.show_id,
            user_id=user_id,
            seats=payload.selected_seats,
            origin=origin,
        )
        return CreateBookingResponse(url=booking.payment_link, bookingId=booking.id)
    except InvalidSeatsError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ShowNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Show not found")
    except SeatsUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "Selected seats are not available.", "seats": e.seats},
        )
    except PaymentGatewayError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Payment provider error: {e}")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Unexpected error creating booking: %s", e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


# -------------------- Occupied seats --------------------
@router.get("/seats/{show_id}", response_model=OccupiedSeatsResponse)
def get_occupied_seats(show_id: str, db: Session = Depends(get_db)):
    try:
        return OccupiedSeatsResponse(occupiedSeats=booking_service.get_occupied_seats(db, show_id))
    except ShowNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Show not found")
    except Exception as e:
        logger.exception("Error fetching occupied seats for show %s: %s", show_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


# -------------------- Pay redirect --------------------
@router.get("/pay/{booking_id}")
def pay_booking(booking_id: str, db: Session = Depends(get_db)):
    """Redirect to the booking's hosted checkout page."""
    try:
        booking = booking_service.get_booking(db, booking_id)
        if booking is None:
            return PlainTextResponse("Booking not found", status_code=status.HTTP_404_NOT_FOUND)
        if not booking.payment_link:
            return PlainTextResponse("Payment link not available", status_code=status.HTTP_400_BAD_REQUEST)
        return RedirectResponse(booking.payment_link, status_code=status.HTTP_302_FOUND)
    except Exception as e:
        logger.exception("Error in /pay/%s: %s", booking_id, e)
        return PlainTextResponse("Server error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


# -------------------- Status (polled by the client) --------------------
@router.get("/{booking_id}", response_model=BookingStatusEnvelope)
def get_booking_status(booking_id: str, db: Session = Depends(get_db)):
    try:
        booking = booking_service.get_booking(db, booking_id)
        if booking is None:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"success": False, "message": "Booking not found"},
            )
        return JSONResponse(content={"success": True, "booking": booking_service.serialize_booking(booking)})
    except Exception as e:
        logger.exception("Error fetching booking %s: %s", booking_id, e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Server error"},
        )
