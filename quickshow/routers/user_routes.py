# quickshow/routers/user_routes.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from quickshow.auth import get_current_user_id
from quickshow.database.database import get_db
from quickshow.database.schemas import BookingListEnvelope
from quickshow.services import booking_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["User"])


@router.get("/bookings", response_model=BookingListEnvelope)
def get_user_bookings(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Bookings of the authenticated user, newest first."""
    try:
        bookings = booking_service.list_user_bookings(db, user_id)
        return {"success": True, "bookings": [booking_service.serialize_booking(b) for b in bookings]}
    except Exception as e:
        logger.exception("Error fetching bookings for user %s: %s", user_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
