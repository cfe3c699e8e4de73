# quickshow/database/schemas.py
# =========================================================
# 🧩 Booking API Schemas (Pydantic v2)
# =========================================================

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field


# =========================================================
# ✅ Base Config for ORM Compatibility
# =========================================================
class ConfigModel(BaseModel):
    class Config:
        from_attributes = True


# =========================================================
# 🎬 Movie / Show Schemas
# =========================================================
class MovieResponse(ConfigModel):
    id: str
    title: str
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    runtime: Optional[int] = None
    release_date: Optional[datetime] = None


class ShowResponse(ConfigModel):
    id: str
    movie_id: str
    show_datetime: datetime
    show_price: float
    movie: Optional[MovieResponse] = None


# =========================================================
# 🎟 Booking Schemas
# =========================================================
class BookingCreate(BaseModel):
    # accepts the camelCase keys the web client sends as well as snake_case
    show_id: str = Field(..., validation_alias=AliasChoices("show_id", "showId"))
    selected_seats: List[str] = Field(
        ..., validation_alias=AliasChoices("selected_seats", "selectedSeats", "seats")
    )


class BookingResponse(ConfigModel):
    id: str
    show_id: str
    user_id: str
    booked_seats: List[str]
    amount: float
    is_paid: bool
    payment_link: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    released_at: Optional[datetime] = None


class BookingDetailResponse(BookingResponse):
    show: Optional[ShowResponse] = None


class BookingStatusEnvelope(BaseModel):
    success: bool = True
    booking: BookingDetailResponse


class BookingListEnvelope(BaseModel):
    success: bool = True
    bookings: List[BookingDetailResponse]


class OccupiedSeatsResponse(BaseModel):
    success: bool = True
    occupiedSeats: List[str]


class CreateBookingResponse(BaseModel):
    success: bool = True
    url: str
    bookingId: str
