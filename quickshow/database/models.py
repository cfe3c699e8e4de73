# quickshow/database/models.py
import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from quickshow.database.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


# ==========================
# ✅ MOVIE MODEL
# ==========================
class Movie(Base):
    __tablename__ = "movies"

    id = Column(String(64), primary_key=True, default=_new_id)
    title = Column(String(200), nullable=False)
    overview = Column(Text, nullable=True)
    poster_path = Column(String(500), nullable=True)
    runtime = Column(Integer, nullable=True)  # minutes
    release_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    shows = relationship("Show", back_populates="movie", cascade="all, delete")


# ==========================
# ✅ SHOW MODEL
# ==========================
class Show(Base):
    __tablename__ = "shows"

    id = Column(String(64), primary_key=True, default=_new_id)
    movie_id = Column(String(64), ForeignKey("movies.id"), nullable=False, index=True)
    show_datetime = Column(DateTime, nullable=False)
    show_price = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    movie = relationship("Movie", back_populates="shows")
    bookings = relationship("Booking", back_populates="show", cascade="all, delete")


# ==========================
# ✅ BOOKING MODEL
# ==========================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(64), primary_key=True, default=_new_id)
    show_id = Column(String(64), ForeignKey("shows.id"), nullable=False, index=True)
    user_id = Column(String(100), nullable=False, index=True)  # Clerk user id
    booked_seats = Column(JSON, nullable=False, default=list)
    amount = Column(Float, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)
    payment_link = Column(String(1000), nullable=False, default="")
    checkout_session_id = Column(String(255), nullable=True)  # Stripe cs_...
    released_at = Column(DateTime, nullable=True)  # hold lapsed, seats freed
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    show = relationship("Show", back_populates="bookings")
