"""
Insert a few demo movies and shows so the booking flow can be tried locally.

Usage: python scripts/seed_shows.py
"""
import logging
import os
from datetime import datetime, timedelta

from dotenv import load_dotenv

from quickshow.core.logging_config import setup_logging
from quickshow.database.database import build_engine, build_session_factory, init_db
from quickshow.database.models import Movie, Show

logger = logging.getLogger("seed_shows")

MOVIES = [
    {"title": "The Long Night", "runtime": 128, "poster_path": "/long-night.jpg", "price": 12.5},
    {"title": "Paper Moons", "runtime": 104, "poster_path": "/paper-moons.jpg", "price": 10.0},
    {"title": "Signal Lost", "runtime": 117, "poster_path": "/signal-lost.jpg", "price": 14.0},
]


def seed(database_url: str) -> int:
    engine = build_engine(database_url)
    init_db(engine)
    db = build_session_factory(engine)()
    created = 0
    try:
        tomorrow = datetime.utcnow().replace(minute=0, second=0, microsecond=0) + timedelta(days=1)
        for item in MOVIES:
            if db.query(Movie).filter(Movie.title == item["title"]).first():
                logger.info("Skipping existing movie %s", item["title"])
                continue
            movie = Movie(title=item["title"], runtime=item["runtime"], poster_path=item["poster_path"])
            db.add(movie)
            db.flush()
            for hour in (14, 18, 21):
                db.add(Show(movie_id=movie.id, show_datetime=tomorrow.replace(hour=hour), show_price=item["price"]))
                created += 1
        db.commit()
    finally:
        db.close()
    return created


if __name__ == "__main__":
    load_dotenv()
    setup_logging()
    count = seed(os.getenv("DATABASE_URL", "sqlite:///./quickshow.db"))
    logger.info("✓ Seeded %d shows", count)
