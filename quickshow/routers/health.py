# quickshow/routers/health.py
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from quickshow.core.config import Settings
from quickshow.core.redis import health_check_redis
from quickshow.database.database import get_db
from quickshow.deps import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """Database and Redis status. Redis is optional, so only the database decides `status`."""
    try:
        db.execute(text("SELECT 1"))
        database = {"status": "ok"}
    except Exception as e:
        database = {"status": "error", "detail": str(e)}

    return {
        "status": "ok" if database["status"] == "ok" else "degraded",
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "database": database,
        "redis": await health_check_redis(settings.redis_url),
    }
