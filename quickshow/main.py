# quickshow/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from quickshow.core.config import Settings
from quickshow.core.logging_config import setup_logging
from quickshow.core.redis import close_redis, get_redis
from quickshow.database.database import build_engine, build_session_factory, init_db
from quickshow.routers import booking_routes, health, stripe_routes, user_routes
from quickshow.services.event_publisher import EventPublisher
from quickshow.services.expiry_worker import ExpiryWorker
from quickshow.services.payment_service import StripeGateway

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    # Redis init (non-fatal)
    try:
        await get_redis(settings.redis_url)
    except Exception as e:
        logger.warning("⚠ Redis connection failed (seat locking disabled until it recovers): %s", e)

    await app.state.expiry_worker.start()

    yield

    logger.info("🔄 Starting graceful shutdown...")
    await app.state.expiry_worker.stop()
    try:
        await close_redis()
    except Exception as e:
        logger.error("Error closing Redis: %s", e)
    app.state.engine.dispose()
    logger.info("✅ Graceful shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    payment_gateway: Optional[StripeGateway] = None,
    event_publisher: Optional[EventPublisher] = None,
) -> FastAPI:
    """
    Build the API. Configuration is read once here and handed to the
    components that need it; nothing below looks at the environment.
    """
    if settings is None:
        settings = Settings.from_env()
        setup_logging(settings.log_level)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Movie ticket booking with Stripe checkout",
        version=settings.VERSION,
        lifespan=lifespan,
    )

    engine = build_engine(settings.database_url)
    init_db(engine)
    session_factory = build_session_factory(engine)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.payment_gateway = payment_gateway or StripeGateway(settings)
    app.state.event_publisher = event_publisher or EventPublisher(settings)
    app.state.expiry_worker = ExpiryWorker(
        session_factory,
        app.state.payment_gateway,
        hold_minutes=settings.payment_hold_minutes,
        interval_seconds=settings.hold_expiry_check_interval_seconds,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Stripe webhook first; it consumes the raw body
    app.include_router(stripe_routes.router, prefix="/api")
    app.include_router(booking_routes.router, prefix="/api")
    app.include_router(user_routes.router, prefix="/api")
    app.include_router(health.router)

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "Server is Live!"

    logger.info("✓ App configured: %r", settings)
    return app
