"""
Application configuration and settings
"""
import os
import re
from typing import List, Mapping, Optional

from dotenv import load_dotenv


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or malformed."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("Invalid configuration: " + "; ".join(problems))


_CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")

# unpaid holds outlive the checkout session by at least this much
HOLD_GRACE_MINUTES = 5


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Settings:
    PROJECT_NAME: str = "QuickShow API"
    VERSION: str = "1.0.0"

    def __init__(
        self,
        stripe_secret_key: str,
        stripe_webhook_secret: str,
        currency: str,
        database_url: str = "sqlite:///./quickshow.db",
        redis_url: str = "redis://localhost:6379/0",
        seat_lock_ttl_ms: int = 60_000,
        seat_lock_prefix: str = "quickshow",
        stripe_webhook_tolerance: int = 300,
        inngest_event_key: Optional[str] = None,
        inngest_base_url: str = "https://inn.gs",
        auth_jwt_key: Optional[str] = None,
        auth_jwt_algorithm: str = "RS256",
        frontend_url: str = "http://localhost:5173",
        api_base_url: str = "http://127.0.0.1:8000",
        checkout_expiry_minutes: int = 30,
        payment_hold_minutes: int = 35,
        hold_expiry_check_interval_seconds: int = 60,
        cors_origins: Optional[List[str]] = None,
        log_level: str = "INFO",
    ):
        self.stripe_secret_key = stripe_secret_key
        self.stripe_webhook_secret = stripe_webhook_secret
        self.currency = currency.lower()
        self.database_url = database_url
        self.redis_url = redis_url
        self.seat_lock_ttl_ms = seat_lock_ttl_ms
        self.seat_lock_prefix = seat_lock_prefix
        self.stripe_webhook_tolerance = stripe_webhook_tolerance
        self.inngest_event_key = inngest_event_key or None
        self.inngest_base_url = inngest_base_url.rstrip("/")
        self.auth_jwt_key = auth_jwt_key or None
        self.auth_jwt_algorithm = auth_jwt_algorithm
        self.frontend_url = frontend_url.rstrip("/")
        self.api_base_url = api_base_url.rstrip("/")
        self.checkout_expiry_minutes = checkout_expiry_minutes
        self.payment_hold_minutes = payment_hold_minutes
        self.hold_expiry_check_interval_seconds = hold_expiry_check_interval_seconds
        self.cors_origins = cors_origins if cors_origins is not None else [self.frontend_url]
        self.log_level = log_level.upper()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, load_env_file: bool = True) -> "Settings":
        """
        Build settings from the process environment (and `.env` when present).

        Every problem is collected before raising so a misconfigured deploy
        reports all missing keys at once.
        """
        if environ is None:
            if load_env_file:
                load_dotenv()
            environ = os.environ

        problems: List[str] = []

        def required(name: str) -> str:
            value = (environ.get(name) or "").strip()
            if not value:
                problems.append(f"{name} is required")
            return value

        def integer(name: str, default: int) -> int:
            raw = environ.get(name)
            if raw is None or raw.strip() == "":
                return default
            try:
                value = int(raw)
            except ValueError:
                problems.append(f"{name} must be an integer, got {raw!r}")
                return default
            if value <= 0:
                problems.append(f"{name} must be positive, got {value}")
            return value

        stripe_secret_key = required("STRIPE_SECRET_KEY")
        stripe_webhook_secret = required("STRIPE_WEBHOOK_SECRET")
        currency = required("CURRENCY")
        if currency and not _CURRENCY_RE.match(currency):
            problems.append(f"CURRENCY must be a 3-letter ISO code, got {currency!r}")

        seat_lock_ttl_ms = integer("SEAT_LOCK_TTL_MS", 60_000)
        tolerance = integer("STRIPE_WEBHOOK_TOLERANCE", 300)
        checkout_expiry = integer("CHECKOUT_EXPIRY_MINUTES", 30)
        hold_minutes = integer("PAYMENT_HOLD_MINUTES", checkout_expiry + HOLD_GRACE_MINUTES)
        check_interval = integer("HOLD_EXPIRY_CHECK_INTERVAL_SECONDS", 60)

        # Stripe rejects checkout sessions that expire sooner than 30 minutes
        if checkout_expiry < 30:
            problems.append("CHECKOUT_EXPIRY_MINUTES must be at least 30")
        if hold_minutes < checkout_expiry + HOLD_GRACE_MINUTES:
            problems.append(
                f"PAYMENT_HOLD_MINUTES must be at least CHECKOUT_EXPIRY_MINUTES + {HOLD_GRACE_MINUTES}, got {hold_minutes}"
            )

        cors_raw = environ.get("CORS_ORIGINS", "")

        if problems:
            raise ConfigError(problems)

        return cls(
            stripe_secret_key=stripe_secret_key,
            stripe_webhook_secret=stripe_webhook_secret,
            currency=currency,
            database_url=environ.get("DATABASE_URL") or "sqlite:///./quickshow.db",
            redis_url=environ.get("REDIS_URL") or "redis://localhost:6379/0",
            seat_lock_ttl_ms=seat_lock_ttl_ms,
            seat_lock_prefix=environ.get("SEAT_LOCK_PREFIX", "quickshow"),
            stripe_webhook_tolerance=tolerance,
            inngest_event_key=environ.get("INNGEST_EVENT_KEY"),
            inngest_base_url=environ.get("INNGEST_BASE_URL") or "https://inn.gs",
            auth_jwt_key=environ.get("AUTH_JWT_KEY"),
            auth_jwt_algorithm=environ.get("AUTH_JWT_ALGORITHM") or "RS256",
            frontend_url=environ.get("FRONTEND_URL") or "http://localhost:5173",
            api_base_url=environ.get("API_BASE_URL") or "http://127.0.0.1:8000",
            checkout_expiry_minutes=checkout_expiry,
            payment_hold_minutes=hold_minutes,
            hold_expiry_check_interval_seconds=check_interval,
            cors_origins=_split_origins(cors_raw) if cors_raw else None,
            log_level=environ.get("LOG_LEVEL") or "INFO",
        )

    def __repr__(self) -> str:
        # keys stay out of logs
        return (
            f"Settings(database_url={self.database_url!r}, redis_url={self.redis_url!r}, "
            f"currency={self.currency!r}, inngest={'on' if self.inngest_event_key else 'off'})"
        )
