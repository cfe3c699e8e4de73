from typing import Any, Callable, Dict


def booking_is_paid(booking: Dict[str, Any]) -> bool:
    return bool(booking and booking.get("is_paid"))


class RetryPolicy:
    """How often to poll, how long to wait between polls, and what counts as done."""

    def __init__(
        self,
        max_attempts: int = 5,
        interval: float = 2.0,
        success: Callable[[Dict[str, Any]], bool] = booking_is_paid,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if interval < 0:
            raise ValueError("interval must not be negative")
        self.max_attempts = max_attempts
        self.interval = interval
        self.success = success

    def __repr__(self) -> str:
        return f"RetryPolicy(max_attempts={self.max_attempts}, interval={self.interval})"
