"""
Python client for the booking API, including the payment status poller
"""
from quickshow.client.api_client import BookingApiClient, BookingNotFoundError
from quickshow.client.poller import BookingStatusPoller, MyBookingsView, PollResult
from quickshow.client.retry_policy import RetryPolicy

__all__ = [
    "BookingApiClient",
    "BookingNotFoundError",
    "BookingStatusPoller",
    "MyBookingsView",
    "PollResult",
    "RetryPolicy",
]
