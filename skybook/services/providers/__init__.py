"""
Booking Backends - the remote booking API and its in-memory stand-in
"""
from typing import Callable, Optional
import logging

from skybook.config import settings
from .base import BackendError, BackendStatus, BookingBackend, TransactionRejectedError
from .http import HttpBookingBackend
from .mock import MockBookingBackend

logger = logging.getLogger(__name__)


def get_backend(token_provider: Callable[[], Optional[str]] = None) -> BookingBackend:
    """Remote API when BOOKING_API_BASE_URL is set, mock data otherwise"""
    if settings.USE_MOCK_BACKEND:
        logger.info("No booking API configured, using mock backend")
        return MockBookingBackend()
    return HttpBookingBackend(token_provider=token_provider)


__all__ = [
    "BackendError",
    "BackendStatus",
    "BookingBackend",
    "TransactionRejectedError",
    "HttpBookingBackend",
    "MockBookingBackend",
    "get_backend",
]
