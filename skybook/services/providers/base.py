"""
Base Booking Backend - Abstract interface for the remote booking API
"""
from abc import ABC, abstractmethod
from typing import List, Optional
from datetime import date
from enum import Enum
import logging

from skybook.schemas.booking import TransactionRequest
from skybook.schemas.flight import Airport, EntityId, Flight

logger = logging.getLogger(__name__)


class BackendStatus(Enum):
    """Backend health status"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


class BookingBackend(ABC):
    """
    Abstract base class for booking backends.

    Backends normalize every response at the boundary, so callers only ever
    see canonical Airport and Flight objects.
    """

    name: str = "base"

    _max_failures_before_degraded: int = 3
    _max_failures_before_unavailable: int = 10

    def __init__(self):
        self._status = BackendStatus.HEALTHY
        self._consecutive_failures = 0

    @property
    def status(self) -> BackendStatus:
        return self._status

    @property
    def is_available(self) -> bool:
        return self._status != BackendStatus.UNAVAILABLE

    def record_success(self):
        """Record a successful request"""
        self._consecutive_failures = 0
        self._status = BackendStatus.HEALTHY

    def record_failure(self, error: Exception):
        """Record a failed request"""
        self._consecutive_failures += 1
        logger.warning(f"{self.name} backend failure #{self._consecutive_failures}: {error}")

        if self._consecutive_failures >= self._max_failures_before_unavailable:
            self._status = BackendStatus.UNAVAILABLE
            logger.error(f"{self.name} backend marked as UNAVAILABLE after {self._consecutive_failures} failures")
        elif self._consecutive_failures >= self._max_failures_before_degraded:
            self._status = BackendStatus.DEGRADED
            logger.warning(f"{self.name} backend marked as DEGRADED after {self._consecutive_failures} failures")

    def reset_status(self):
        self._consecutive_failures = 0
        self._status = BackendStatus.HEALTHY

    @abstractmethod
    async def get_airports(self) -> List[Airport]:
        """Fetch the airport list"""
        pass

    @abstractmethod
    async def search_flights(
        self,
        departure_airport_id: Optional[EntityId] = None,
        arrival_airport_id: Optional[EntityId] = None,
        date: Optional[date] = None,
    ) -> List[Flight]:
        """
        Search flights. Every criterion is optional.

        Raises:
            BackendError: If the search fails
        """
        pass

    @abstractmethod
    async def get_flight(self, flight_id: EntityId) -> Flight:
        """
        Fetch one flight with its classes and seat manifest.

        Raises:
            BackendError: If the flight cannot be loaded
        """
        pass

    @abstractmethod
    async def create_transaction(self, request: TransactionRequest) -> dict:
        """
        Submit a booking.

        Returns:
            The backend's response body

        Raises:
            TransactionRejectedError: If the backend refused the payload
            BackendError: On any other failure
        """
        pass


class BackendError(Exception):
    """Exception raised when the booking backend cannot be reached or fails"""
    def __init__(self, backend_name: str, message: str, original_error: Optional[Exception] = None):
        self.backend_name = backend_name
        self.message = message
        self.original_error = original_error
        super().__init__(f"{backend_name}: {message}")


class TransactionRejectedError(BackendError):
    """The backend refused a transaction (HTTP 422 or an unsuccessful body)"""
    def __init__(
        self,
        backend_name: str,
        message: str,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        self.status_code = status_code
        super().__init__(backend_name, message, original_error)
