"""
Booking Flow - drives a BookingSession from backend fetches

The session itself is synchronous. This is the async edge: it performs the
network calls, discards responses that arrive after the user has moved on,
and turns backend failures into what the wizard shows.
"""
from typing import Any, Dict, List, Optional, Protocol
from datetime import date
import logging

from skybook.schemas.booking import AuthenticatedUser, SearchFilter, SubmissionResult
from skybook.schemas.flight import Airport, EntityId, Flight
from skybook.services.airport_directory import resolve_airport
from skybook.services.booking_session import BookingSession
from skybook.services.providers import BackendError, BookingBackend, TransactionRejectedError, get_backend

logger = logging.getLogger(__name__)


CONNECTIVITY_MESSAGE = "Unable to reach the booking service. Please check your connection and try again."
CONFIRMED_MESSAGE = "Booking confirmed."


class AuthContext(Protocol):
    """What the flow needs to know about the signed-in user"""

    def is_authenticated(self) -> bool:
        ...

    def current_user(self) -> Optional[AuthenticatedUser]:
        ...


class StaticAuthContext:
    """Auth context with a fixed user and bearer token"""

    def __init__(self, user: AuthenticatedUser = None, token: str = None):
        self.user = user
        self.token = token

    def is_authenticated(self) -> bool:
        return self.user is not None

    def current_user(self) -> Optional[AuthenticatedUser]:
        return self.user

    def get_token(self) -> Optional[str]:
        return self.token


class AuthenticationRequiredError(Exception):
    """Raised when the booking wizard is used without a signed-in user"""
    pass


class BookingFlow:
    """
    Async orchestration around one BookingSession.

    Each fetch records its key (search criteria or flight id) as the active
    key before awaiting; a response whose key is no longer active is dropped.
    Fetch failures propagate as BackendError and leave the session as it was.
    """

    def __init__(
        self,
        session: BookingSession = None,
        backend: BookingBackend = None,
        auth: AuthContext = None,
    ):
        self.session = session or BookingSession()
        self.auth = auth
        if backend is None:
            backend = get_backend(token_provider=getattr(auth, "get_token", None))
        self.backend = backend
        self._active_keys: Dict[str, Any] = {}

    def _require_auth(self) -> AuthenticatedUser:
        if self.auth is None or not self.auth.is_authenticated():
            raise AuthenticationRequiredError("Sign in to book a flight")
        return self.auth.current_user()

    def _begin(self, channel: str, key: Any) -> None:
        self._active_keys[channel] = key

    def _is_current(self, channel: str, key: Any) -> bool:
        if self._active_keys.get(channel) != key:
            logger.info(f"Discarding stale {channel} result for {key}")
            return False
        return True

    async def load_airports(self) -> List[Airport]:
        """Airports are fetched once and kept on the session"""
        self._require_auth()
        if self.session.airports:
            return self.session.airports

        airports = await self.backend.get_airports()
        self.session.set_airports(airports)
        return airports

    async def search(
        self,
        origin: str = "",
        destination: str = "",
        date: Optional[date] = None,
        passengers: int = 1,
    ) -> List[Flight]:
        """
        Search flights for free-text origin and destination.

        Unresolvable places are searched without that criterion. Returns the
        flights fetched, even when they arrived too late to be applied.
        """
        self._require_auth()
        search_filter = SearchFilter(origin=origin, destination=destination, date=date, passengers=passengers)
        key = (search_filter.origin, search_filter.destination, search_filter.date, search_filter.passengers)
        self._begin("search", key)

        airports = await self.load_airports()
        departure = resolve_airport(airports, search_filter.origin)
        arrival = resolve_airport(airports, search_filter.destination)
        flights = await self.backend.search_flights(
            departure_airport_id=departure.id if departure else None,
            arrival_airport_id=arrival.id if arrival else None,
            date=search_filter.date,
        )

        if self._is_current("search", key):
            self.session.set_search_filter(search_filter)
            self.session.set_flights(flights)
        return flights

    async def open_flight(self, flight_id: EntityId) -> Flight:
        """Load flight detail and select it on the session"""
        self._require_auth()
        key = str(flight_id)
        self._begin("flight", key)

        flight = await self.backend.get_flight(flight_id)
        if not flight.seats:
            logger.warning(
                f"Flight {flight_id} has no seat manifest; the seat map is synthetic "
                f"and seats will be booked without ids"
            )

        if self._is_current("flight", key):
            self.session.select_flight(flight)
        return flight

    async def submit_payment(self, payment_method: str) -> SubmissionResult:
        """
        Submit the booking.

        Backend rejections carry the backend's message verbatim; any other
        failure shows a generic connectivity message. Either way the session
        moves to FAILED and keeps its data so payment can be retried.
        """
        user = self._require_auth()
        request = self.session.build_transaction(payment_method)
        logger.info(
            f"Submitting booking for user {user.id if user else None}: flight {request.flight_id}, "
            f"{len(request.passengers)} passenger(s), {request.payment_method}"
        )

        try:
            response = await self.backend.create_transaction(request)
        except TransactionRejectedError as e:
            self.session.fail(e.message)
            return SubmissionResult(success=False, message=e.message, is_validation_error=True)
        except BackendError as e:
            logger.error(f"Booking submission failed: {e}")
            self.session.fail(CONNECTIVITY_MESSAGE)
            return SubmissionResult(success=False, message=CONNECTIVITY_MESSAGE)

        message = response.get("message") if isinstance(response, dict) else None
        self.session.complete(response)
        logger.info(f"Booking confirmed for flight {request.flight_id}")
        return SubmissionResult(success=True, message=message or CONFIRMED_MESSAGE, response=response)
