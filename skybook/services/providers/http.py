"""
HTTP Booking Backend - the remote booking REST API over httpx
"""
from typing import Any, Callable, Dict, List, Optional
from datetime import date
import httpx
import logging
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from skybook.config import settings
from skybook.schemas.booking import TransactionRequest
from skybook.schemas.flight import Airport, EntityId, Flight
from skybook.services.normalizer import (
    is_success,
    normalize_airports,
    normalize_flight,
    normalize_flights,
)
from .base import BackendError, BookingBackend, TransactionRejectedError

logger = logging.getLogger(__name__)


REJECTED_FALLBACK_MESSAGE = "System rejection."
VALIDATION_FALLBACK_MESSAGE = "Data validation failed."
FLIGHT_UNAVAILABLE_MESSAGE = "Flight not found or unavailable."


def _is_retryable(error: BaseException) -> bool:
    """Transport errors and 5xx are worth another attempt; 4xx are not"""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(error, httpx.TransportError)


def _body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}


def _message(body: Any, default: str) -> str:
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return default


class HttpBookingBackend(BookingBackend):
    """
    Booking backend talking to the remote REST API.

    Idempotent GETs are retried with exponential backoff; the transaction
    POST is sent exactly once. `token_provider` returns the bearer token of
    the signed-in user (or None); how it is obtained is not our concern.
    """

    name = "booking_api"

    def __init__(
        self,
        base_url: str = None,
        token_provider: Callable[[], Optional[str]] = None,
        timeout: float = None,
        max_retries: int = None,
        transport: httpx.AsyncBaseTransport = None,
        retry_wait=None,
    ):
        super().__init__()
        self.base_url = (base_url or settings.BOOKING_API_BASE_URL).rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout if timeout is not None else settings.BOOKING_API_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.BOOKING_API_MAX_RETRIES
        self.transport = transport
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _get(self, path: str, params: Dict[str, Any] = None) -> Any:
        """GET with retries; failures become BackendError"""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=self.retry_wait,
                retry=retry_if_exception(_is_retryable),
                reraise=True,
            ):
                with attempt:
                    async with self._client() as client:
                        response = await client.get(path, params=params)
                        response.raise_for_status()
                        body = _body(response)
        except httpx.HTTPStatusError as e:
            self.record_failure(e)
            raise BackendError(self.name, f"HTTP {e.response.status_code}: {e.response.text}", e)
        except httpx.HTTPError as e:
            self.record_failure(e)
            raise BackendError(self.name, str(e) or e.__class__.__name__, e)

        self.record_success()
        return body

    async def get_airports(self) -> List[Airport]:
        airports = normalize_airports(await self._get("/airports"))
        logger.info(f"Loaded {len(airports)} airports")
        return airports

    async def search_flights(
        self,
        departure_airport_id: Optional[EntityId] = None,
        arrival_airport_id: Optional[EntityId] = None,
        date: Optional[date] = None,
    ) -> List[Flight]:
        params = {}
        if departure_airport_id is not None:
            params["departure_airport_id"] = departure_airport_id
        if arrival_airport_id is not None:
            params["arrival_airport_id"] = arrival_airport_id
        if date is not None:
            params["date"] = date.isoformat()

        flights = normalize_flights(await self._get("/flights", params=params))
        logger.info(f"Booking API returned {len(flights)} flights for {params}")
        return flights

    async def get_flight(self, flight_id: EntityId) -> Flight:
        body = await self._get(f"/flights/{flight_id}")
        if not is_success(body):
            logger.warning(f"Flight {flight_id} detail was not successful")
            raise BackendError(self.name, FLIGHT_UNAVAILABLE_MESSAGE)
        return normalize_flight(body)

    async def create_transaction(self, request: TransactionRequest) -> dict:
        payload = request.model_dump(mode="json")
        try:
            async with self._client() as client:
                response = await client.post("/transactions", json=payload)
        except httpx.HTTPError as e:
            self.record_failure(e)
            raise BackendError(self.name, str(e) or e.__class__.__name__, e)

        body = _body(response)
        if response.status_code == 422:
            message = _message(body, VALIDATION_FALLBACK_MESSAGE)
            logger.warning(f"Transaction rejected by validation: {message}")
            raise TransactionRejectedError(self.name, message, status_code=422)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self.record_failure(e)
            raise BackendError(self.name, f"HTTP {e.response.status_code}: {e.response.text}", e)

        self.record_success()
        if not is_success(body):
            message = _message(body, REJECTED_FALLBACK_MESSAGE)
            logger.warning(f"Transaction rejected: {message}")
            raise TransactionRejectedError(self.name, message, status_code=response.status_code)
        return body
