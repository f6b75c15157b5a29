from datetime import date

import httpx
import pytest
from tenacity import wait_none

from skybook.schemas.booking import TransactionPassenger, TransactionRequest
from skybook.services.providers import (
    BackendError,
    BackendStatus,
    HttpBookingBackend,
    TransactionRejectedError,
)

BASE_URL = "https://api.skybook.test/api"


class Recorder:
    """MockTransport handler replaying queued responses"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def make_backend(recorder, max_retries=3):
    return HttpBookingBackend(
        base_url=BASE_URL,
        token_provider=lambda: "secret-token",
        max_retries=max_retries,
        transport=httpx.MockTransport(recorder),
        retry_wait=wait_none(),
    )


def transaction():
    return TransactionRequest(
        flight_id=101,
        flight_class_id=11,
        name="Budi",
        email="budi@example.com",
        phone="081234567890",
        passengers=[TransactionPassenger(name="Budi", date_of_birth="1990-05-17", nationality="Indonesia", flight_seat_id=None, seat_number="9F")],
        payment_method="visa",
    )


async def test_airports_normalized_with_bearer_token():
    recorder = Recorder(httpx.Response(200, json={"success": True, "data": [
        {"id": 1, "name": "Soekarno-Hatta", "city": "Jakarta", "iata_code": "CGK"},
    ]}))
    airports = await make_backend(recorder).get_airports()

    assert [a.code for a in airports] == ["CGK"]
    request = recorder.requests[0]
    assert request.url.path == "/api/airports"
    assert request.headers["Authorization"] == "Bearer secret-token"


async def test_search_sends_criteria():
    recorder = Recorder(httpx.Response(200, json={"success": True, "data": {"data": [{"id": 101}]}}))
    flights = await make_backend(recorder).search_flights(1, 2, date(2026, 12, 1))

    assert [f.id for f in flights] == [101]
    params = recorder.requests[0].url.params
    assert params["departure_airport_id"] == "1"
    assert params["arrival_airport_id"] == "2"
    assert params["date"] == "2026-12-01"


async def test_search_omits_missing_criteria():
    recorder = Recorder(httpx.Response(200, json=[]))
    assert await make_backend(recorder).search_flights() == []
    assert dict(recorder.requests[0].url.params) == {}


async def test_server_errors_retried():
    recorder = Recorder(
        httpx.Response(503, text="busy"),
        httpx.Response(200, json={"success": True, "data": {"flight": {"id": 101}}}),
    )
    backend = make_backend(recorder)
    flight = await backend.get_flight(101)

    assert flight.id == 101
    assert len(recorder.requests) == 2
    assert backend.status == BackendStatus.HEALTHY


async def test_client_errors_not_retried():
    recorder = Recorder(httpx.Response(404, json={"message": "missing"}))
    with pytest.raises(BackendError) as exc_info:
        await make_backend(recorder).get_flight(999)
    assert "HTTP 404" in exc_info.value.message
    assert len(recorder.requests) == 1


async def test_transport_errors_exhaust_retries():
    recorder = Recorder(httpx.ConnectError("connection refused"))
    with pytest.raises(BackendError) as exc_info:
        await make_backend(recorder, max_retries=3).get_airports()
    assert len(recorder.requests) == 3
    assert isinstance(exc_info.value.original_error, httpx.ConnectError)


async def test_unsuccessful_flight_detail():
    recorder = Recorder(httpx.Response(200, json={"success": False, "message": "gone"}))
    with pytest.raises(BackendError) as exc_info:
        await make_backend(recorder).get_flight(101)
    assert exc_info.value.message == "Flight not found or unavailable."


async def test_repeated_failures_degrade_backend():
    recorder = Recorder(httpx.Response(500, text="down"))
    backend = make_backend(recorder, max_retries=1)
    for _ in range(3):
        with pytest.raises(BackendError):
            await backend.get_airports()
    assert backend.status == BackendStatus.DEGRADED
    assert backend.is_available


async def test_transaction_success():
    recorder = Recorder(httpx.Response(201, json={"success": True, "message": "Transaction created", "data": {"id": 1}}))
    body = await make_backend(recorder).create_transaction(transaction())

    assert body["data"] == {"id": 1}
    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/api/transactions"
    sent = request.content
    assert b'"promo_code":null' in sent.replace(b" ", b"")
    assert b'"flight_seat_id":null' in sent.replace(b" ", b"")


async def test_validation_rejection_is_verbatim():
    recorder = Recorder(httpx.Response(422, json={"message": "The passengers.0.name field is required."}))
    with pytest.raises(TransactionRejectedError) as exc_info:
        await make_backend(recorder).create_transaction(transaction())
    assert exc_info.value.message == "The passengers.0.name field is required."
    assert exc_info.value.status_code == 422


async def test_validation_rejection_without_message():
    recorder = Recorder(httpx.Response(422, json={}))
    with pytest.raises(TransactionRejectedError) as exc_info:
        await make_backend(recorder).create_transaction(transaction())
    assert exc_info.value.message == "Data validation failed."


async def test_unsuccessful_body_is_a_rejection():
    recorder = Recorder(httpx.Response(200, json={"success": False}))
    with pytest.raises(TransactionRejectedError) as exc_info:
        await make_backend(recorder).create_transaction(transaction())
    assert exc_info.value.message == "System rejection."


async def test_transaction_server_error_not_retried():
    recorder = Recorder(httpx.Response(500, text="boom"))
    with pytest.raises(BackendError) as exc_info:
        await make_backend(recorder).create_transaction(transaction())
    assert not isinstance(exc_info.value, TransactionRejectedError)
    assert len(recorder.requests) == 1


async def test_transaction_connection_error():
    recorder = Recorder(httpx.ConnectError("offline"))
    with pytest.raises(BackendError) as exc_info:
        await make_backend(recorder).create_transaction(transaction())
    assert not isinstance(exc_info.value, TransactionRejectedError)
