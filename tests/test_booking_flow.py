import asyncio
import logging
from datetime import date, timedelta

import pytest

from skybook.services.booking_flow import (
    CONNECTIVITY_MESSAGE,
    AuthenticationRequiredError,
    BookingFlow,
    StaticAuthContext,
)
from skybook.services.booking_session import BookingStep, SeatUnavailableError
from skybook.services.providers import BackendError, MockBookingBackend, TransactionRejectedError

ECONOMY_ID = 11


def travel_date():
    return date.today() + timedelta(days=30)


async def book_until_payment(flow, valid_passenger_fields, seats=("5A", "5B")):
    await flow.search("Jakarta", "Bali", travel_date(), passengers=len(seats))
    await flow.open_flight(101)
    session = flow.session
    session.select_fare_class(ECONOMY_ID)
    session.select_seats(list(seats))
    session.confirm_seats()
    session.enter_passengers()
    for index in range(len(seats)):
        session.update_passenger(index, **valid_passenger_fields(index))
    assert session.submit_passengers().is_valid
    return session


async def test_jakarta_to_bali_booking(flow, mock_backend, valid_passenger_fields):
    flights = await flow.search("Jakarta", "Bali", travel_date(), passengers=2)
    assert {f.id for f in flights} == {101, 102, 103}
    assert flow.session.step == BookingStep.FLIGHT_LISTED

    flight = await flow.open_flight(101)
    assert flight.airline_name == "Garuda Indonesia"
    assert flight.trip_type == "Direct"
    assert flow.session.step == BookingStep.FLIGHT_SELECTED

    session = flow.session
    session.select_fare_class(ECONOMY_ID)
    assert session.fare_class.price == 1500000
    assert session.fare_class.total_seats == 54

    session.select_seats(["5A", "5B"])
    assert session.confirm_seats() == BookingStep.SEATS_SELECTED
    session.enter_passengers()
    for index in range(2):
        session.update_passenger(index, **valid_passenger_fields(index))
    assert session.submit_passengers().is_valid

    assert session.apply_promo_code("SKY2026").success
    assert session.pricing.total == 3250000

    result = await flow.submit_payment("visa")
    assert result.success
    assert session.step == BookingStep.COMPLETED

    sent = mock_backend.transactions[0]
    assert sent["promo_code"] == "SKY2026"
    assert [(p["seat_number"], p["flight_seat_id"]) for p in sent["passengers"]] == [("5A", 1025), ("5B", 1026)]


async def test_sold_seats_are_taken_on_next_booking(flow, valid_passenger_fields):
    await book_until_payment(flow, valid_passenger_fields)
    assert (await flow.submit_payment("bank_transfer")).success

    await flow.open_flight(101)
    flow.session.select_fare_class(ECONOMY_ID)
    with pytest.raises(SeatUnavailableError):
        flow.session.toggle_seat("5A")


async def test_search_by_label_and_code(flow):
    flights = await flow.search("Bali (DPS)", "cgk")
    assert [f.id for f in flights] == [104]


async def test_unresolved_place_is_not_a_criterion(flow):
    flights = await flow.search("Atlantis", "Bali")
    assert {f.id for f in flights} == {101, 102, 103}


async def test_airports_loaded_once(flow, mock_backend):
    calls = []
    original = mock_backend.get_airports

    async def counting():
        calls.append(1)
        return await original()

    mock_backend.get_airports = counting
    await flow.load_airports()
    await flow.load_airports()
    assert len(calls) == 1
    assert len(flow.session.airports) == 5


async def test_transit_flight_with_segment_manifest(flow):
    flight = await flow.open_flight(102)
    assert flight.trip_type == "1 Transit"
    assert (flight.origin_code, flight.destination_code) == ("CGK", "DPS")
    assert {s.name: s.id for s in flight.seats}["2C"] == 2009

    flow.session.select_fare_class(21)
    with pytest.raises(SeatUnavailableError):
        flow.session.toggle_seat("1A")


async def test_missing_manifest_is_logged(flow, caplog):
    with caplog.at_level(logging.WARNING, logger="skybook.services.booking_flow"):
        flight = await flow.open_flight(104)
    assert flight.seats == []
    assert "no seat manifest" in caplog.text


async def test_requires_signed_in_user(mock_backend):
    for auth in (None, StaticAuthContext()):
        flow = BookingFlow(backend=mock_backend, auth=auth)
        with pytest.raises(AuthenticationRequiredError):
            await flow.search("Jakarta", "Bali")


class SlowBackend(MockBookingBackend):
    """Answers Jakarta departures and flight 101 late"""

    async def search_flights(self, departure_airport_id=None, arrival_airport_id=None, date=None):
        if str(departure_airport_id) == "1":
            await asyncio.sleep(0.05)
        return await super().search_flights(departure_airport_id, arrival_airport_id, date)

    async def get_flight(self, flight_id):
        if str(flight_id) == "101":
            await asyncio.sleep(0.05)
        return await super().get_flight(flight_id)


async def test_late_search_result_discarded(auth, caplog):
    flow = BookingFlow(backend=SlowBackend(), auth=auth)
    with caplog.at_level(logging.INFO, logger="skybook.services.booking_flow"):
        late, fresh = await asyncio.gather(flow.search("Jakarta", "Bali"), flow.search("Bali", "Jakarta"))

    assert {f.id for f in late} == {101, 102, 103}
    assert [f.id for f in flow.session.flights] == [104]
    assert flow.session.search_filter.origin == "Bali"
    assert "Discarding stale search result" in caplog.text


async def test_late_flight_detail_discarded(auth):
    flow = BookingFlow(backend=SlowBackend(), auth=auth)
    await asyncio.gather(flow.open_flight(101), flow.open_flight(104))
    assert flow.session.flight.id == 104


class FlakyBackend(MockBookingBackend):
    def __init__(self):
        super().__init__()
        self.down = False
        self.submit_error = None

    async def search_flights(self, departure_airport_id=None, arrival_airport_id=None, date=None):
        if self.down:
            raise BackendError(self.name, "timed out")
        return await super().search_flights(departure_airport_id, arrival_airport_id, date)

    async def create_transaction(self, request):
        if self.submit_error is not None:
            raise self.submit_error
        return await super().create_transaction(request)


async def test_failed_search_leaves_session_alone(auth):
    backend = FlakyBackend()
    flow = BookingFlow(backend=backend, auth=auth)
    await flow.search("Jakarta", "Bali")

    backend.down = True
    with pytest.raises(BackendError):
        await flow.search("Bali", "Jakarta")
    assert flow.session.step == BookingStep.FLIGHT_LISTED
    assert flow.session.search_filter.origin == "Jakarta"
    assert len(flow.session.flights) == 3


async def test_rejection_message_shown_verbatim(auth, valid_passenger_fields):
    backend = FlakyBackend()
    backend.submit_error = TransactionRejectedError(backend.name, "Seat 5A is no longer available.", status_code=422)
    flow = BookingFlow(backend=backend, auth=auth)
    session = await book_until_payment(flow, valid_passenger_fields)

    result = await flow.submit_payment("visa")
    assert not result.success
    assert result.is_validation_error
    assert result.message == "Seat 5A is no longer available."
    assert session.step == BookingStep.FAILED
    assert session.last_error == "Seat 5A is no longer available."

    backend.submit_error = None
    assert session.retry_payment() == BookingStep.PAYMENT_PENDING
    assert (await flow.submit_payment("visa")).success


async def test_connectivity_failure_gets_generic_message(auth, valid_passenger_fields):
    backend = FlakyBackend()
    backend.submit_error = BackendError(backend.name, "read timeout")
    flow = BookingFlow(backend=backend, auth=auth)
    session = await book_until_payment(flow, valid_passenger_fields)

    result = await flow.submit_payment("qr_code")
    assert not result.success
    assert not result.is_validation_error
    assert result.message == CONNECTIVITY_MESSAGE
    assert session.step == BookingStep.FAILED
    assert session.selected_seats == ("5A", "5B")
