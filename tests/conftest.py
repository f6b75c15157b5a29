"""Shared fixtures for the booking engine tests"""
import pytest

from skybook.schemas.booking import AuthenticatedUser
from skybook.services.booking_flow import BookingFlow, StaticAuthContext
from skybook.services.booking_session import BookingSession
from skybook.services.normalizer import normalize_flight
from skybook.services.providers import MockBookingBackend

ECONOMY_ID = 11
BUSINESS_ID = 12


def raw_flight_detail(economy_capacity=54, taken=("5C",)):
    """Flight-detail response in the data.flight envelope with a small manifest"""
    seats = []
    for seat_id, name in enumerate(["5A", "5B", "5C", "5D", "1A"], start=501):
        seats.append({"id": seat_id, "name": name, "is_available": name not in taken})
    return {
        "success": True,
        "data": {
            "flight": {
                "id": 101,
                "flight_number": "GA-402",
                "airline": {"name": "Garuda Indonesia", "logo": "garuda.png"},
                "duration": "1h 50m",
                "segments": [
                    {"sequence": 1, "time": "2026-12-01T07:30:00", "airport": {"id": 1, "name": "Soekarno-Hatta", "city": "Jakarta", "code": "CGK"}},
                    {"sequence": 2, "time": "2026-12-01T10:20:00", "airport": {"id": 2, "name": "Ngurah Rai", "city": "Bali", "iata": "DPS"}},
                ],
                "classes": [
                    {"id": ECONOMY_ID, "class_type": "Economy", "price": 1500000, "total_seats": economy_capacity, "facilities": ["Meal"]},
                    {"id": BUSINESS_ID, "class_type": "Business", "price": "4500000", "total_seats": 12, "facilities": ["Meal", "Lounge"]},
                ],
                "seats": seats,
            }
        },
    }


@pytest.fixture
def flight():
    return normalize_flight(raw_flight_detail())


@pytest.fixture
def other_flight():
    raw = raw_flight_detail()
    raw["data"]["flight"]["id"] = 202
    raw["data"]["flight"]["flight_number"] = "GA-404"
    return normalize_flight(raw)


@pytest.fixture
def session():
    return BookingSession()


@pytest.fixture
def valid_passenger_fields():
    def build(index=0):
        return {
            "name": f"Passenger {index + 1}",
            "email": f"passenger{index + 1}@example.com",
            "phone": "081234567890",
            "date_of_birth": "1990-05-17",
        }
    return build


@pytest.fixture
def session_at_passengers(session, flight, valid_passenger_fields):
    """Session with flight, economy class, seats 5A/5B and filled-in passengers"""
    session.select_flight(flight)
    session.select_fare_class(ECONOMY_ID)
    session.select_seats(["5A", "5B"])
    session.enter_passengers()
    for index in range(2):
        session.update_passenger(index, **valid_passenger_fields(index))
    return session


@pytest.fixture
def auth():
    return StaticAuthContext(AuthenticatedUser(id=7, role="user"), token="test-token")


@pytest.fixture
def mock_backend():
    return MockBookingBackend()


@pytest.fixture
def flow(mock_backend, auth):
    return BookingFlow(session=BookingSession(), backend=mock_backend, auth=auth)


@pytest.fixture
def make_flight():
    """Build the fixture flight with a different capacity or taken seats"""
    def build(**kwargs):
        return normalize_flight(raw_flight_detail(**kwargs))
    return build
