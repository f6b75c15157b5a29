"""
Mock Booking Backend - canned upstream payloads for development and tests

Used when no booking API is configured. The payloads deliberately mix the
alias shapes and envelopes the real API produces and are served through the
same normalizer as HTTP responses.
"""
from typing import Dict, List, Optional, Set
from datetime import date, timedelta
import copy
import logging

from skybook.schemas.booking import TransactionRequest
from skybook.schemas.flight import Airport, EntityId, Flight
from skybook.services.normalizer import (
    column_letter,
    normalize_airports,
    normalize_flight,
    normalize_flights,
    normalize_seat_name,
)
from .base import BackendError, BookingBackend, TransactionRejectedError
from .http import FLIGHT_UNAVAILABLE_MESSAGE

logger = logging.getLogger(__name__)


AIRPORTS = [
    {"id": 1, "name": "Soekarno-Hatta International Airport", "city": "Jakarta", "code": "CGK"},
    {"id": 2, "name": "I Gusti Ngurah Rai International Airport", "city": "Bali", "iata": "DPS"},
    {"id": 3, "name": "Juanda International Airport", "city": "Surabaya", "iata_code": "SUB"},
    {"id": 4, "airport_name": "Yogyakarta International Airport", "city": "Yogyakarta", "airport_code": "YIA"},
    {"id": 5, "name": "Kualanamu International Airport", "city_name": "Medan", "code": "kno"},
]

_AIRPORTS_BY_ID = {a["id"]: a for a in AIRPORTS}


def _at(day: date, clock: str) -> str:
    return f"{day.isoformat()}T{clock}:00"


def _segment(sequence: int, airport_id: int, day: date, clock: str, seats: list = None) -> dict:
    segment = {"sequence": sequence, "time": _at(day, clock), "airport": dict(_AIRPORTS_BY_ID[airport_id])}
    if seats is not None:
        segment["flight_seats"] = seats
    return segment


def _manifest(rows: int, first_id: int, taken: Set[str]) -> List[dict]:
    """Seat records for rows 1..rows, six abreast"""
    seats = []
    seat_id = first_id
    for row in range(1, rows + 1):
        for column in range(1, 7):
            name = f"{row}{column_letter(column)}"
            seats.append({"id": seat_id, "name": name, "is_available": name not in taken})
            seat_id += 1
    return seats


def _garuda_cgk_dps(day: date) -> dict:
    seats = _manifest(5, 1001, {"3C", "4D"})
    seats[6]["is_available"] = None  # 2A reported through the booked flag instead
    seats[6]["is_booked"] = True
    return {
        "id": 101,
        "flight_number": "GA-402",
        "airline": {"name": "Garuda Indonesia", "logo": "https://cdn.skybook.test/airlines/garuda.png"},
        "duration": "1h 50m",
        "segments": [
            _segment(1, 1, day, "07:30"),
            _segment(2, 2, day, "10:20"),
        ],
        "classes": [
            {
                "id": 11,
                "class_type": "Economy",
                "price": 1500000,
                "total_seats": 54,
                "facilities": [{"name": "Baggage 20kg"}, {"name": "Meal"}],
            },
            {
                "id": 12,
                "class_type": "Business",
                "price": "4500000",
                "total_seats": 12,
                "facilities": ["Baggage 40kg", "Meal", "Lounge Access"],
            },
        ],
        "seats": seats,
    }


def _lion_cgk_yia_dps(day: date) -> dict:
    return {
        "id": 102,
        "number": "JT-610",
        "airline_name": "Lion Air",
        "duration": "3h 45m",
        # Listed out of order on purpose; sequence decides
        "segments": [
            _segment(3, 2, day, "12:45"),
            _segment(1, 1, day, "09:00", seats=[
                {"seat_id": 2001 + i, "seat_number": s["name"].lower(), "is_booked": not s["is_available"]}
                for i, s in enumerate(_manifest(9, 0, {"1A", "1B", "7F"}))
            ]),
            _segment(2, 4, day, "10:15"),
        ],
        "flight_classes": [
            {"id": 21, "type": "Economy Promo", "price": "950000.00", "capacity": 54, "benefits": ["Baggage 20kg"]},
        ],
    }


def _citilink_cgk_dps(day: date) -> dict:
    return {
        "id": 103,
        "flight_number": "QG-123",
        "airline_name": "Citilink",
        "airline_logo": "",
        "duration": "2h 5m",
        "origin_airport_code": "CGK",
        "origin_city": "Jakarta",
        "destination_airport_code": "DPS",
        "destination_city": "Bali",
        "departure_time": _at(day, "13:00"),
        "arrival_time": _at(day, "16:05"),
        "base_price": "750000",
        "facilities": ["Baggage 20kg", {"name": "In-flight Entertainment"}],
    }


def _batik_dps_cgk(day: date) -> dict:
    return {
        "id": 104,
        "flight_number": "ID-6500",
        "airline": "Batik Air",
        "duration": "1h 55m",
        "segments": [
            _segment(1, 2, day, "18:10"),
            _segment(2, 1, day, "19:05"),
        ],
        "classes": [
            {"id": 41, "class_type": "Economy", "price": 1250000, "total_seats": 48, "facilities": ["Meal"]},
            {"id": 42, "class_type": "business class", "price": 3900000, "facilities": ["Lounge Access"]},
        ],
    }


# (origin airport id, destination airport id, builder)
SCHEDULE = [
    (1, 2, _garuda_cgk_dps),
    (1, 2, _lion_cgk_yia_dps),
    (1, 2, _citilink_cgk_dps),
    (2, 1, _batik_dps_cgk),
]


class MockBookingBackend(BookingBackend):
    """
    In-memory booking backend.

    Every scheduled flight operates daily; flight detail is dated on the last
    searched day (tomorrow before any search). Seats sold through
    create_transaction show up as taken in later detail responses.
    """

    name = "mock"

    def __init__(self):
        super().__init__()
        self._day = date.today() + timedelta(days=1)
        self._sold: Dict[str, Set[str]] = {}
        self.transactions: List[dict] = []

    def _records(self, day: date) -> Dict[str, dict]:
        records = (builder(day) for _, _, builder in SCHEDULE)
        return {str(record["id"]): record for record in records}

    def _with_sales(self, record: dict) -> dict:
        """Mark sold seats as booked wherever the record carries a manifest"""
        sold = self._sold.get(str(record["id"]), set())
        if not sold:
            return record
        record = copy.deepcopy(record)
        manifests = [record.get("seats") or []]
        manifests += [segment.get("flight_seats") or [] for segment in record.get("segments", [])]
        for manifest in manifests:
            for seat in manifest:
                name = normalize_seat_name(seat.get("name") or seat.get("seat_number"))
                if name in sold:
                    seat["is_available"] = False
                    seat.pop("is_booked", None)
        return record

    async def get_airports(self) -> List[Airport]:
        return normalize_airports({"success": True, "data": copy.deepcopy(AIRPORTS)})

    async def search_flights(
        self,
        departure_airport_id: Optional[EntityId] = None,
        arrival_airport_id: Optional[EntityId] = None,
        date: Optional[date] = None,
    ) -> List[Flight]:
        if date is not None:
            self._day = date

        listed = []
        for origin_id, destination_id, builder in SCHEDULE:
            if departure_airport_id is not None and str(origin_id) != str(departure_airport_id):
                continue
            if arrival_airport_id is not None and str(destination_id) != str(arrival_airport_id):
                continue
            record = builder(self._day)
            record.pop("seats", None)
            listed.append(record)

        logger.info(f"Using mock flight data: {len(listed)} flights")
        return normalize_flights({"success": True, "data": {"data": listed}})

    async def get_flight(self, flight_id: EntityId) -> Flight:
        record = self._records(self._day).get(str(flight_id))
        if record is None:
            raise BackendError(self.name, FLIGHT_UNAVAILABLE_MESSAGE)

        record = self._with_sales(record)
        if record["id"] == 103:
            body = {"status": "success", "flight": record}
        elif record["id"] == 101:
            seats = record.pop("seats")
            body = {"success": True, "data": {"flight": {**record, "seats": seats}}}
        else:
            body = {"success": True, "data": record}

        return normalize_flight(body)

    async def create_transaction(self, request: TransactionRequest) -> dict:
        flight_key = str(request.flight_id)
        record = self._records(self._day).get(flight_key)
        if record is None:
            raise TransactionRejectedError(self.name, "The selected flight does not exist.", status_code=422)

        flight = normalize_flight(self._with_sales(record))
        taken = set(flight.booked_seat_names) | self._sold.get(flight_key, set())
        for passenger in request.passengers:
            seat = normalize_seat_name(passenger.seat_number)
            if seat in taken:
                raise TransactionRejectedError(self.name, f"Seat {seat} is no longer available.", status_code=422)

        self._sold.setdefault(flight_key, set()).update(
            normalize_seat_name(p.seat_number) for p in request.passengers
        )
        transaction = {
            "id": len(self.transactions) + 1,
            "code": f"SKY-{len(self.transactions) + 1:06d}",
            **request.model_dump(mode="json"),
        }
        self.transactions.append(transaction)
        logger.info(f"Mock transaction {transaction['code']} created for flight {flight_key}")
        return {"success": True, "message": "Transaction created successfully.", "data": transaction}
