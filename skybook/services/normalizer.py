"""
Canonical Model Normalizer - converts loosely-typed upstream payloads into
the canonical Airport / Flight / FareClass / Seat schemas.

Upstream responses name the same field differently from endpoint to endpoint
(an airport code may arrive as `code`, `iata`, `iata_code` or `airport_code`;
prices as integers or numeric strings). Each canonical field is resolved by
walking a fixed alias list in priority order: the first present value that is
neither None nor a blank string wins.

Nothing in this module raises. Fields that cannot be resolved take the
placeholders defined in `skybook.schemas.flight` (UNKNOWN, NO_CODE, NO_TIME)
or 0, so every screen always has something renderable. Callers that need
strict data compare against those placeholders explicitly.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple
from datetime import datetime
from decimal import Decimal, InvalidOperation
import logging
import re

from skybook.schemas.flight import (
    Airport,
    FareClass,
    Flight,
    FlightSegment,
    Seat,
    UNKNOWN,
    NO_CODE,
    NO_TIME,
)

logger = logging.getLogger(__name__)


# Alias lists, highest priority first
AIRPORT_ID_ALIASES = ("id", "airport_id")
AIRPORT_CODE_ALIASES = ("code", "iata", "iata_code", "airport_code")
AIRPORT_NAME_ALIASES = ("name", "airport_name")
AIRPORT_CITY_ALIASES = ("city", "city_name")

FLIGHT_ID_ALIASES = ("id", "flight_id")
FLIGHT_NUMBER_ALIASES = ("flight_number", "number", "code")
FLIGHT_CLASSES_ALIASES = ("classes", "flight_classes")
FLIGHT_BASE_PRICE_ALIASES = ("base_price", "price")
AIRLINE_NAME_ALIASES = ("airline_name",)
AIRLINE_LOGO_ALIASES = ("airline_logo",)

ORIGIN_CODE_ALIASES = ("origin_airport_code", "origin_code")
ORIGIN_CITY_ALIASES = ("origin_city", "origin_airport_city")
ORIGIN_NAME_ALIASES = ("origin_airport_name", "origin_name")
DESTINATION_CODE_ALIASES = ("destination_airport_code", "destination_code")
DESTINATION_CITY_ALIASES = ("destination_city", "destination_airport_city")
DESTINATION_NAME_ALIASES = ("destination_airport_name", "destination_name")

SEGMENT_TIME_ALIASES = ("time", "departure_time", "arrival_time")

CLASS_TYPE_ALIASES = ("class_type", "type", "name")
CLASS_CAPACITY_ALIASES = ("total_seats", "capacity", "seat_capacity")
CLASS_FACILITY_ALIASES = ("facilities", "benefits")

SEAT_ID_ALIASES = ("id", "seat_id", "flight_seat_id")
SEAT_NAME_ALIASES = ("name", "seat_number", "seat_name")
SEAT_AVAILABILITY_ALIASES = ("is_available", "available", "isAvailable")

# Known places a seat manifest hides in a flight-detail response, tried in
# order against both the response envelope and the unwrapped flight record.
# The deepest path is three keys; nothing is searched recursively.
SEAT_MANIFEST_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("seats",),
    ("flight_seats",),
    ("data", "seats"),
    ("data", "flight_seats"),
    ("data", "data", "seats"),
    ("data", "flight", "seats"),
    ("data", "flight", "flight_seats"),
    ("flight", "seats"),
    ("flight", "flight_seats"),
)
SEGMENT_SEAT_KEYS = ("seats", "flight_seats")

SEAT_NAME_PATTERN = re.compile(r"^(\d+)\s*([A-Z])$")
COLUMN_LETTER_PATTERN = re.compile(r"^[A-Za-z]$")
CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})")


# ==================
# PRIMITIVES
# ==================

def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def first_present(record: Any, aliases: Sequence[str], default: Any = None) -> Any:
    """Return the value of the first alias present on `record`"""
    body = _as_dict(record)
    for alias in aliases:
        value = body.get(alias)
        if _is_present(value):
            return value
    return default


def _text(value: Any, default: str) -> str:
    if not _is_present(value) or isinstance(value, (dict, list)):
        return default
    return str(value).strip()


def to_int(value: Any, default: int = 0) -> int:
    """Coerce integers, floats and numeric strings ("1500000", "1500000.00")"""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        if isinstance(value, float):
            return int(value)
        if isinstance(value, str):
            return int(Decimal(value.strip().replace(",", "")))
    except (InvalidOperation, ValueError, OverflowError):
        return default
    return default


def to_optional_int(value: Any) -> Optional[int]:
    if not _is_present(value):
        return None
    sentinel = object()
    result = to_int(value, default=sentinel)
    return None if result is sentinel else result


def _to_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "available"):
            return True
        if lowered in ("false", "0", "no", "booked", "unavailable"):
            return False
    return default


def _entity_id(value: Any) -> Optional[Any]:
    if isinstance(value, bool) or not _is_present(value):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return value.strip()
    return None


def _dig(source: Any, path: Sequence[str]) -> Any:
    current = source
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def format_clock(value: Any) -> str:
    """Render an ISO datetime or "HH:MM[:SS]" string as 24h "HH:MM" """
    if not _is_present(value):
        return NO_TIME
    text = str(value).strip()
    if "T" in text or len(text) > 8:
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).strftime("%H:%M")
        except ValueError:
            pass
    match = CLOCK_PATTERN.match(text)
    if match:
        return f"{int(match.group(1)):02d}:{match.group(2)}"
    return text


def normalize_facilities(values: Any) -> List[str]:
    """Flatten bare strings and {name: ...} objects, de-duplicated in first-seen order"""
    seen = set()
    names = []
    for item in _as_list(values):
        name = first_present(item, ("name",)) if isinstance(item, dict) else item
        if not _is_present(name) or isinstance(name, (dict, list)):
            continue
        name = str(name).strip()
        if name not in seen:
            seen.add(name)
            names.append(name)
    return names


def normalize_seat_name(value: Any) -> str:
    """Canonical seat label: trimmed, upper-case ("12c " -> "12C")"""
    if value is None:
        return ""
    return str(value).strip().upper()


def column_letter(column: int) -> str:
    """1 -> "A", 2 -> "B", ..."""
    return chr(ord("A") + column - 1)


def column_index(letter: str) -> int:
    """"A" -> 1, "B" -> 2, ..."""
    return ord(letter.upper()) - ord("A") + 1


# ==================
# ENVELOPES
# ==================

def is_success(payload: Any) -> bool:
    """Bare arrays are successful; objects need `success` or `status == "success"`"""
    if isinstance(payload, list):
        return True
    body = _as_dict(payload)
    return bool(body.get("success")) or body.get("status") == "success"


def unwrap_collection(payload: Any) -> List[Any]:
    """Accept a bare array, `{data: [...]}` or `{success, data: {data: [...]}}`"""
    if isinstance(payload, list):
        return payload
    data = _as_dict(payload).get("data")
    if isinstance(data, list):
        return data
    nested = _as_dict(data).get("data")
    if isinstance(nested, list):
        return nested
    return []


def unwrap_flight_list(payload: Any) -> List[Any]:
    return unwrap_collection(payload)


def unwrap_flight_record(payload: Any) -> Dict[str, Any]:
    """Find the flight inside a detail response (`data.flight`, `data`, `flight`)"""
    body = _as_dict(payload)
    data = body.get("data")
    if isinstance(data, dict):
        if isinstance(data.get("flight"), dict):
            return data["flight"]
        if _is_present(data.get("id")):
            return data
    if isinstance(body.get("flight"), dict):
        return body["flight"]
    if isinstance(data, dict):
        return data
    return body


def extract_seat_manifest(payload: Any) -> List[Any]:
    """
    Locate the raw seat manifest in a flight-detail response.

    Tries SEAT_MANIFEST_PATHS against the envelope and then the unwrapped
    flight record, and finally flattens per-segment seat lists. Returns an
    empty list when nothing is found.
    """
    record = unwrap_flight_record(payload)
    for source in (payload, record):
        for path in SEAT_MANIFEST_PATHS:
            found = _dig(source, path)
            if isinstance(found, list) and found:
                return found

    flattened = []
    for segment in _as_list(record.get("segments")):
        for key in SEGMENT_SEAT_KEYS:
            seats = _as_list(_as_dict(segment).get(key))
            if seats:
                flattened.extend(seats)
                break
    return flattened


# ==================
# ENTITIES
# ==================

def normalize_airport(raw: Any) -> Airport:
    """Convert an upstream airport record of any supported alias shape"""
    record = _as_dict(raw)
    code = first_present(record, AIRPORT_CODE_ALIASES)
    return Airport(
        id=_entity_id(first_present(record, AIRPORT_ID_ALIASES)),
        name=_text(first_present(record, AIRPORT_NAME_ALIASES), UNKNOWN),
        city=_text(first_present(record, AIRPORT_CITY_ALIASES), UNKNOWN),
        code=_text(code, NO_CODE).upper(),
    )


def normalize_airports(payload: Any) -> List[Airport]:
    return [normalize_airport(item) for item in unwrap_collection(payload) if isinstance(item, dict)]


def normalize_fare_class(raw: Any) -> FareClass:
    record = _as_dict(raw)
    capacity = to_optional_int(first_present(record, CLASS_CAPACITY_ALIASES))
    return FareClass(
        id=_entity_id(record.get("id")),
        type=_text(first_present(record, CLASS_TYPE_ALIASES), UNKNOWN),
        price=max(to_int(record.get("price")), 0),
        total_seats=capacity if capacity and capacity > 0 else None,
        benefits=normalize_facilities(first_present(record, CLASS_FACILITY_ALIASES)),
    )


def normalize_seat(raw: Any) -> Optional[Seat]:
    """Convert one manifest record; records without a usable name are dropped"""
    record = _as_dict(raw)
    name = normalize_seat_name(first_present(record, SEAT_NAME_ALIASES))
    if not name:
        return None

    match = SEAT_NAME_PATTERN.match(name)
    row = to_optional_int(record.get("row"))
    if row is None:
        row = int(match.group(1)) if match else 0

    raw_column = record.get("column")
    if isinstance(raw_column, str) and COLUMN_LETTER_PATTERN.match(raw_column.strip()):
        column = column_index(raw_column.strip())
    else:
        column = to_optional_int(raw_column)
    if column is None:
        column = column_index(match.group(2)) if match else 0

    availability = first_present(record, SEAT_AVAILABILITY_ALIASES)
    if availability is None and "is_booked" in record:
        is_available = not _to_bool(record.get("is_booked"), False)
    else:
        is_available = _to_bool(availability, True)

    return Seat(
        id=to_optional_int(first_present(record, SEAT_ID_ALIASES)),
        name=name,
        row=row,
        column=column,
        is_available=is_available,
        is_authoritative=True,
    )


def normalize_seats(raw_seats: Any) -> List[Seat]:
    """Normalize a manifest, keeping the first record for each seat name"""
    seats = []
    seen = set()
    for raw in _as_list(raw_seats):
        seat = normalize_seat(raw)
        if seat is None or seat.name in seen:
            continue
        seen.add(seat.name)
        seats.append(seat)
    return seats


def _ordered_segments(raw_segments: List[Any]) -> List[FlightSegment]:
    """
    Sequenced segments first, ascending by `sequence`; segments without one
    follow in array order. Array order breaks ties. An unsequenced segment
    is numbered one past the segment before it.
    """
    records = [s for s in raw_segments if isinstance(s, dict)]
    sequences = [to_optional_int(s.get("sequence")) for s in records]
    indexed = sorted(
        zip(sequences, range(len(records)), records),
        key=lambda item: (item[0] is None, item[0] or 0, item[1]),
    )

    segments = []
    last = 0
    for sequence, _, record in indexed:
        if sequence is None:
            sequence = last + 1
        last = max(last, sequence)
        segments.append(FlightSegment(
            sequence=sequence,
            time=_text(first_present(record, SEGMENT_TIME_ALIASES), "") or None,
            airport=normalize_airport(record.get("airport")),
        ))
    return segments


def _resolve(primary: str, placeholder: str, record: Dict[str, Any], aliases: Sequence[str]) -> str:
    """Prefer the segment-derived value, fall back to top-level flight fields"""
    if primary != placeholder:
        return primary
    return _text(first_present(record, aliases), placeholder)


def trip_type(segment_count: int) -> str:
    """"Direct" for one segment (or none known), else "<n-1> Transit" """
    if segment_count <= 1:
        return "Direct"
    return f"{segment_count - 1} Transit"


def normalize_flight(raw: Any) -> Flight:
    """
    Convert a flight record or a whole flight-detail response.

    Derived display fields (origin/destination, clock times, trip type,
    starting price, facilities) are computed here once so that no screen
    re-derives them from raw fields.
    """
    record = unwrap_flight_record(raw)

    segments = _ordered_segments(_as_list(record.get("segments")))
    departure = segments[0] if segments else None
    arrival = segments[-1] if segments else None
    origin = departure.airport if departure else Airport()
    destination = arrival.airport if arrival else Airport()

    fare_classes = [
        normalize_fare_class(c)
        for c in _as_list(first_present(record, FLIGHT_CLASSES_ALIASES))
        if isinstance(c, dict)
    ]

    if fare_classes:
        starting_price = min(c.price for c in fare_classes)
        facilities = normalize_facilities([b for c in fare_classes for b in c.benefits])
    else:
        starting_price = max(to_int(first_present(record, FLIGHT_BASE_PRICE_ALIASES)), 0)
        facilities = normalize_facilities(record.get("facilities"))

    airline = record.get("airline")
    airline_record = _as_dict(airline)
    airline_name = first_present(airline_record, ("name",)) or first_present(record, AIRLINE_NAME_ALIASES)
    if airline_name is None and isinstance(airline, str):
        airline_name = airline
    airline_logo = first_present(airline_record, ("logo",)) or first_present(record, AIRLINE_LOGO_ALIASES)

    departure_time = format_clock(departure.time if departure else None)
    if departure_time == NO_TIME:
        departure_time = format_clock(record.get("departure_time"))
    arrival_time = format_clock(arrival.time if arrival else None)
    if arrival_time == NO_TIME:
        arrival_time = format_clock(record.get("arrival_time"))

    flight = Flight(
        id=_entity_id(first_present(record, FLIGHT_ID_ALIASES)),
        airline_name=_text(airline_name, UNKNOWN),
        airline_logo=_text(airline_logo, "") or None,
        flight_number=_text(first_present(record, FLIGHT_NUMBER_ALIASES), NO_CODE),
        duration=_text(record.get("duration"), NO_CODE),
        segments=segments,
        fare_classes=fare_classes,
        seats=normalize_seats(extract_seat_manifest(raw)),
        origin_code=_resolve(origin.code, NO_CODE, record, ORIGIN_CODE_ALIASES).upper(),
        origin_city=_resolve(origin.city, UNKNOWN, record, ORIGIN_CITY_ALIASES),
        origin_name=_resolve(origin.name, UNKNOWN, record, ORIGIN_NAME_ALIASES),
        destination_code=_resolve(destination.code, NO_CODE, record, DESTINATION_CODE_ALIASES).upper(),
        destination_city=_resolve(destination.city, UNKNOWN, record, DESTINATION_CITY_ALIASES),
        destination_name=_resolve(destination.name, UNKNOWN, record, DESTINATION_NAME_ALIASES),
        departure_time=departure_time,
        arrival_time=arrival_time,
        trip_type=trip_type(len(segments)),
        starting_price=starting_price,
        facilities=facilities,
    )
    logger.debug(
        f"Normalized flight {flight.id}: {flight.origin_code}->{flight.destination_code}, "
        f"{len(fare_classes)} classes, {len(flight.seats)} manifest seats"
    )
    return flight


def normalize_flights(payload: Any) -> List[Flight]:
    """Normalize every flight record in a search response"""
    return [normalize_flight(item) for item in unwrap_flight_list(payload) if isinstance(item, dict)]
