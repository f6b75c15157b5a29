"""
Flight Schemas - canonical, alias-free entities produced by the normalizer
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Union, FrozenSet


# Placeholders for fields the normalizer could not resolve
UNKNOWN = "Unknown"
NO_CODE = "---"
NO_TIME = "--:--"

EntityId = Union[int, str]


class Airport(BaseModel):
    """Airport reference data"""
    id: Optional[EntityId] = None
    name: str = UNKNOWN
    city: str = UNKNOWN
    code: str = NO_CODE

    class Config:
        frozen = True


class FlightSegment(BaseModel):
    """A single leg of a flight, ordered by sequence"""
    sequence: int
    time: Optional[str] = None
    airport: Airport = Field(default_factory=Airport)

    class Config:
        frozen = True


class FareClass(BaseModel):
    """A purchasable cabin class on a flight"""
    id: Optional[EntityId] = None
    type: str = UNKNOWN
    price: int = 0  # smallest currency unit
    total_seats: Optional[int] = None
    benefits: List[str] = []

    class Config:
        frozen = True


class Seat(BaseModel):
    """
    A seat on the cabin map.

    Authoritative seats come from the backend manifest and usually carry an id;
    synthetic seats fill out a class's declared capacity and never do.
    """
    id: Optional[int] = None
    name: str
    row: int
    column: int
    is_available: bool = True
    is_authoritative: bool = False

    class Config:
        frozen = True


class Flight(BaseModel):
    """A complete flight with display fields derived once at normalization"""
    id: Optional[EntityId] = None
    airline_name: str = UNKNOWN
    airline_logo: Optional[str] = None
    flight_number: str = NO_CODE
    duration: str = NO_CODE

    segments: List[FlightSegment] = []
    fare_classes: List[FareClass] = []
    seats: List[Seat] = []  # authoritative manifest, possibly empty

    # Derived display fields
    origin_code: str = NO_CODE
    origin_city: str = UNKNOWN
    origin_name: str = UNKNOWN
    destination_code: str = NO_CODE
    destination_city: str = UNKNOWN
    destination_name: str = UNKNOWN
    departure_time: str = NO_TIME
    arrival_time: str = NO_TIME
    trip_type: str = "Direct"
    starting_price: int = 0
    facilities: List[str] = []

    class Config:
        frozen = True

    @property
    def facility_set(self) -> FrozenSet[str]:
        """Facilities for membership tests; `facilities` keeps display order"""
        return frozenset(self.facilities)

    @property
    def stops(self) -> int:
        return max(len(self.segments) - 1, 0)

    @property
    def booked_seat_names(self) -> FrozenSet[str]:
        """Names the manifest reports as taken"""
        return frozenset(s.name for s in self.seats if not s.is_available)

    def get_fare_class(self, class_id: EntityId) -> Optional[FareClass]:
        """Look up one of this flight's classes by id"""
        for fare_class in self.fare_classes:
            if fare_class.id is not None and str(fare_class.id) == str(class_id):
                return fare_class
        return None
