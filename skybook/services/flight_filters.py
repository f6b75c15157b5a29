"""
Flight Filters - narrowing and ordering the flight list
"""
from typing import Iterable, List, Sequence
import re

from skybook.schemas.flight import Flight

DURATION_PATTERN = re.compile(r"(\d+)h\s*(\d+)m")

SORT_PRICE_LOW = "price_low"
SORT_DURATION_FAST = "duration_fast"
SORT_OPTIONS = (SORT_PRICE_LOW, SORT_DURATION_FAST)


def parse_duration_minutes(duration: str) -> int:
    """"2h 30m" -> 150; anything else -> 0"""
    match = DURATION_PATTERN.search(duration or "")
    if not match:
        return 0
    return int(match.group(1)) * 60 + int(match.group(2))


def filter_flights(
    flights: Iterable[Flight],
    trip_types: Sequence[str] = (),
    airlines: Sequence[str] = (),
    facilities: Sequence[str] = (),
) -> List[Flight]:
    """
    Keep flights matching every non-empty criterion.

    A flight passes the facility filter only if it offers all of the
    requested facilities.
    """
    result = list(flights)
    if trip_types:
        result = [f for f in result if f.trip_type in trip_types]
    if airlines:
        result = [f for f in result if f.airline_name in airlines]
    if facilities:
        wanted = set(facilities)
        result = [f for f in result if wanted <= f.facility_set]
    return result


def sort_flights(flights: Iterable[Flight], sort_by: str = SORT_PRICE_LOW) -> List[Flight]:
    if sort_by == SORT_PRICE_LOW:
        return sorted(flights, key=lambda f: f.starting_price)
    if sort_by == SORT_DURATION_FAST:
        return sorted(flights, key=lambda f: parse_duration_minutes(f.duration))
    raise ValueError(f"Unknown sort option: {sort_by!r} (expected one of {', '.join(SORT_OPTIONS)})")


def available_amenities(flights: Iterable[Flight]) -> List[str]:
    """Sorted union of every facility on offer"""
    return sorted({name for flight in flights for name in flight.facilities})


def available_airlines(flights: Iterable[Flight]) -> List[str]:
    """Distinct airline names in first-seen order"""
    seen = []
    for flight in flights:
        if flight.airline_name not in seen:
            seen.append(flight.airline_name)
    return seen
