"""
Seat Inventory Synthesizer - builds the cabin grid for a fare class
"""
from typing import Iterable, List, Optional
import logging
import math

from skybook.schemas.flight import FareClass, Seat
from skybook.services.normalizer import column_letter, normalize_seat_name

logger = logging.getLogger(__name__)


BUSINESS_COLUMNS = 4  # narrow business cabin, 2-2
ECONOMY_COLUMNS = 6  # wide economy cabin, 3-3
DEFAULT_CAPACITY = 54  # 9 rows x 6 columns
MAX_CAPACITY = 900  # larger upstream capacities are clamped


def is_business_class(fare_class_type: Optional[str]) -> bool:
    """
    Cabin tier heuristic: a class is business when its free-text type
    mentions "business". This is the only place the substring match lives;
    replace it with an explicit tier field once upstream provides one.
    """
    return "business" in (fare_class_type or "").lower()


def column_count(fare_class: FareClass) -> int:
    return BUSINESS_COLUMNS if is_business_class(fare_class.type) else ECONOMY_COLUMNS


def aisle_after(columns: int) -> int:
    """Number of seats left of the aisle in a row"""
    return 2 if columns == BUSINESS_COLUMNS else 3


def synthesize_seats(
    fare_class: FareClass,
    authoritative_seats: Iterable[Seat] = (),
    booked_seat_names: Iterable[str] = (),
) -> List[Seat]:
    """
    Generate the seat grid for `fare_class`.

    The grid has ceil(capacity / columns) full rows, named "{row}{letter}" and
    returned row-major (row ascending, then column ascending). A generated
    seat copies id and availability from the authoritative record with the
    same name; without one it is synthetic and available. Any name listed in
    `booked_seat_names` is unavailable no matter what the manifest says.
    Capacity is clamped to MAX_CAPACITY.
    """
    columns = column_count(fare_class)
    capacity = fare_class.total_seats or DEFAULT_CAPACITY
    if capacity > MAX_CAPACITY:
        logger.warning(
            f"Capacity {capacity} for {fare_class.type} exceeds {MAX_CAPACITY}; clamping the seat grid"
        )
        capacity = MAX_CAPACITY
    rows = math.ceil(capacity / columns)

    by_name = {}
    for seat in authoritative_seats or ():
        by_name.setdefault(normalize_seat_name(seat.name), seat)
    booked = {normalize_seat_name(name) for name in booked_seat_names or ()}

    grid = []
    for row in range(1, rows + 1):
        for column in range(1, columns + 1):
            name = f"{row}{column_letter(column)}"
            record = by_name.get(name)
            is_available = record.is_available if record is not None else True
            if name in booked:
                is_available = False
            grid.append(Seat(
                id=record.id if record is not None else None,
                name=name,
                row=row,
                column=column,
                is_available=is_available,
                is_authoritative=record is not None,
            ))

    matched = sum(1 for seat in grid if seat.is_authoritative)
    logger.debug(
        f"Synthesized {len(grid)} seats ({rows}x{columns}) for {fare_class.type}, "
        f"{matched} backed by the manifest"
    )
    return grid


def seat_rows(seats: List[Seat]) -> List[List[Seat]]:
    """Group a row-major grid into rows for rendering"""
    rows: List[List[Seat]] = []
    for seat in seats:
        if not rows or rows[-1][0].row != seat.row:
            rows.append([])
        rows[-1].append(seat)
    return rows
