"""
Seat Reconciler - maps chosen seat labels back to backend seat ids
"""
from typing import Dict, Iterable, List, Sequence
import logging

from skybook.schemas.booking import Passenger
from skybook.schemas.flight import Seat
from skybook.services.normalizer import normalize_seat_name

logger = logging.getLogger(__name__)


def reconcile(passengers: Sequence[Passenger], authoritative_seats: Iterable[Seat]) -> List[Passenger]:
    """
    Return copies of `passengers` with `flight_seat_id` resolved.

    Labels are compared trimmed and case-insensitively. A passenger whose
    seat has no manifest record (or a record without an id) gets a null id
    and the booking goes ahead with the seat name only; each miss is logged
    so manifest drift is visible. Never raises on missing data.
    """
    lookup: Dict[str, Seat] = {}
    for seat in authoritative_seats or ():
        key = normalize_seat_name(seat.name)
        if key and key not in lookup:
            lookup[key] = seat

    enriched = []
    misses = 0
    for index, passenger in enumerate(passengers):
        label = normalize_seat_name(passenger.seat)
        seat = lookup.get(label)
        seat_id = seat.id if seat is not None else None
        if seat_id is None:
            misses += 1
            logger.warning(
                f"Seat reconciliation miss: passenger #{index + 1} seat '{label}' has no backend id "
                f"(manifest has {len(lookup)} seats); submitting with null seat id"
            )
        enriched.append(passenger.model_copy(update={"flight_seat_id": seat_id}))

    if passengers:
        logger.info(f"Reconciled {len(passengers) - misses}/{len(passengers)} seats against the manifest")
    return enriched
