"""
Booking Session - the wizard's single source of truth and its step machine.

One BookingSession is owned per booking (one per browser tab) and handed
to every step handler. State only changes through the named setters below;
each setter re-checks the step guards so a step can never be entered
without its prerequisites:

    IDLE -> SEARCHING -> FLIGHT_LISTED -> FLIGHT_SELECTED -> CLASS_SELECTED
         -> SEATS_SELECTED -> PASSENGERS_ENTERED -> PAYMENT_PENDING
         -> COMPLETED | FAILED

Guard violations are not errors: the session moves to the nearest earlier
step whose prerequisites hold and logs the redirect. Exceptions are reserved
for misuse the UI should never allow (booking a taken seat, an unsupported
payment method, building a transaction before passengers are complete).
"""
from typing import Dict, List, Optional, Sequence, Tuple
from enum import Enum, IntEnum
import logging

from skybook.config import settings
from skybook.schemas.booking import (
    Passenger,
    PaymentMethod,
    PricingSnapshot,
    PromoResult,
    SearchFilter,
    TransactionPassenger,
    TransactionRequest,
    ValidationResult,
)
from skybook.schemas.flight import Airport, EntityId, FareClass, Flight, Seat
from skybook.services.normalizer import normalize_seat_name
from skybook.services.passenger_validator import validate_passengers
from skybook.services.pricing import PromoPolicy, compute_pricing, default_promo_policy
from skybook.services.seat_inventory import synthesize_seats
from skybook.services.seat_reconciler import reconcile

logger = logging.getLogger(__name__)


GUEST_NAME = "Guest User"
GUEST_EMAIL = "guest@example.com"
GUEST_PHONE = "0000000000"

EDITABLE_PASSENGER_FIELDS = ("name", "email", "phone", "date_of_birth", "nationality")


class BookingStep(IntEnum):
    """Wizard steps in forward order; FAILED hangs off PAYMENT_PENDING"""
    IDLE = 0
    SEARCHING = 1
    FLIGHT_LISTED = 2
    FLIGHT_SELECTED = 3
    CLASS_SELECTED = 4
    SEATS_SELECTED = 5
    PASSENGERS_ENTERED = 6
    PAYMENT_PENDING = 7
    COMPLETED = 8
    FAILED = 9


class WizardScreen(str, Enum):
    """The screen a user sees for each step"""
    SEARCH = "search"
    FLIGHT_LIST = "flight_list"
    CLASS_SELECTION = "class_selection"
    SEAT_SELECTION = "seat_selection"
    PASSENGER_ENTRY = "passenger_entry"
    PAYMENT = "payment"
    CONFIRMATION = "confirmation"


SCREENS: Dict[BookingStep, WizardScreen] = {
    BookingStep.IDLE: WizardScreen.SEARCH,
    BookingStep.SEARCHING: WizardScreen.SEARCH,
    BookingStep.FLIGHT_LISTED: WizardScreen.FLIGHT_LIST,
    BookingStep.FLIGHT_SELECTED: WizardScreen.CLASS_SELECTION,
    BookingStep.CLASS_SELECTED: WizardScreen.SEAT_SELECTION,
    BookingStep.SEATS_SELECTED: WizardScreen.PASSENGER_ENTRY,
    BookingStep.PASSENGERS_ENTERED: WizardScreen.PASSENGER_ENTRY,
    BookingStep.PAYMENT_PENDING: WizardScreen.PAYMENT,
    BookingStep.FAILED: WizardScreen.PAYMENT,
    BookingStep.COMPLETED: WizardScreen.CONFIRMATION,
}


# ==================
# ERRORS
# ==================

class BookingError(Exception):
    """Base exception for misuse of a booking session"""
    pass


class SeatUnavailableError(BookingError):
    """Raised when a seat is not on the cabin map or is already taken"""

    def __init__(self, seat_name: str, reason: str):
        self.seat_name = seat_name
        self.reason = reason
        super().__init__(f"Seat {seat_name} {reason}")


class InvalidPaymentMethodError(BookingError):
    """Raised for payment methods outside PaymentMethod"""

    def __init__(self, payment_method: str):
        self.payment_method = payment_method
        super().__init__(f"Unsupported payment method: {payment_method!r}")


class BookingNotReadyError(BookingError):
    """Raised when a transaction is requested before the payment step is reachable"""

    def __init__(self, step: BookingStep):
        self.step = step
        super().__init__(f"Booking is not ready for payment (stopped at {step.name})")


# ==================
# SESSION
# ==================

class BookingSession:
    """
    Explicitly owned booking aggregate.

    Read state through the properties; change it through the setters. The
    seat grid and pricing snapshot are derived on demand from the current
    selection, so they can never disagree with it.
    """

    def __init__(self, promo_policy: PromoPolicy = None):
        self.promo_policy = promo_policy or default_promo_policy
        self._airports: List[Airport] = []
        self.confirmation: Optional[dict] = None
        self._reset()

    def _reset(self) -> None:
        self._step = BookingStep.IDLE
        self._search_filter = SearchFilter()
        self._flights: Optional[List[Flight]] = None
        self._flight: Optional[Flight] = None
        self._fare_class: Optional[FareClass] = None
        self._selected_seats: List[str] = []
        self._passengers: List[Passenger] = []
        self._discount = 0
        self._promo_code: Optional[str] = None
        self.last_error: Optional[str] = None

    # ------------------
    # Read-only state
    # ------------------

    @property
    def step(self) -> BookingStep:
        return self._step

    @property
    def screen(self) -> WizardScreen:
        return SCREENS[self._step]

    @property
    def search_filter(self) -> SearchFilter:
        return self._search_filter

    @property
    def airports(self) -> List[Airport]:
        return list(self._airports)

    @property
    def flights(self) -> List[Flight]:
        return list(self._flights or [])

    @property
    def flight(self) -> Optional[Flight]:
        return self._flight

    @property
    def fare_class(self) -> Optional[FareClass]:
        return self._fare_class

    @property
    def selected_seats(self) -> Tuple[str, ...]:
        """Selected seat names in selection order"""
        return tuple(self._selected_seats)

    @property
    def passengers(self) -> Tuple[Passenger, ...]:
        return tuple(self._passengers)

    @property
    def discount(self) -> int:
        return self._discount

    @property
    def promo_code(self) -> Optional[str]:
        return self._promo_code

    @property
    def seat_grid(self) -> List[Seat]:
        """Cabin map for the selected class, empty until a class is chosen"""
        if self._flight is None or self._fare_class is None:
            return []
        return synthesize_seats(self._fare_class, self._flight.seats, self._flight.booked_seat_names)

    @property
    def pricing(self) -> PricingSnapshot:
        fallback = self._flight.starting_price if self._flight is not None else 0
        return compute_pricing(self._fare_class, len(self._selected_seats), self._discount, fallback)

    # ------------------
    # Step guards
    # ------------------

    def _is_satisfied(self, step: BookingStep) -> bool:
        """Whether the data needed to stand on `step` is in place"""
        if step <= BookingStep.SEARCHING:
            return True
        if step == BookingStep.FLIGHT_LISTED:
            return self._flights is not None
        if self._flight is None:
            return False
        if step == BookingStep.FLIGHT_SELECTED:
            return True
        if self._fare_class is None or self._flight.get_fare_class(self._fare_class.id) is None:
            return False
        if step == BookingStep.CLASS_SELECTED:
            return True
        if not self._selected_seats:
            return False
        if step in (BookingStep.SEATS_SELECTED, BookingStep.PASSENGERS_ENTERED):
            return True
        if len(self._passengers) != len(self._selected_seats):
            return False
        return validate_passengers(self._passengers).is_valid

    def _sync_passengers(self) -> None:
        """Keep exactly one passenger per selected seat"""
        if len(self._passengers) != len(self._selected_seats):
            if self._passengers:
                logger.info(
                    f"Regenerating passengers: {len(self._passengers)} cached for "
                    f"{len(self._selected_seats)} seats"
                )
            self._passengers = [
                Passenger(seat=seat, nationality=settings.DEFAULT_NATIONALITY)
                for seat in self._selected_seats
            ]
            return
        self._passengers = [
            passenger if passenger.seat == seat else passenger.model_copy(update={"seat": seat})
            for passenger, seat in zip(self._passengers, self._selected_seats)
        ]

    def navigate(self, target: BookingStep) -> BookingStep:
        """
        Move to `target`, or to the nearest earlier step whose guard holds.

        COMPLETED and FAILED are never entered this way; they belong to
        complete() and fail(). Returns the step actually entered.
        """
        target = BookingStep(target)
        ceiling = min(target, BookingStep.PAYMENT_PENDING)

        if ceiling >= BookingStep.PASSENGERS_ENTERED and self._is_satisfied(BookingStep.SEATS_SELECTED):
            self._sync_passengers()

        resolved = next(
            step for step in range(ceiling, BookingStep.IDLE - 1, -1)
            if self._is_satisfied(BookingStep(step))
        )
        resolved = BookingStep(resolved)
        if resolved != target:
            logger.info(f"Redirected from {target.name} to {resolved.name}: prerequisites missing")
        self._step = resolved
        return resolved

    # ------------------
    # Search
    # ------------------

    def set_search_filter(self, search_filter: SearchFilter = None, **criteria) -> SearchFilter:
        """Start a new search; any earlier flight selection is dropped"""
        if search_filter is None:
            search_filter = SearchFilter(**{**self._search_filter.model_dump(), **criteria})
        self._search_filter = search_filter
        self._flights = None
        self._clear_flight()
        self._step = BookingStep.SEARCHING
        return search_filter

    def set_airports(self, airports: Sequence[Airport]) -> None:
        """Cache airport reference data; survives session resets"""
        self._airports = list(airports)

    def set_flights(self, flights: Sequence[Flight]) -> BookingStep:
        self._flights = list(flights)
        self._step = BookingStep.FLIGHT_LISTED
        logger.info(f"{len(self._flights)} flights listed")
        return self._step

    # ------------------
    # Flight and class
    # ------------------

    def _clear_flight(self) -> None:
        self._flight = None
        self._fare_class = None
        self._selected_seats = []
        self._passengers = []

    def select_flight(self, flight: Flight) -> BookingStep:
        """
        Choose a flight. Re-selecting the current flight with fresher detail
        keeps the class (refreshed by id) and whichever seats are still free.
        """
        same_flight = (
            self._flight is not None
            and flight.id is not None
            and str(self._flight.id) == str(flight.id)
        )
        if not same_flight:
            self._clear_flight()
            self._flight = flight
            logger.info(f"Selected flight {flight.id} ({flight.airline_name} {flight.flight_number})")
            return self.navigate(BookingStep.FLIGHT_SELECTED)

        self._flight = flight
        if self._fare_class is not None:
            refreshed = flight.get_fare_class(self._fare_class.id)
            if refreshed is None:
                logger.info(f"Class {self._fare_class.id} no longer offered on flight {flight.id}")
                self._fare_class = None
                self._selected_seats = []
                self._passengers = []
            else:
                self._fare_class = refreshed
                self._drop_unavailable_seats()
        return self.navigate(BookingStep.FLIGHT_SELECTED)

    def _drop_unavailable_seats(self) -> None:
        free = {seat.name for seat in self.seat_grid if seat.is_available}
        kept = [name for name in self._selected_seats if name in free]
        if len(kept) != len(self._selected_seats):
            dropped = [name for name in self._selected_seats if name not in free]
            logger.info(f"Dropped seats no longer available: {', '.join(dropped)}")
            self._selected_seats = kept

    def select_fare_class(self, class_id: EntityId) -> BookingStep:
        """
        Choose a class of the selected flight and open its seat map.

        Switching to a different class clears the seat selection and the
        passengers. An id that is not one of the flight's classes leaves the
        selection as it is and redirects to class selection.
        """
        if self._flight is None:
            return self.navigate(BookingStep.CLASS_SELECTED)

        fare_class = self._flight.get_fare_class(class_id)
        if fare_class is None:
            logger.info(f"Class {class_id} is not offered on flight {self._flight.id}")
            return self.navigate(BookingStep.FLIGHT_SELECTED)

        if self._fare_class is None or str(self._fare_class.id) != str(fare_class.id):
            if self._selected_seats or self._passengers:
                logger.info(f"Class changed to {fare_class.type}; clearing seats and passengers")
            self._selected_seats = []
            self._passengers = []
        self._fare_class = fare_class
        return self.navigate(BookingStep.CLASS_SELECTED)

    # ------------------
    # Seats
    # ------------------

    def _checked_seat(self, name: str, grid: Dict[str, Seat]) -> str:
        seat_name = normalize_seat_name(name)
        seat = grid.get(seat_name)
        if seat is None:
            raise SeatUnavailableError(seat_name, "is not on the cabin map")
        if not seat.is_available:
            raise SeatUnavailableError(seat_name, "is already booked")
        return seat_name

    def toggle_seat(self, name: str) -> Tuple[str, ...]:
        """Select a free seat, or deselect it if already selected"""
        if self.navigate(BookingStep.CLASS_SELECTED) != BookingStep.CLASS_SELECTED:
            return self.selected_seats

        seat_name = normalize_seat_name(name)
        if seat_name in self._selected_seats:
            self._selected_seats.remove(seat_name)
        else:
            grid = {seat.name: seat for seat in self.seat_grid}
            self._selected_seats.append(self._checked_seat(seat_name, grid))
        return self.selected_seats

    def select_seats(self, names: Sequence[str]) -> Tuple[str, ...]:
        """Replace the whole selection; repeated names are kept once"""
        if self.navigate(BookingStep.CLASS_SELECTED) != BookingStep.CLASS_SELECTED:
            return self.selected_seats

        grid = {seat.name: seat for seat in self.seat_grid}
        chosen: List[str] = []
        for name in names:
            seat_name = self._checked_seat(name, grid)
            if seat_name not in chosen:
                chosen.append(seat_name)
        self._selected_seats = chosen
        return self.selected_seats

    def confirm_seats(self) -> BookingStep:
        return self.navigate(BookingStep.SEATS_SELECTED)

    # ------------------
    # Passengers
    # ------------------

    def enter_passengers(self) -> BookingStep:
        """Open passenger entry with one slot per selected seat"""
        return self.navigate(BookingStep.PASSENGERS_ENTERED)

    def update_passenger(self, index: int, **fields) -> Passenger:
        unknown = set(fields) - set(EDITABLE_PASSENGER_FIELDS)
        if unknown:
            raise TypeError(f"Cannot update passenger fields: {', '.join(sorted(unknown))}")
        if self.navigate(BookingStep.PASSENGERS_ENTERED) != BookingStep.PASSENGERS_ENTERED:
            raise BookingNotReadyError(self._step)

        passenger = Passenger.model_validate({**self._passengers[index].model_dump(), **fields})
        self._passengers[index] = passenger
        return passenger

    def submit_passengers(self) -> ValidationResult:
        """Validate every passenger and advance to payment when all pass"""
        if self.navigate(BookingStep.PASSENGERS_ENTERED) != BookingStep.PASSENGERS_ENTERED:
            return ValidationResult(is_valid=False, errors_by_index={})

        result = validate_passengers(self._passengers)
        if result.is_valid:
            self.navigate(BookingStep.PAYMENT_PENDING)
        else:
            logger.info(f"Passenger validation failed for {len(result.errors_by_index)} passenger(s)")
        return result

    # ------------------
    # Payment
    # ------------------

    def apply_promo_code(self, code: str) -> PromoResult:
        result = self.promo_policy.apply(code)
        if result.success:
            self._discount = result.amount_applied
            self._promo_code = code.strip().upper()
        else:
            self._discount = 0
            self._promo_code = None
        return result

    def build_transaction(self, payment_method: str) -> TransactionRequest:
        """
        Assemble the transaction payload for the remote API.

        Seat ids are reconciled against the flight's manifest here and only
        here; the lead contact is the first passenger.
        """
        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            raise InvalidPaymentMethodError(payment_method)

        if self.navigate(BookingStep.PAYMENT_PENDING) != BookingStep.PAYMENT_PENDING:
            raise BookingNotReadyError(self._step)

        enriched = reconcile(self._passengers, self._flight.seats)
        lead = enriched[0]
        pricing = self.pricing

        return TransactionRequest(
            flight_id=self._flight.id,
            flight_class_id=self._fare_class.id,
            name=lead.name.strip() or GUEST_NAME,
            email=lead.email.strip() or GUEST_EMAIL,
            phone=lead.phone.strip() or GUEST_PHONE,
            promo_code=self._promo_code if pricing.discount > 0 else None,
            passengers=[
                TransactionPassenger(
                    name=p.name.strip(),
                    date_of_birth=p.date_of_birth.strip(),
                    nationality=p.nationality.strip() or settings.DEFAULT_NATIONALITY,
                    flight_seat_id=p.flight_seat_id,
                    seat_number=p.seat,
                )
                for p in enriched
            ],
            payment_method=method.value,
        )

    def complete(self, confirmation: dict = None) -> BookingStep:
        """Record a successful payment and clear the booking"""
        if self._step != BookingStep.PAYMENT_PENDING:
            logger.info(f"Ignoring payment confirmation outside payment step ({self._step.name})")
            return self._step
        logger.info(f"Booking completed for flight {self._flight.id if self._flight else None}")
        self._reset()
        self.confirmation = confirmation
        self._step = BookingStep.COMPLETED
        return self._step

    def fail(self, message: str) -> BookingStep:
        """Mark the pending payment as failed; booking data is kept for a retry"""
        if self._step != BookingStep.PAYMENT_PENDING:
            logger.info(f"Ignoring payment failure outside payment step ({self._step.name})")
            return self._step
        logger.warning(f"Payment failed: {message}")
        self.last_error = message
        self._step = BookingStep.FAILED
        return self._step

    def retry_payment(self) -> BookingStep:
        self.last_error = None
        return self.navigate(BookingStep.PAYMENT_PENDING)

    def cancel(self) -> BookingStep:
        logger.info("Booking cancelled")
        self._reset()
        self.confirmation = None
        return self._step
