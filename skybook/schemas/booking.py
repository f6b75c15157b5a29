"""
Booking Schemas - user-entered criteria, passengers and derived money
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict
import datetime
from enum import Enum

from skybook.schemas.flight import EntityId


class PaymentMethod(str, Enum):
    """Settlement gateways offered on the payment step"""
    VISA = "visa"
    BANK_TRANSFER = "bank_transfer"
    E_WALLET = "e-wallet"
    QR_CODE = "qr_code"


class SearchFilter(BaseModel):
    """Flight search criteria"""
    origin: str = ""
    destination: str = ""
    date: Optional[datetime.date] = None
    passengers: int = Field(1, ge=1, le=9)


class Passenger(BaseModel):
    """
    Passenger entered on the passenger step.

    `seat` is the seat name chosen on the cabin map; `flight_seat_id` is only
    filled in by reconciliation right before payment.
    """
    seat: str
    name: str = ""
    email: str = ""
    phone: str = ""
    date_of_birth: str = ""
    nationality: str = ""
    flight_seat_id: Optional[int] = None

    class Config:
        coerce_numbers_to_str = True


class PricingSnapshot(BaseModel):
    """Amounts in the smallest currency unit"""
    subtotal: int = 0
    tax: int = 0
    discount: int = 0
    total: int = 0


class PromoResult(BaseModel):
    """Outcome of applying a promo code"""
    success: bool
    message: str
    amount_applied: int = 0


class ValidationResult(BaseModel):
    """Per-passenger, per-field validation errors"""
    is_valid: bool
    errors_by_index: Dict[int, Dict[str, str]] = {}


class TransactionPassenger(BaseModel):
    name: str
    date_of_birth: str
    nationality: str
    flight_seat_id: Optional[int] = None
    seat_number: str


class TransactionRequest(BaseModel):
    """Payload handed to the remote transaction API"""
    flight_id: Optional[EntityId] = None
    flight_class_id: Optional[EntityId] = None
    name: str
    email: str
    phone: str
    promo_code: Optional[str] = None
    passengers: List[TransactionPassenger]
    payment_method: str


class SubmissionResult(BaseModel):
    """Result of a payment submission as shown to the user"""
    success: bool
    message: str
    is_validation_error: bool = False
    response: Optional[dict] = None


class AuthenticatedUser(BaseModel):
    """The only facts the engine needs about the signed-in user"""
    id: EntityId
    role: str = "user"
