"""Canonical schemas"""
from skybook.schemas.flight import (
    Airport,
    FlightSegment,
    FareClass,
    Seat,
    Flight,
    UNKNOWN,
    NO_CODE,
    NO_TIME,
)
from skybook.schemas.booking import (
    PaymentMethod,
    SearchFilter,
    Passenger,
    PricingSnapshot,
    PromoResult,
    ValidationResult,
    TransactionPassenger,
    TransactionRequest,
    SubmissionResult,
    AuthenticatedUser,
)

__all__ = [
    "Airport", "FlightSegment", "FareClass", "Seat", "Flight",
    "UNKNOWN", "NO_CODE", "NO_TIME",
    "PaymentMethod", "SearchFilter", "Passenger", "PricingSnapshot",
    "PromoResult", "ValidationResult", "TransactionPassenger",
    "TransactionRequest", "SubmissionResult", "AuthenticatedUser",
]
