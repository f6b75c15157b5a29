"""
Passenger Validator - per-field checks collected for every passenger at once
"""
from typing import Dict, Sequence
import re

from skybook.schemas.booking import Passenger, ValidationResult

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PHONE_LENGTH = 8


def validate_passenger(passenger: Passenger) -> Dict[str, str]:
    """Return {field: message} for every invalid field"""
    errors = {}
    if not passenger.name.strip():
        errors["name"] = "Full name is required"
    if not EMAIL_PATTERN.match(passenger.email.strip()):
        errors["email"] = "Valid email is required"
    if len(passenger.phone.strip()) < MIN_PHONE_LENGTH:
        errors["phone"] = "Valid phone number is required"
    if not passenger.date_of_birth.strip():
        errors["date_of_birth"] = "Date of birth is required"
    return errors


def validate_passengers(passengers: Sequence[Passenger]) -> ValidationResult:
    """Validate all passengers; indices without errors are omitted"""
    errors_by_index = {}
    for index, passenger in enumerate(passengers):
        errors = validate_passenger(passenger)
        if errors:
            errors_by_index[index] = errors
    return ValidationResult(is_valid=not errors_by_index, errors_by_index=errors_by_index)
