"""
Pricing Engine - subtotal, tax, promo discount and total for the booking
"""
from typing import Optional, Protocol
from decimal import Decimal, ROUND_HALF_UP
import logging

from skybook.config import settings
from skybook.schemas.booking import PricingSnapshot, PromoResult
from skybook.schemas.flight import FareClass

logger = logging.getLogger(__name__)


TAX_RATE = Decimal("0.10")

PROMO_CODE = "SKY2026"
PROMO_DISCOUNT = 50_000  # smallest currency unit


def compute_tax(subtotal: int) -> int:
    """10% surcharge rounded half-up to whole minor units"""
    return int((Decimal(subtotal) * TAX_RATE).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_pricing(
    fare_class: Optional[FareClass],
    seat_count: int,
    discount: int = 0,
    fallback_price: int = 0,
) -> PricingSnapshot:
    """
    Derive the money shown on every step.

    `fallback_price` is used when no class is selected yet (the flight's
    starting price). The discount is capped at subtotal + tax so the total
    never goes below zero; the snapshot reports the amount actually applied.
    """
    unit_price = fare_class.price if fare_class is not None else fallback_price
    subtotal = max(unit_price, 0) * max(seat_count, 0)
    tax = compute_tax(subtotal)
    applied = min(max(discount, 0), subtotal + tax)
    return PricingSnapshot(
        subtotal=subtotal,
        tax=tax,
        discount=applied,
        total=subtotal + tax - applied,
    )


class PromoPolicy(Protocol):
    """Anything that can turn a promo code into a discount"""

    def apply(self, code: str) -> PromoResult:
        ...


class FixedPromoPolicy:
    """
    Single hard-coded promo code, matched case-insensitively.

    Stands in for a backend-verified lookup; swapping it out does not change
    how the session or the pricing engine consume PromoResult.
    """

    def __init__(self, code: str = PROMO_CODE, amount: int = PROMO_DISCOUNT, currency: str = None):
        self.code = code.upper()
        self.amount = amount
        self.currency = currency or settings.CURRENCY

    def apply(self, code: str) -> PromoResult:
        if (code or "").strip().upper() == self.code:
            logger.info(f"Promo {self.code} applied: {self.amount}")
            return PromoResult(
                success=True,
                message=f"Promo applied! You saved {self.currency} {self.amount:,}",
                amount_applied=self.amount,
            )
        logger.info(f"Promo code rejected: {code!r}")
        return PromoResult(success=False, message="Invalid or expired promo code.", amount_applied=0)


default_promo_policy = FixedPromoPolicy()


def apply_promo_code(code: str) -> PromoResult:
    """Apply `code` with the default policy"""
    return default_promo_policy.apply(code)
