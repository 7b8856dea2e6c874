"""
Pricing for one seller group
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

logger = logging.getLogger(__name__)

# Fixed marketplace rules
FREE_SHIPPING_THRESHOLD = Decimal("50.00")
FLAT_SHIPPING_FEE = Decimal("5.99")
TAX_RATE = Decimal("0.10")

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    shipping_cost: Decimal
    tax: Decimal
    total: Decimal


def calculate_pricing(lines: Iterable) -> PriceBreakdown:
    """
    Price a seller group given its cart lines (``.product``, ``.quantity``).

    Shipping is free strictly above the threshold; tax is a flat rate on the
    subtotal, rounded half-up to the cent.
    """
    subtotal = to_money(sum((line.product.price * line.quantity for line in lines), Decimal("0")))
    shipping_cost = Decimal("0.00") if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING_FEE
    tax = to_money(subtotal * TAX_RATE)
    total = subtotal + shipping_cost + tax

    logger.debug(
        "Priced group - Subtotal: %s, Shipping: %s, Tax: %s, Total: %s",
        subtotal, shipping_cost, tax, total
    )
    return PriceBreakdown(subtotal=subtotal, shipping_cost=shipping_cost, tax=tax, total=total)
