"""
Tax Engine.
"""

from decimal import Decimal
from typing import Tuple

from courier_billing.app.domain.pricing.types import Number, money, to_decimal


class TaxEngine:
    """Flat-rate tax on a subtotal. Rate comes from configuration."""

    def __init__(self, rate: Number):
        self.rate = to_decimal(rate)

    def apply_tax(self, subtotal: Decimal) -> Tuple[Decimal, Decimal]:
        """Return (tax_amount, total), both rounded half-up to cents."""
        subtotal = money(subtotal)
        tax_amount = money(subtotal * self.rate)
        return tax_amount, subtotal + tax_amount
