"""
Shared pricing data types.

Money is always a Decimal quantized to cents with ROUND_HALF_UP,
applied at the point each amount is computed.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Union
from uuid import UUID

from courier_billing.app.core.exceptions import InputValidationError
from courier_billing.app.models.pricing_enums import CustomerType, PriorityLevel, RuleType

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]

# Largest distance (km) or weight (kg) a delivery may be priced for
MAX_MEASURE = Decimal("1000000")
# Largest amount a Numeric(12, 2) money column holds
MAX_AMOUNT = Decimal("9999999999.99")


def to_decimal(value: Number) -> Decimal:
    """Convert without going through binary float repr (1.2 -> Decimal('1.2'))."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def money(value: Number) -> Decimal:
    """Round half-up to two decimal places."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _measure(value: Number, field_name: str) -> Decimal:
    """Finite, non-negative and at most MAX_MEASURE, otherwise InputValidationError."""
    value = to_decimal(value)
    if not value.is_finite() or value < 0 or value > MAX_MEASURE:
        raise InputValidationError(
            f"{field_name} must be a number between 0 and {MAX_MEASURE}", field=field_name
        )
    return value


@dataclass(frozen=True)
class PricingContext:
    """Inputs to one price calculation. Not persisted."""
    customer_type: CustomerType
    priority_level: PriorityLevel
    distance_km: Decimal
    weight_kg: Decimal
    delivery_time: datetime
    customer_id: Optional[UUID] = None

    def __post_init__(self):
        object.__setattr__(self, "distance_km", _measure(self.distance_km, "distance_km"))
        object.__setattr__(self, "weight_kg", _measure(self.weight_kg, "weight_kg"))


@dataclass
class PricingCalculation:
    """
    Result of a price calculation.

    subtotal is the sum of the seven charge components (per_km_rate is a rate,
    not a charge); total is subtotal + tax_amount.
    """
    base_rate: Decimal = ZERO
    per_km_rate: Decimal = ZERO
    distance_charge: Decimal = ZERO
    urgent_surcharge: Decimal = ZERO
    after_hours_surcharge: Decimal = ZERO
    weekend_surcharge: Decimal = ZERO
    weight_surcharge: Decimal = ZERO
    distance_surcharge: Decimal = ZERO
    subtotal: Decimal = ZERO
    tax_rate: Decimal = ZERO
    tax_amount: Decimal = ZERO
    total: Decimal = ZERO
    applied_rule_ids: Dict[RuleType, int] = field(default_factory=dict)

    CHARGE_FIELDS = (
        "base_rate",
        "distance_charge",
        "urgent_surcharge",
        "after_hours_surcharge",
        "weekend_surcharge",
        "weight_surcharge",
        "distance_surcharge",
    )

    def charges_sum(self) -> Decimal:
        return sum((getattr(self, name) for name in self.CHARGE_FIELDS), ZERO)

    def monetary_fields(self) -> Dict[str, Decimal]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "applied_rule_ids"}


@dataclass(frozen=True)
class PricingConfig:
    """Defaults and thresholds the calculator works with."""
    default_base_rate: Decimal = Decimal("15.00")
    default_per_km_rate: Decimal = Decimal("1.20")
    default_urgent_surcharge: Decimal = Decimal("5.00")
    default_after_hours_surcharge: Decimal = Decimal("7.50")
    default_weekend_surcharge: Decimal = Decimal("10.00")
    business_hours_start: int = 8
    business_hours_end: int = 18
    weight_surcharge_threshold_kg: Decimal = Decimal("10.0")
    distance_surcharge_threshold_km: Decimal = Decimal("50.0")
    tax_rate: Decimal = Decimal("0.10")

    @classmethod
    def from_settings(cls, settings) -> "PricingConfig":
        return cls(
            default_base_rate=money(settings.default_base_rate),
            default_per_km_rate=money(settings.default_per_km_rate),
            default_urgent_surcharge=money(settings.default_urgent_surcharge),
            default_after_hours_surcharge=money(settings.default_after_hours_surcharge),
            default_weekend_surcharge=money(settings.default_weekend_surcharge),
            business_hours_start=settings.business_hours_start,
            business_hours_end=settings.business_hours_end,
            weight_surcharge_threshold_kg=to_decimal(settings.weight_surcharge_threshold_kg),
            distance_surcharge_threshold_km=to_decimal(settings.distance_surcharge_threshold_km),
            tax_rate=to_decimal(settings.tax_rate),
        )
