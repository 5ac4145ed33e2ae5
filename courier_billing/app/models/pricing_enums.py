"""
Pricing enumerations.
"""

import enum


class RuleType(str, enum.Enum):
    """Which charge component a pricing rule prices."""
    BASE_RATE = "BASE_RATE"
    PER_KM_RATE = "PER_KM_RATE"
    URGENT_SURCHARGE = "URGENT_SURCHARGE"
    AFTER_HOURS_SURCHARGE = "AFTER_HOURS_SURCHARGE"
    WEEKEND_SURCHARGE = "WEEKEND_SURCHARGE"
    WEIGHT_SURCHARGE = "WEIGHT_SURCHARGE"
    DISTANCE_SURCHARGE = "DISTANCE_SURCHARGE"
    CUSTOM = "CUSTOM"


class RuleUnit(str, enum.Enum):
    """How a rule value is applied."""
    FLAT = "FLAT"  # Added as-is
    PER_KM = "PER_KM"  # Multiplied by delivery distance
    PER_KG = "PER_KG"  # Multiplied by parcel weight


class CustomerType(str, enum.Enum):
    """Customer type enumeration."""
    INDIVIDUAL = "INDIVIDUAL"
    BUSINESS = "BUSINESS"
    MEDICAL_FACILITY = "MEDICAL_FACILITY"


class PriorityLevel(str, enum.Enum):
    """Delivery priority enumeration."""
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


# Rule types whose distance / weight bounds take part in matching
DISTANCE_SCOPED_TYPES = frozenset({RuleType.PER_KM_RATE, RuleType.DISTANCE_SURCHARGE})
WEIGHT_SCOPED_TYPES = frozenset({RuleType.WEIGHT_SURCHARGE})

WEEKDAY_NAMES = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY")
DAY_OF_WEEK_GROUPS = {
    "WEEKDAY": frozenset(WEEKDAY_NAMES[:5]),
    "WEEKEND": frozenset(WEEKDAY_NAMES[5:]),
}
