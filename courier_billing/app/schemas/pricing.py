"""
Pricing schemas.

Request and response models for price quotes and pricing rule management.
Range checks on numbers (negative distance, inverted bounds) are done by the
pricing service so they surface as ERR_VALIDATION_002.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Dict, Optional
from uuid import UUID
from courier_billing.app.models.pricing_enums import CustomerType, PriorityLevel, RuleType, RuleUnit


class PricingCalculateRequest(BaseModel):
    """Inputs for a price quote. Omitted fields take server-side defaults."""
    customer_id: Optional[UUID] = None
    customer_type: Optional[CustomerType] = Field(None, description="Defaults to INDIVIDUAL")
    priority_level: Optional[PriorityLevel] = Field(None, description="Defaults to NORMAL")
    distance_km: Decimal = Field(..., description="Delivery distance in kilometres")
    weight_kg: Optional[Decimal] = Field(None, description="Defaults to 1.0")
    delivery_time: Optional[datetime] = Field(None, description="Defaults to now")


class PricingCalculationResponse(BaseModel):
    """Itemised price. subtotal excludes per_km_rate, which is a rate."""
    base_rate: Decimal
    per_km_rate: Decimal
    distance_charge: Decimal
    urgent_surcharge: Decimal
    after_hours_surcharge: Decimal
    weekend_surcharge: Decimal
    weight_surcharge: Decimal
    distance_surcharge: Decimal
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    applied_rule_ids: Dict[RuleType, int] = Field(default_factory=dict)

    class Config:
        from_attributes = True


class PricingRuleBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    rule_type: RuleType
    value: Decimal
    unit: RuleUnit = RuleUnit.FLAT

    customer_id: Optional[UUID] = None
    customer_type: Optional[CustomerType] = None
    priority_level: Optional[PriorityLevel] = None
    min_distance_km: Optional[Decimal] = None
    max_distance_km: Optional[Decimal] = None
    min_weight_kg: Optional[Decimal] = None
    max_weight_kg: Optional[Decimal] = None
    time_of_day_start: Optional[time] = None
    time_of_day_end: Optional[time] = None
    day_of_week: Optional[str] = Field(None, max_length=10, description="MONDAY..SUNDAY, WEEKDAY or WEEKEND")

    valid_from: Optional[date] = None
    valid_until: Optional[date] = None


class PricingRuleCreate(PricingRuleBase):
    """Schema for creating a pricing rule."""
    active: bool = True


class PricingRuleUpdate(PricingRuleBase):
    """Full replacement of a rule. Omitted scope fields become wildcards."""
    active: Optional[bool] = None


class PricingRuleResponse(PricingRuleBase):
    """Schema for displaying a pricing rule."""
    id: int
    active: bool
    created_by: Optional[int]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
