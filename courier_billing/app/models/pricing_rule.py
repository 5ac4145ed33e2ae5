"""
Pricing Rule database model.

Defines scoped rates and surcharges used by the pricing engine.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, Time, Boolean, Enum, Uuid
from sqlalchemy.sql import func
from courier_billing.app.db.session import Base
from courier_billing.app.models.pricing_enums import RuleType, RuleUnit, CustomerType, PriorityLevel


class PricingRule(Base):
    """
    Pricing Rule model.

    Every scope column is optional; NULL acts as a wildcard.
    Several rules may apply to one delivery, the selector picks the most specific.
    Rules are written by administrators only; the pricing engine reads them.
    """
    __tablename__ = "pricing_rules"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Rule details
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    rule_type = Column(Enum(RuleType), nullable=False, index=True)
    value = Column(Numeric(12, 2), nullable=False)
    unit = Column(Enum(RuleUnit), default=RuleUnit.FLAT, nullable=False)

    # Scope (NULL = any)
    customer_id = Column(Uuid, nullable=True, index=True)
    customer_type = Column(Enum(CustomerType), nullable=True)
    priority_level = Column(Enum(PriorityLevel), nullable=True)
    min_distance_km = Column(Numeric(10, 2), nullable=True)
    max_distance_km = Column(Numeric(10, 2), nullable=True)
    min_weight_kg = Column(Numeric(10, 2), nullable=True)
    max_weight_kg = Column(Numeric(10, 2), nullable=True)
    time_of_day_start = Column(Time, nullable=True)
    time_of_day_end = Column(Time, nullable=True)
    day_of_week = Column(String(10), nullable=True)  # MONDAY..SUNDAY, WEEKDAY, WEEKEND

    # Lifecycle
    active = Column(Boolean, default=True, nullable=False, index=True)
    valid_from = Column(Date, nullable=True)
    valid_until = Column(Date, nullable=True)

    # Audit
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<PricingRule(id={self.id}, name='{self.name}', type={self.rule_type}, value={self.value})>"
