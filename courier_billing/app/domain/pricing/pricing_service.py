"""
Pricing Service (Domain Logic).

Entry point for price calculation and pricing rule administration.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from courier_billing.app.core.config import settings
from courier_billing.app.core.exceptions import InputValidationError, ResourceNotFoundError
from courier_billing.app.domain.pricing.charge_calculator import ChargeCalculator
from courier_billing.app.domain.pricing.pricing_resolver import PricingResolver
from courier_billing.app.domain.pricing.rule_store import SqlAlchemyRuleStore
from courier_billing.app.domain.pricing.types import (
    MAX_AMOUNT,
    Number,
    PricingCalculation,
    PricingConfig,
    PricingContext,
    to_decimal,
)
from courier_billing.app.models.pricing_enums import (
    DAY_OF_WEEK_GROUPS,
    WEEKDAY_NAMES,
    CustomerType,
    PriorityLevel,
    RuleType,
)
from courier_billing.app.models.pricing_rule import PricingRule
from courier_billing.app.services.audit import AuditAction, log_event

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT_KG = "1.0"

# Columns an administrator may set on a rule
RULE_FIELDS = (
    "name", "description", "rule_type", "value", "unit",
    "customer_id", "customer_type", "priority_level",
    "min_distance_km", "max_distance_km", "min_weight_kg", "max_weight_kg",
    "time_of_day_start", "time_of_day_end", "day_of_week",
    "active", "valid_from", "valid_until",
)


def validate_rule_fields(fields: Dict[str, Any]) -> None:
    """
    Reject out-of-range rule definitions.

    Raises:
        InputValidationError: negative value or bound, inverted range,
            inverted validity window, unknown day_of_week
    """
    value = fields.get("value")
    if value is None:
        raise InputValidationError("value is required", field="value")
    value = to_decimal(value)
    if not value.is_finite() or value < 0 or value > MAX_AMOUNT:
        raise InputValidationError(f"value must be between 0 and {MAX_AMOUNT}", field="value")

    for low_name, high_name in (("min_distance_km", "max_distance_km"), ("min_weight_kg", "max_weight_kg")):
        low, high = fields.get(low_name), fields.get(high_name)
        for name, bound in ((low_name, low), (high_name, high)):
            if bound is not None and to_decimal(bound) < 0:
                raise InputValidationError(f"{name} must be non-negative", field=name)
        if low is not None and high is not None and to_decimal(low) > to_decimal(high):
            raise InputValidationError(f"{low_name} must not exceed {high_name}", field=low_name)

    valid_from, valid_until = fields.get("valid_from"), fields.get("valid_until")
    if valid_from is not None and valid_until is not None and valid_from > valid_until:
        raise InputValidationError("valid_from must not be after valid_until", field="valid_from")

    day = fields.get("day_of_week")
    if day and day.upper() not in WEEKDAY_NAMES and day.upper() not in DAY_OF_WEEK_GROUPS:
        raise InputValidationError(f"Unknown day_of_week '{day}'", field="day_of_week")


class PricingService:

    @staticmethod
    def calculator() -> ChargeCalculator:
        return ChargeCalculator(PricingConfig.from_settings(settings))

    @staticmethod
    def build_context(
        distance_km: Number,
        customer_id: Optional[UUID] = None,
        customer_type: Optional[CustomerType] = None,
        priority_level: Optional[PriorityLevel] = None,
        weight_kg: Optional[Number] = None,
        delivery_time: Optional[datetime] = None,
    ) -> PricingContext:
        """Apply the server-side defaults and validate the inputs."""
        if distance_km is None:
            raise InputValidationError("distance_km is required", field="distance_km")
        return PricingContext(
            customer_id=customer_id,
            customer_type=customer_type or CustomerType.INDIVIDUAL,
            priority_level=priority_level or PriorityLevel.NORMAL,
            distance_km=to_decimal(distance_km),
            weight_kg=to_decimal(weight_kg if weight_kg is not None else DEFAULT_WEIGHT_KG),
            delivery_time=delivery_time or datetime.now(),
        )

    @staticmethod
    async def calculate_price(
        db: AsyncSession,
        distance_km: Number,
        customer_id: Optional[UUID] = None,
        customer_type: Optional[CustomerType] = None,
        priority_level: Optional[PriorityLevel] = None,
        weight_kg: Optional[Number] = None,
        delivery_time: Optional[datetime] = None,
        today: Optional[date] = None,
    ) -> PricingCalculation:
        """
        Calculate the price of a delivery.

        Flow:
        1. Validate inputs and apply defaults
        2. Load one snapshot of active rules
        3. Resolve the most specific rule per component
        4. Compute components, subtotal, tax and total

        Args:
            db: Database session
            distance_km: Delivery distance, required
            customer_id / customer_type / priority_level / weight_kg / delivery_time:
                optional, defaulted to INDIVIDUAL / NORMAL / 1.0 / now
            today: Date the rule validity window is evaluated on (defaults to today)

        Returns:
            PricingCalculation
        """
        ctx = PricingService.build_context(
            distance_km=distance_km,
            customer_id=customer_id,
            customer_type=customer_type,
            priority_level=priority_level,
            weight_kg=weight_kg,
            delivery_time=delivery_time,
        )
        logger.debug(
            "Calculating price: customer=%s type=%s priority=%s distance=%skm weight=%skg time=%s",
            ctx.customer_id, ctx.customer_type.value, ctx.priority_level.value,
            ctx.distance_km, ctx.weight_kg, ctx.delivery_time.isoformat(),
        )

        resolver = await PricingResolver.load(SqlAlchemyRuleStore(db), ctx, today or date.today())
        return PricingService.calculator().compute(ctx, resolver)

    # Rule administration

    @staticmethod
    async def list_active_rules(db: AsyncSession) -> List[PricingRule]:
        return await SqlAlchemyRuleStore(db).list_active()

    @staticmethod
    async def list_rules_by_type(db: AsyncSession, rule_type: RuleType) -> List[PricingRule]:
        return await SqlAlchemyRuleStore(db).list_by_type(rule_type)

    @staticmethod
    async def list_rules_by_customer(db: AsyncSession, customer_id: UUID) -> List[PricingRule]:
        return await SqlAlchemyRuleStore(db).list_by_customer(customer_id)

    @staticmethod
    async def get_rule(db: AsyncSession, rule_id: int) -> PricingRule:
        rule = await SqlAlchemyRuleStore(db).get(rule_id)
        if rule is None:
            raise ResourceNotFoundError("Pricing rule", rule_id)
        return rule

    @staticmethod
    async def create_rule(db: AsyncSession, data: Dict[str, Any], actor: Optional[dict] = None) -> PricingRule:
        """Validate and store a new pricing rule."""
        fields = {key: data[key] for key in RULE_FIELDS if data.get(key) is not None}
        validate_rule_fields(fields)
        if fields.get("day_of_week"):
            fields["day_of_week"] = fields["day_of_week"].upper()

        rule = PricingRule(**fields, created_by=(actor or {}).get("user_id"))
        SqlAlchemyRuleStore(db).add(rule)
        await db.commit()
        await db.refresh(rule)

        logger.info("Created pricing rule %s (%s, %s)", rule.id, rule.name, rule.rule_type.value)
        await log_event(
            db=db,
            action=AuditAction.PRICING_RULE_CREATED,
            actor=actor,
            resource_type="pricing_rule",
            resource_id=rule.id,
            metadata={"name": rule.name, "rule_type": rule.rule_type.value, "value": str(rule.value)},
        )
        return rule

    @staticmethod
    async def update_rule(
        db: AsyncSession, rule_id: int, data: Dict[str, Any], actor: Optional[dict] = None
    ) -> PricingRule:
        """Replace a rule's definition (full update, unset scope fields become wildcards)."""
        rule = await PricingService.get_rule(db, rule_id)

        fields = {key: data.get(key) for key in RULE_FIELDS}
        if fields["active"] is None:
            fields["active"] = rule.active
        validate_rule_fields(fields)
        if fields.get("day_of_week"):
            fields["day_of_week"] = fields["day_of_week"].upper()

        for key, value in fields.items():
            if key in ("name", "rule_type", "unit") and value is None:
                continue
            setattr(rule, key, value)

        await db.commit()
        await db.refresh(rule)

        logger.info("Updated pricing rule %s", rule.id)
        await log_event(
            db=db,
            action=AuditAction.PRICING_RULE_UPDATED,
            actor=actor,
            resource_type="pricing_rule",
            resource_id=rule.id,
            metadata={"value": str(rule.value), "active": rule.active},
        )
        return rule

    @staticmethod
    async def delete_rule(db: AsyncSession, rule_id: int, actor: Optional[dict] = None) -> None:
        """
        Soft-delete a rule by clearing its active flag.

        Raises:
            ResourceNotFoundError: If no rule has this id
        """
        rule = await PricingService.get_rule(db, rule_id)
        rule.active = False
        await db.commit()

        logger.info("Deactivated pricing rule %s", rule_id)
        await log_event(
            db=db,
            action=AuditAction.PRICING_RULE_DEACTIVATED,
            actor=actor,
            resource_type="pricing_rule",
            resource_id=rule_id,
        )
