"""
Charge Calculator.

Computes every charge component for a delivery from the rules selected for
it, falling back to configured defaults, then applies tax.

Component table:
    base rate            always                    BASE_RATE              default 15.00
    per-km rate          always                    PER_KM_RATE            default 1.20
    distance charge      per_km_rate * distance    (derived)
    urgent surcharge     priority == URGENT        URGENT_SURCHARGE       default 5.00
    after-hours          clock < 08:00 or >= 18:00 AFTER_HOURS_SURCHARGE  default 7.50
    weekend              Saturday / Sunday         WEEKEND_SURCHARGE      default 10.00
    weight surcharge     weight > 10 kg            WEIGHT_SURCHARGE       no default
    distance surcharge   distance > 50 km          DISTANCE_SURCHARGE     no default
"""

import logging
from datetime import time
from decimal import Decimal
from typing import Callable, Optional

from courier_billing.app.domain.pricing.tax_engine import TaxEngine
from courier_billing.app.domain.pricing.types import (
    ZERO,
    PricingCalculation,
    PricingConfig,
    PricingContext,
    money,
)
from courier_billing.app.models.pricing_enums import PriorityLevel, RuleType, RuleUnit
from courier_billing.app.models.pricing_rule import PricingRule

logger = logging.getLogger(__name__)

RuleLookup = Callable[[RuleType], Optional[PricingRule]]

SATURDAY = 5


class ChargeCalculator:

    def __init__(self, config: PricingConfig = None):
        self.config = config or PricingConfig()
        self.tax_engine = TaxEngine(self.config.tax_rate)

    def is_after_hours(self, ctx: PricingContext) -> bool:
        clock = ctx.delivery_time.time()
        return (
            clock < time(self.config.business_hours_start)
            or clock >= time(self.config.business_hours_end)
        )

    @staticmethod
    def is_weekend(ctx: PricingContext) -> bool:
        return ctx.delivery_time.weekday() >= SATURDAY

    def _rule_amount(self, rule: PricingRule, ctx: PricingContext) -> Decimal:
        unit = rule.unit or RuleUnit.FLAT
        if unit == RuleUnit.PER_KM:
            return money(money(rule.value) * ctx.distance_km)
        if unit == RuleUnit.PER_KG:
            return money(money(rule.value) * ctx.weight_kg)
        return money(rule.value)

    def _component(
        self,
        calculation: PricingCalculation,
        lookup: RuleLookup,
        rule_type: RuleType,
        ctx: PricingContext,
        default: Optional[Decimal],
    ) -> Decimal:
        rule = lookup(rule_type)
        if rule is None:
            return money(default) if default is not None else ZERO
        calculation.applied_rule_ids[rule_type] = rule.id
        return self._rule_amount(rule, ctx)

    def compute(self, ctx: PricingContext, lookup: RuleLookup) -> PricingCalculation:
        """
        Price a delivery.

        Args:
            ctx: Delivery attributes
            lookup: Returns the selected rule for a rule type, or None

        Returns:
            PricingCalculation with every amount rounded half-up to cents
        """
        config = self.config
        calculation = PricingCalculation()

        base_rule = lookup(RuleType.BASE_RATE)
        if base_rule is not None:
            calculation.applied_rule_ids[RuleType.BASE_RATE] = base_rule.id
            calculation.base_rate = money(base_rule.value)
        else:
            calculation.base_rate = money(config.default_base_rate)

        # Per-km rate is always per unit of distance, whatever the unit column says
        per_km_rule = lookup(RuleType.PER_KM_RATE)
        if per_km_rule is not None:
            calculation.applied_rule_ids[RuleType.PER_KM_RATE] = per_km_rule.id
            calculation.per_km_rate = money(per_km_rule.value)
        else:
            calculation.per_km_rate = money(config.default_per_km_rate)

        calculation.distance_charge = money(calculation.per_km_rate * ctx.distance_km)

        if ctx.priority_level == PriorityLevel.URGENT:
            calculation.urgent_surcharge = self._component(
                calculation, lookup, RuleType.URGENT_SURCHARGE, ctx, config.default_urgent_surcharge
            )

        if self.is_after_hours(ctx):
            calculation.after_hours_surcharge = self._component(
                calculation, lookup, RuleType.AFTER_HOURS_SURCHARGE, ctx, config.default_after_hours_surcharge
            )

        if self.is_weekend(ctx):
            calculation.weekend_surcharge = self._component(
                calculation, lookup, RuleType.WEEKEND_SURCHARGE, ctx, config.default_weekend_surcharge
            )

        if ctx.weight_kg > config.weight_surcharge_threshold_kg:
            calculation.weight_surcharge = self._component(
                calculation, lookup, RuleType.WEIGHT_SURCHARGE, ctx, None
            )

        if ctx.distance_km > config.distance_surcharge_threshold_km:
            calculation.distance_surcharge = self._component(
                calculation, lookup, RuleType.DISTANCE_SURCHARGE, ctx, None
            )

        calculation.subtotal = money(calculation.charges_sum())
        calculation.tax_rate = config.tax_rate
        calculation.tax_amount, calculation.total = self.tax_engine.apply_tax(calculation.subtotal)

        logger.debug(
            "Calculated price: base=%s distance=%s urgent=%s after_hours=%s weekend=%s "
            "weight=%s extra_distance=%s subtotal=%s tax=%s total=%s",
            calculation.base_rate, calculation.distance_charge, calculation.urgent_surcharge,
            calculation.after_hours_surcharge, calculation.weekend_surcharge,
            calculation.weight_surcharge, calculation.distance_surcharge,
            calculation.subtotal, calculation.tax_amount, calculation.total,
        )
        return calculation
