"""
Rule Matcher.

Filters pricing rules down to those whose scope is compatible with a
pricing context. Pure function of its inputs; an empty result means the
caller falls back to the configured default.
"""

from datetime import date, time
from typing import Iterable, List, Optional

from courier_billing.app.domain.pricing.types import PricingContext, to_decimal
from courier_billing.app.models.pricing_enums import (
    DAY_OF_WEEK_GROUPS,
    DISTANCE_SCOPED_TYPES,
    WEEKDAY_NAMES,
    WEIGHT_SCOPED_TYPES,
)
from courier_billing.app.models.pricing_rule import PricingRule


def _within(value, lower, upper) -> bool:
    """Inclusive bounds, either side optional."""
    if lower is not None and to_decimal(lower) > value:
        return False
    if upper is not None and to_decimal(upper) < value:
        return False
    return True


def _in_time_window(clock: time, start: Optional[time], end: Optional[time]) -> bool:
    """Window is [start, end); start > end wraps past midnight."""
    if start is None and end is None:
        return True
    if start is None:
        return clock < end
    if end is None:
        return clock >= start
    if start <= end:
        return start <= clock < end
    return clock >= start or clock < end


def _on_day(day_name: str, rule_day: Optional[str]) -> bool:
    if not rule_day:
        return True
    rule_day = rule_day.upper()
    if rule_day in DAY_OF_WEEK_GROUPS:
        return day_name in DAY_OF_WEEK_GROUPS[rule_day]
    return day_name == rule_day


def is_active_on(rule: PricingRule, today: date) -> bool:
    """Active flag and inclusive validity window."""
    if not rule.active:
        return False
    if rule.valid_from is not None and rule.valid_from > today:
        return False
    if rule.valid_until is not None and rule.valid_until < today:
        return False
    return True


def rule_matches(rule: PricingRule, ctx: PricingContext, today: date) -> bool:
    """Whether a single rule applies to the context."""
    if not is_active_on(rule, today):
        return False

    if rule.customer_id is not None and rule.customer_id != ctx.customer_id:
        return False
    if rule.customer_type is not None and rule.customer_type != ctx.customer_type:
        return False
    if rule.priority_level is not None and rule.priority_level != ctx.priority_level:
        return False

    if rule.rule_type in DISTANCE_SCOPED_TYPES:
        if not _within(ctx.distance_km, rule.min_distance_km, rule.max_distance_km):
            return False
    if rule.rule_type in WEIGHT_SCOPED_TYPES:
        if not _within(ctx.weight_kg, rule.min_weight_kg, rule.max_weight_kg):
            return False

    if not _in_time_window(ctx.delivery_time.time(), rule.time_of_day_start, rule.time_of_day_end):
        return False
    if not _on_day(WEEKDAY_NAMES[ctx.delivery_time.weekday()], rule.day_of_week):
        return False

    return True


class RuleMatcher:

    @staticmethod
    def match(rules: Iterable[PricingRule], ctx: PricingContext, today: date) -> List[PricingRule]:
        """Return the rules (input order preserved) that apply to ctx."""
        return [rule for rule in rules if rule_matches(rule, ctx, today)]
