"""
Rule Selector.

Picks the single most specific rule out of a set of matching rules.

Ordering (highest first):
1. Number of scope dimensions set
2. Which dimensions are set, by priority:
   customer id > customer type > priority level > distance/weight range > time window
3. Most recent created_at (last-defined wins)
4. Highest id
"""

from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple

from courier_billing.app.models.pricing_enums import DISTANCE_SCOPED_TYPES, WEIGHT_SCOPED_TYPES
from courier_billing.app.models.pricing_rule import PricingRule


def _has_range(rule: PricingRule) -> bool:
    # Only bounds that the matcher actually enforces for this rule type count
    if rule.rule_type in DISTANCE_SCOPED_TYPES:
        if rule.min_distance_km is not None or rule.max_distance_km is not None:
            return True
    if rule.rule_type in WEIGHT_SCOPED_TYPES:
        if rule.min_weight_kg is not None or rule.max_weight_kg is not None:
            return True
    return False


def _has_time_scope(rule: PricingRule) -> bool:
    return (
        rule.time_of_day_start is not None
        or rule.time_of_day_end is not None
        or bool(rule.day_of_week)
    )


def scope_flags(rule: PricingRule) -> Tuple[bool, bool, bool, bool, bool]:
    """Scope dimensions set on the rule, in priority order."""
    return (
        rule.customer_id is not None,
        rule.customer_type is not None,
        rule.priority_level is not None,
        _has_range(rule),
        _has_time_scope(rule),
    )


def specificity_key(rule: PricingRule) -> tuple:
    flags = scope_flags(rule)
    created_at = rule.created_at
    if created_at is not None and created_at.tzinfo is not None:
        created_at = created_at.astimezone(timezone.utc).replace(tzinfo=None)
    return (
        sum(flags),
        flags,
        created_at or datetime.min,
        rule.id or 0,
    )


class RuleSelector:

    @staticmethod
    def select(candidates: Iterable[PricingRule]) -> Optional[PricingRule]:
        """Most specific candidate, or None when there are none."""
        return max(candidates, key=specificity_key, default=None)
