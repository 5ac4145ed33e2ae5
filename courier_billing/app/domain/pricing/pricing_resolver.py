"""
Pricing Rule Resolver.

Responsible for determining the applicable pricing rule per rule type for
one calculation. Loads a single snapshot of active rules, then answers
lookups from that snapshot with the matcher and selector, so every
component of a calculation sees the same rule set.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional

from courier_billing.app.domain.pricing.rule_matcher import RuleMatcher
from courier_billing.app.domain.pricing.rule_selector import RuleSelector
from courier_billing.app.domain.pricing.rule_store import RuleStore
from courier_billing.app.domain.pricing.types import PricingContext
from courier_billing.app.models.pricing_enums import RuleType
from courier_billing.app.models.pricing_rule import PricingRule


class PricingResolver:

    def __init__(self, rules: Iterable[PricingRule], ctx: PricingContext, today: date):
        self.ctx = ctx
        self.today = today
        self._by_type: Dict[RuleType, List[PricingRule]] = defaultdict(list)
        for rule in rules:
            self._by_type[rule.rule_type].append(rule)

    @classmethod
    async def load(cls, store: RuleStore, ctx: PricingContext, today: date) -> "PricingResolver":
        """Fetch the rule snapshot for this calculation."""
        rules = await store.find_applicable_rules(today)
        return cls(rules, ctx, today)

    def resolve(self, rule_type: RuleType) -> Optional[PricingRule]:
        """
        Most specific rule of rule_type that applies to the context.

        Returns:
            The selected rule, or None when no rule applies (default pricing).
        """
        candidates = RuleMatcher.match(self._by_type.get(rule_type, ()), self.ctx, self.today)
        return RuleSelector.select(candidates)

    __call__ = resolve
