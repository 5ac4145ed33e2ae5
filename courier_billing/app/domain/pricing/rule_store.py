"""
Pricing Rule Store.

Storage port for pricing rules. The engine only depends on the
RuleStore protocol; SqlAlchemyRuleStore is the production implementation.
"""

from datetime import date
from typing import List, Optional, Protocol
from uuid import UUID

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from courier_billing.app.models.pricing_enums import RuleType
from courier_billing.app.models.pricing_rule import PricingRule


class RuleStore(Protocol):
    """Read side used by the pricing engine."""

    async def find_active_rules_by_type(self, rule_type: RuleType, today: date) -> List[PricingRule]:
        """Active rules of one type inside their validity window."""
        ...

    async def find_applicable_rules(self, today: date) -> List[PricingRule]:
        """All active rules inside their validity window."""
        ...


class SqlAlchemyRuleStore:

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _active_on(today: date):
        return select(PricingRule).where(
            PricingRule.active == True,  # noqa: E712
            (PricingRule.valid_from.is_(None) | (PricingRule.valid_from <= today)),
            (PricingRule.valid_until.is_(None) | (PricingRule.valid_until >= today)),
        )

    async def find_active_rules_by_type(self, rule_type: RuleType, today: date) -> List[PricingRule]:
        query = self._active_on(today).where(PricingRule.rule_type == rule_type).order_by(PricingRule.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_applicable_rules(self, today: date) -> List[PricingRule]:
        query = self._active_on(today).order_by(PricingRule.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # Administrative queries

    async def list_active(self) -> List[PricingRule]:
        result = await self.db.execute(
            select(PricingRule).where(PricingRule.active == True).order_by(desc(PricingRule.created_at), desc(PricingRule.id))  # noqa: E712
        )
        return list(result.scalars().all())

    async def list_by_type(self, rule_type: RuleType) -> List[PricingRule]:
        result = await self.db.execute(
            select(PricingRule).where(PricingRule.rule_type == rule_type).order_by(PricingRule.id)
        )
        return list(result.scalars().all())

    async def list_by_customer(self, customer_id: UUID) -> List[PricingRule]:
        result = await self.db.execute(
            select(PricingRule).where(PricingRule.customer_id == customer_id).order_by(PricingRule.id)
        )
        return list(result.scalars().all())

    async def get(self, rule_id: int) -> Optional[PricingRule]:
        return await self.db.get(PricingRule, rule_id)

    def add(self, rule: PricingRule) -> None:
        self.db.add(rule)
