"""
Database seeding script for the default pricing rules.

Stores the configured default rates as global rules so administrators can
see and adjust them through the API. Pricing works without them: when no
rule matches, the configured defaults apply anyway.
Run this script after the database is set up.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from courier_billing.app.core.config import settings
from courier_billing.app.db.session import AsyncSessionLocal, Base, engine
from courier_billing.app.models.pricing_enums import RuleType
from courier_billing.app.models.pricing_rule import PricingRule
import courier_billing.app.models.invoice  # noqa: F401
import courier_billing.app.models.audit_log  # noqa: F401

DEFAULT_RULES = (
    ("Standard base rate", RuleType.BASE_RATE, settings.default_base_rate),
    ("Standard per-km rate", RuleType.PER_KM_RATE, settings.default_per_km_rate),
    ("Urgent delivery surcharge", RuleType.URGENT_SURCHARGE, settings.default_urgent_surcharge),
    ("After-hours surcharge", RuleType.AFTER_HOURS_SURCHARGE, settings.default_after_hours_surcharge),
    ("Weekend surcharge", RuleType.WEEKEND_SURCHARGE, settings.default_weekend_surcharge),
)


async def seed_pricing_rules():
    """Create one global rule per defaulted component, unless rules already exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting pricing rule seeding...")

        result = await db.execute(select(PricingRule.id).limit(1))
        if result.scalar_one_or_none() is not None:
            print("ℹ️  Pricing rules already exist, skipping seeding")
            return

        for name, rule_type, value in DEFAULT_RULES:
            db.add(PricingRule(name=name, description="Seeded default", rule_type=rule_type, value=value))
            print(f"✅ Created {rule_type.value} rule: {name} = {value}")

        await db.commit()

    await engine.dispose()
    print("\n🎉 Pricing rule seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(seed_pricing_rules())
