"""
Pricing API Endpoints.

Price quotes for dispatchers and finance, pricing rule management for admins.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from courier_billing.app.db.session import get_db
from courier_billing.app.core.guards import Capability, require_capability
from courier_billing.app.domain.pricing.pricing_service import PricingService
from courier_billing.app.models.pricing_enums import RuleType
from courier_billing.app.schemas.pricing import (
    PricingCalculateRequest,
    PricingCalculationResponse,
    PricingRuleCreate,
    PricingRuleResponse,
    PricingRuleUpdate,
)

router = APIRouter(prefix="/pricing", tags=["Pricing"])


@router.post("/calculate", response_model=PricingCalculationResponse)
async def calculate_price(
    request: PricingCalculateRequest,
    current_user: dict = Depends(require_capability(Capability.PRICING_CALCULATE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Quote the price of a delivery.

    Applies the most specific active rule for each component, falling back
    to the configured defaults, then adds tax.
    """
    calculation = await PricingService.calculate_price(
        db,
        distance_km=request.distance_km,
        customer_id=request.customer_id,
        customer_type=request.customer_type,
        priority_level=request.priority_level,
        weight_kg=request.weight_kg,
        delivery_time=request.delivery_time,
    )
    return PricingCalculationResponse.model_validate(calculation)


@router.get("/rules", response_model=List[PricingRuleResponse])
async def list_active_rules(
    current_user: dict = Depends(require_capability(Capability.PRICING_READ)),
    db: AsyncSession = Depends(get_db)
):
    """List all active pricing rules."""
    return await PricingService.list_active_rules(db)


@router.get("/rules/type/{rule_type}", response_model=List[PricingRuleResponse])
async def list_rules_by_type(
    rule_type: RuleType,
    current_user: dict = Depends(require_capability(Capability.PRICING_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await PricingService.list_rules_by_type(db, rule_type)


@router.get("/rules/customer/{customer_id}", response_model=List[PricingRuleResponse])
async def list_rules_by_customer(
    customer_id: UUID,
    current_user: dict = Depends(require_capability(Capability.PRICING_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await PricingService.list_rules_by_customer(db, customer_id)


@router.get("/rules/{rule_id}", response_model=PricingRuleResponse)
async def get_rule(
    rule_id: int = Path(..., description="Pricing rule ID"),
    current_user: dict = Depends(require_capability(Capability.PRICING_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await PricingService.get_rule(db, rule_id)


@router.post("/rules", response_model=PricingRuleResponse, status_code=status.HTTP_201_CREATED)
async def create_rule(
    rule: PricingRuleCreate,
    current_user: dict = Depends(require_capability(Capability.PRICING_MANAGE)),
    db: AsyncSession = Depends(get_db)
):
    """Create a new pricing rule."""
    return await PricingService.create_rule(db, rule.model_dump(), actor=current_user)


@router.put("/rules/{rule_id}", response_model=PricingRuleResponse)
async def update_rule(
    rule: PricingRuleUpdate,
    rule_id: int = Path(..., description="Pricing rule ID"),
    current_user: dict = Depends(require_capability(Capability.PRICING_MANAGE)),
    db: AsyncSession = Depends(get_db)
):
    """Replace a pricing rule's definition."""
    return await PricingService.update_rule(db, rule_id, rule.model_dump(), actor=current_user)


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rule(
    rule_id: int = Path(..., description="Pricing rule ID"),
    current_user: dict = Depends(require_capability(Capability.PRICING_MANAGE)),
    db: AsyncSession = Depends(get_db)
):
    """Deactivate a pricing rule. It stays on record but no longer matches."""
    await PricingService.delete_rule(db, rule_id, actor=current_user)
