"""
Invoice Assembler.

Turns a completed pricing calculation into an unsaved invoice header and
its ordered line items:

1. DELIVERY  base rate
2. DELIVERY  distance charge (only if > 0)
3. SURCHARGE urgent, after-hours, weekend, weight, extra-distance (each only if > 0)

The emitted line totals must add up to the calculated subtotal.
"""

import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from courier_billing.app.core.config import settings
from courier_billing.app.core.exceptions import InvariantViolationError
from courier_billing.app.domain.pricing.types import ZERO, PricingCalculation, money
from courier_billing.app.models.invoice import Invoice
from courier_billing.app.models.invoice_enums import InvoiceItemType, InvoiceStatus
from courier_billing.app.models.invoice_item import InvoiceItem

# (calculation field, description) in emission order
SURCHARGE_LINES = (
    ("urgent_surcharge", "Urgent priority surcharge"),
    ("after_hours_surcharge", "After-hours delivery surcharge"),
    ("weekend_surcharge", "Weekend delivery surcharge"),
    ("weight_surcharge", "Heavy parcel surcharge"),
    ("distance_surcharge", "Extra distance surcharge"),
)


@dataclass
class OrderContext:
    """Who is billed, and for which delivery."""
    customer_id: UUID
    customer_name: str
    order_number: Optional[str] = None
    delivery_id: Optional[UUID] = None
    distance_km: Optional[Decimal] = None
    customer_address: Optional[str] = None
    customer_city: Optional[str] = None
    customer_postal_code: Optional[str] = None
    customer_country: Optional[str] = None
    currency: Optional[str] = None
    issue_date: Optional[date] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None


def generate_invoice_number(issue_date: date) -> str:
    """INV-YYYYMMDD-XXXXXXXX, unique per invoice."""
    return f"{settings.invoice_number_prefix}-{issue_date:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def default_due_date(issue_date: date) -> date:
    return issue_date + timedelta(days=settings.invoice_due_days)


def _line(item_type: InvoiceItemType, description: str, amount: Decimal, delivery_id: Optional[UUID]) -> InvoiceItem:
    return InvoiceItem(
        item_type=item_type,
        description=description,
        quantity=1,
        unit_price=amount,
        discount_percent=ZERO,
        line_total=amount,
        delivery_id=delivery_id,
    )


class InvoiceAssembler:

    @staticmethod
    def build_items(calculation: PricingCalculation, order: OrderContext) -> List[InvoiceItem]:
        """Ordered line items for a calculation; zero amounts are skipped."""
        items: List[InvoiceItem] = []
        label = f" - {order.order_number}" if order.order_number else ""

        base_rate = money(calculation.base_rate)
        if base_rate != ZERO:
            items.append(_line(InvoiceItemType.DELIVERY, f"Medical delivery{label}", base_rate, order.delivery_id))

        distance_charge = money(calculation.distance_charge)
        if distance_charge > ZERO:
            description = "Distance charge"
            if order.distance_km is not None:
                description = f"Distance charge ({order.distance_km} km @ {calculation.per_km_rate}/km)"
            items.append(_line(InvoiceItemType.DELIVERY, description, distance_charge, order.delivery_id))

        for field_name, description in SURCHARGE_LINES:
            amount = money(getattr(calculation, field_name))
            if amount > ZERO:
                items.append(_line(InvoiceItemType.SURCHARGE, description, amount, order.delivery_id))

        return items

    @staticmethod
    def assemble(calculation: PricingCalculation, order: OrderContext) -> Tuple[Invoice, List[InvoiceItem]]:
        """
        Build an unsaved DRAFT invoice and its line items.

        Raises:
            InvariantViolationError: If the line totals do not add up to the subtotal
        """
        items = InvoiceAssembler.build_items(calculation, order)

        lines_total = sum((item.line_total for item in items), ZERO)
        if lines_total != money(calculation.subtotal):
            raise InvariantViolationError(
                "Invoice line items do not add up to the calculated subtotal",
                details={"lines_total": str(lines_total), "subtotal": str(calculation.subtotal)},
            )

        issue_date = order.issue_date or date.today()
        invoice = Invoice(
            invoice_number=generate_invoice_number(issue_date),
            customer_id=order.customer_id,
            issue_date=issue_date,
            due_date=default_due_date(issue_date),
            status=InvoiceStatus.DRAFT,
            subtotal=money(calculation.subtotal),
            tax_rate=calculation.tax_rate,
            tax_amount=money(calculation.tax_amount),
            total_amount=money(calculation.total),
            currency=order.currency or settings.default_currency,
            customer_name=order.customer_name,
            customer_address=order.customer_address,
            customer_city=order.customer_city,
            customer_postal_code=order.customer_postal_code,
            customer_country=order.customer_country,
            notes=order.notes or (f"Invoice for delivery: {order.order_number}" if order.order_number else None),
            created_by=order.created_by,
        )
        return invoice, items
