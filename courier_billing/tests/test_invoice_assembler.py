"""
Invoice assembly from a pricing calculation.
"""

import re
import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest

from courier_billing.app.core.exceptions import InvariantViolationError
from courier_billing.app.domain.billing.invoice_assembler import InvoiceAssembler, OrderContext
from courier_billing.app.domain.pricing.charge_calculator import ChargeCalculator
from courier_billing.app.domain.pricing.types import PricingCalculation, PricingConfig
from courier_billing.app.models.invoice_enums import InvoiceItemType, InvoiceStatus
from courier_billing.app.models.pricing_enums import CustomerType, PriorityLevel
from courier_billing.tests.factories import SATURDAY_2AM, lookup_from, make_context


@pytest.fixture
def order():
    return OrderContext(
        customer_id=uuid.uuid4(),
        customer_name="St. Mary Clinic",
        order_number="ORD-1001",
        delivery_id=uuid.uuid4(),
        distance_km=Decimal("10"),
        issue_date=date(2024, 6, 5),
    )


def calculate(**context):
    return ChargeCalculator(PricingConfig()).compute(make_context(**context), lookup_from())


def test_no_surcharges_gives_two_delivery_lines(order):
    calc = calculate(distance_km="10")

    invoice, items = InvoiceAssembler.assemble(calc, order)

    assert [item.item_type for item in items] == [InvoiceItemType.DELIVERY, InvoiceItemType.DELIVERY]
    assert sum(item.line_total for item in items) == invoice.subtotal == Decimal("27.00")
    assert items[0].description == "Medical delivery - ORD-1001"
    assert items[1].description == "Distance charge (10 km @ 1.20/km)"
    assert all(item.quantity == 1 and item.delivery_id == order.delivery_id for item in items)


def test_zero_distance_omits_distance_line(order):
    calc = calculate(distance_km="0")

    _, items = InvoiceAssembler.assemble(calc, order)

    assert len(items) == 1
    assert items[0].line_total == Decimal("15.00")


def test_surcharge_lines_in_fixed_order(order):
    calc = calculate(
        customer_type=CustomerType.MEDICAL_FACILITY,
        priority_level=PriorityLevel.URGENT,
        distance_km=60,
        weight_kg=12,
        delivery_time=SATURDAY_2AM,
    )

    invoice, items = InvoiceAssembler.assemble(calc, order)

    surcharges = [item for item in items if item.item_type == InvoiceItemType.SURCHARGE]
    assert [item.line_total for item in surcharges] == [Decimal("5.00"), Decimal("7.50"), Decimal("10.00")]
    assert [item.description for item in surcharges] == [
        "Urgent priority surcharge",
        "After-hours delivery surcharge",
        "Weekend delivery surcharge",
    ]
    assert invoice.subtotal == Decimal("109.50")
    assert invoice.tax_amount == Decimal("10.95")
    assert invoice.total_amount == Decimal("120.45")


def test_header_defaults(order):
    invoice, _ = InvoiceAssembler.assemble(calculate(), order)

    assert invoice.status == InvoiceStatus.DRAFT
    assert invoice.issue_date == date(2024, 6, 5)
    assert invoice.due_date == date(2024, 6, 5) + timedelta(days=30)
    assert invoice.currency == "USD"
    assert invoice.tax_rate == Decimal("0.10")
    assert invoice.notes == "Invoice for delivery: ORD-1001"
    assert re.fullmatch(r"INV-20240605-[0-9A-F]{8}", invoice.invoice_number)


def test_invoice_numbers_are_unique(order):
    first, _ = InvoiceAssembler.assemble(calculate(), order)
    second, _ = InvoiceAssembler.assemble(calculate(), order)

    assert first.invoice_number != second.invoice_number


def test_inconsistent_calculation_is_rejected(order):
    calc = PricingCalculation(
        base_rate=Decimal("15.00"),
        distance_charge=Decimal("12.00"),
        subtotal=Decimal("30.00"),
    )

    with pytest.raises(InvariantViolationError):
        InvoiceAssembler.assemble(calc, order)
