"""
Invoice service against the in-memory database.
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from courier_billing.app.core.exceptions import (
    InputValidationError,
    InvalidStatusTransitionError,
    InvariantViolationError,
    PersistenceError,
    ResourceNotFoundError,
)
from courier_billing.app.domain.billing.events import InvoiceEventType
from courier_billing.app.domain.billing.invoice_assembler import OrderContext
from courier_billing.app.domain.billing.invoice_service import InvoiceService, compute_line_total
from courier_billing.app.models.audit_log import AuditLog
from courier_billing.app.models.invoice import Invoice
from courier_billing.app.models.invoice_enums import InvoiceItemType, InvoiceStatus
from courier_billing.app.models.invoice_item import InvoiceItem
from courier_billing.app.models.pricing_enums import CustomerType, PriorityLevel, RuleType
from courier_billing.app.models.pricing_rule import PricingRule
from courier_billing.tests.factories import SATURDAY_2AM


def new_invoice(customer_id=None, **header):
    header.setdefault("customer_name", "Northside Pharmacy")
    return Invoice(customer_id=customer_id or uuid.uuid4(), **header)


def new_items():
    return [
        InvoiceItem(item_type=InvoiceItemType.DELIVERY, description="Delivery", unit_price=Decimal("15.00")),
        InvoiceItem(
            item_type=InvoiceItemType.OTHER,
            description="Cold-chain boxes",
            quantity=3,
            unit_price=Decimal("4.99"),
            discount_percent=Decimal("10"),
        ),
    ]


async def count(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


def test_line_total_rounding():
    # 3 * 4.99 = 14.97, less 10% = 13.473 -> 13.47
    assert compute_line_total(Decimal("4.99"), 3, Decimal("10")) == Decimal("13.47")
    assert compute_line_total(Decimal("2.50"), 2) == Decimal("5.00")


@pytest.mark.asyncio
async def test_create_invoice_derives_amounts(db_session, publisher):
    invoice = await InvoiceService.create_invoice(db_session, new_invoice(), new_items(), publisher)

    assert invoice.id is not None
    assert invoice.status == InvoiceStatus.DRAFT
    assert invoice.subtotal == Decimal("28.47")
    assert invoice.tax_amount == Decimal("2.85")
    assert invoice.total_amount == Decimal("31.32")
    assert invoice.due_date == invoice.issue_date + timedelta(days=30)
    assert [item.line_total for item in invoice.items] == [Decimal("15.00"), Decimal("13.47")]
    assert publisher.event_types == [InvoiceEventType.CREATED]
    assert publisher.events[0].invoice_number == invoice.invoice_number


@pytest.mark.asyncio
async def test_create_invoice_requires_items(db_session, publisher):
    with pytest.raises(InputValidationError):
        await InvoiceService.create_invoice(db_session, new_invoice(), [], publisher)


@pytest.mark.asyncio
async def test_create_invoice_rejects_mismatched_subtotal(db_session, publisher):
    with pytest.raises(InvariantViolationError):
        await InvoiceService.create_invoice(
            db_session, new_invoice(subtotal=Decimal("99.00")), new_items(), publisher
        )
    assert publisher.events == []


@pytest.mark.asyncio
async def test_create_invoice_rejects_due_before_issue(db_session, publisher):
    with pytest.raises(InputValidationError):
        await InvoiceService.create_invoice(
            db_session,
            new_invoice(issue_date=date(2024, 6, 5), due_date=date(2024, 6, 1)),
            new_items(),
            publisher,
        )


@pytest.mark.asyncio
async def test_zero_quantity_is_not_defaulted(db_session, publisher):
    item = InvoiceItem(
        item_type=InvoiceItemType.OTHER, description="Boxes", quantity=0, unit_price=Decimal("4.99")
    )
    with pytest.raises(InputValidationError) as exc_info:
        await InvoiceService.create_invoice(db_session, new_invoice(), [item], publisher)
    assert exc_info.value.details == {"field": "quantity"}
    assert await count(db_session, Invoice) == 0


@pytest.mark.asyncio
async def test_missing_quantity_defaults_to_one(db_session, publisher):
    item = InvoiceItem(item_type=InvoiceItemType.DELIVERY, description="Delivery", unit_price=Decimal("15.00"))
    invoice = await InvoiceService.create_invoice(db_session, new_invoice(), [item], publisher)
    assert invoice.items[0].quantity == 1
    assert invoice.subtotal == Decimal("15.00")


@pytest.mark.asyncio
async def test_negative_line_total_rejected(db_session, publisher):
    item = InvoiceItem(
        item_type=InvoiceItemType.DELIVERY,
        description="Delivery",
        quantity=2,
        unit_price=Decimal("10.00"),
        line_total=Decimal("-500.00"),
    )
    with pytest.raises(InputValidationError) as exc_info:
        await InvoiceService.create_invoice(db_session, new_invoice(), [item], publisher)
    assert exc_info.value.details == {"field": "line_total"}
    assert publisher.events == []


@pytest.mark.asyncio
async def test_line_total_must_match_price_and_quantity(db_session, publisher):
    item = InvoiceItem(
        item_type=InvoiceItemType.OTHER,
        description="Cold-chain boxes",
        quantity=3,
        unit_price=Decimal("4.99"),
        discount_percent=Decimal("10"),
        line_total=Decimal("1.00"),
    )
    with pytest.raises(InputValidationError) as exc_info:
        await InvoiceService.create_invoice(db_session, new_invoice(), [item], publisher)
    assert exc_info.value.details == {"field": "line_total"}
    assert await count(db_session, Invoice) == 0


@pytest.mark.asyncio
async def test_matching_line_total_is_accepted(db_session, publisher):
    item = InvoiceItem(
        item_type=InvoiceItemType.OTHER,
        description="Cold-chain boxes",
        quantity=3,
        unit_price=Decimal("4.99"),
        discount_percent=Decimal("10"),
        line_total=Decimal("13.47"),
    )
    invoice = await InvoiceService.create_invoice(db_session, new_invoice(), [item], publisher)
    assert invoice.subtotal == Decimal("13.47")


@pytest.mark.asyncio
async def test_failed_write_stores_nothing(db_session, publisher, mocker):
    mocker.patch.object(
        db_session, "commit", side_effect=OperationalError("INSERT", {}, Exception("disk I/O error"))
    )

    with pytest.raises(PersistenceError):
        await InvoiceService.create_invoice(db_session, new_invoice(), new_items(), publisher)

    mocker.stopall()
    assert await count(db_session, Invoice) == 0
    assert await count(db_session, InvoiceItem) == 0
    assert publisher.events == []


@pytest.mark.asyncio
async def test_invoice_delivery_prices_and_persists(db_session, publisher):
    order = OrderContext(customer_id=uuid.uuid4(), customer_name="St. Mary Clinic", order_number="ORD-7")

    invoice = await InvoiceService.invoice_delivery(
        db_session,
        order,
        publisher,
        distance_km=60,
        customer_type=CustomerType.MEDICAL_FACILITY,
        priority_level=PriorityLevel.URGENT,
        weight_kg=12,
        delivery_time=SATURDAY_2AM,
    )

    assert invoice.subtotal == Decimal("109.50")
    assert invoice.total_amount == Decimal("120.45")
    assert len(invoice.items) == 5
    assert sum(item.line_total for item in invoice.items) == invoice.subtotal


@pytest.mark.asyncio
async def test_invoice_delivery_uses_customer_rule(db_session, publisher):
    customer = uuid.uuid4()
    db_session.add_all([
        PricingRule(name="Global base", rule_type=RuleType.BASE_RATE, value=Decimal("15.00")),
        PricingRule(name="Clinic base", rule_type=RuleType.BASE_RATE, value=Decimal("20.00"), customer_id=customer),
    ])
    await db_session.commit()
    order = OrderContext(customer_id=customer, customer_name="Clinic")

    invoice = await InvoiceService.invoice_delivery(db_session, order, publisher, distance_km="0")

    assert invoice.items[0].line_total == Decimal("20.00")


@pytest.mark.asyncio
async def test_status_workflow(db_session, publisher):
    invoice = await InvoiceService.create_invoice(db_session, new_invoice(), new_items(), publisher)

    sent = await InvoiceService.update_invoice_status(db_session, invoice.id, InvoiceStatus.SENT, publisher)
    assert sent.status == InvoiceStatus.SENT
    assert sent.sent_at is not None

    paid = await InvoiceService.record_payment(
        db_session, invoice.id, "BANK_TRANSFER", publisher, payment_reference="TX-991"
    )
    assert paid.status == InvoiceStatus.PAID
    assert paid.payment_date == date.today()
    assert paid.payment_reference == "TX-991"

    assert publisher.event_types == [
        InvoiceEventType.CREATED,
        InvoiceEventType.STATUS_UPDATED,
        InvoiceEventType.PAID,
    ]


@pytest.mark.asyncio
async def test_paid_invoice_cannot_move(db_session, publisher):
    invoice = await InvoiceService.create_invoice(db_session, new_invoice(), new_items(), publisher)
    await InvoiceService.update_invoice_status(db_session, invoice.id, InvoiceStatus.SENT, publisher)
    await InvoiceService.record_payment(db_session, invoice.id, "CARD", publisher)

    with pytest.raises(InvalidStatusTransitionError):
        await InvoiceService.update_invoice_status(db_session, invoice.id, InvoiceStatus.CANCELLED, publisher)


@pytest.mark.asyncio
async def test_draft_cannot_be_paid(db_session, publisher):
    invoice = await InvoiceService.create_invoice(db_session, new_invoice(), new_items(), publisher)

    with pytest.raises(InvalidStatusTransitionError):
        await InvoiceService.record_payment(db_session, invoice.id, "CARD", publisher)


@pytest.mark.asyncio
async def test_overdue_listing_and_sweep(db_session, publisher):
    today = date(2024, 7, 1)
    late = await InvoiceService.create_invoice(
        db_session, new_invoice(issue_date=date(2024, 5, 1), due_date=date(2024, 5, 31)), new_items(), publisher
    )
    on_time = await InvoiceService.create_invoice(
        db_session, new_invoice(issue_date=date(2024, 6, 20), due_date=date(2024, 7, 20)), new_items(), publisher
    )
    draft_late = await InvoiceService.create_invoice(
        db_session, new_invoice(issue_date=date(2024, 5, 1), due_date=date(2024, 5, 31)), new_items(), publisher
    )
    for invoice in (late, on_time):
        await InvoiceService.update_invoice_status(db_session, invoice.id, InvoiceStatus.SENT, publisher)

    overdue = await InvoiceService.list_overdue_invoices(db_session, today)
    assert [invoice.id for invoice in overdue] == [late.id]

    due_soon = await InvoiceService.list_invoices_due_between(db_session, date(2024, 7, 1), date(2024, 7, 31))
    assert [invoice.id for invoice in due_soon] == [on_time.id]

    marked = await InvoiceService.mark_overdue_invoices(db_session, publisher, today)
    assert [invoice.id for invoice in marked] == [late.id]
    assert (await InvoiceService.get_invoice_by_id(db_session, late.id)).status == InvoiceStatus.OVERDUE
    assert (await InvoiceService.get_invoice_by_id(db_session, draft_late.id)).status == InvoiceStatus.DRAFT

    paid = await InvoiceService.record_payment(db_session, late.id, "CARD", publisher)
    assert paid.status == InvoiceStatus.PAID


@pytest.mark.asyncio
async def test_list_invoices_filters_and_paginates(db_session, publisher):
    customer = uuid.uuid4()
    for _ in range(3):
        await InvoiceService.create_invoice(db_session, new_invoice(customer_id=customer), new_items(), publisher)
    await InvoiceService.create_invoice(db_session, new_invoice(), new_items(), publisher)

    page, total = await InvoiceService.list_invoices(db_session, customer_id=customer, skip=0, limit=2)

    assert total == 3
    assert len(page) == 2
    assert all(invoice.customer_id == customer for invoice in page)

    drafts, draft_total = await InvoiceService.list_invoices(db_session, status=InvoiceStatus.DRAFT)
    assert draft_total == 4


@pytest.mark.asyncio
async def test_update_invoice_header_only(db_session, publisher):
    invoice = await InvoiceService.create_invoice(db_session, new_invoice(), new_items(), publisher)

    updated = await InvoiceService.update_invoice(
        db_session, invoice.id, {"customer_city": "Springfield", "notes": "Leave at reception", "subtotal": "1.00"}
    )

    assert updated.customer_city == "Springfield"
    assert updated.notes == "Leave at reception"
    assert updated.subtotal == invoice.subtotal


@pytest.mark.asyncio
async def test_lookup_by_number_and_missing(db_session, publisher):
    invoice = await InvoiceService.create_invoice(db_session, new_invoice(), new_items(), publisher)

    found = await InvoiceService.get_invoice_by_number(db_session, invoice.invoice_number)
    assert found.id == invoice.id

    with pytest.raises(ResourceNotFoundError):
        await InvoiceService.get_invoice_by_id(db_session, 9999)
    with pytest.raises(ResourceNotFoundError):
        await InvoiceService.get_invoice_by_number(db_session, "INV-00000000-NOPE")


@pytest.mark.asyncio
async def test_delete_only_draft_or_cancelled(db_session, publisher):
    draft = await InvoiceService.create_invoice(db_session, new_invoice(), new_items(), publisher)
    sent = await InvoiceService.create_invoice(db_session, new_invoice(), new_items(), publisher)
    await InvoiceService.update_invoice_status(db_session, sent.id, InvoiceStatus.SENT, publisher)

    await InvoiceService.delete_invoice(db_session, draft.id)
    with pytest.raises(InvalidStatusTransitionError):
        await InvoiceService.delete_invoice(db_session, sent.id)

    assert await count(db_session, Invoice) == 1
    assert await count(db_session, InvoiceItem) == 2


@pytest.mark.asyncio
async def test_actions_are_audited(db_session, publisher):
    actor = {"sub": "finance_user", "user_id": 2, "role": "FINANCE"}
    invoice = await InvoiceService.create_invoice(db_session, new_invoice(), new_items(), publisher, actor=actor)
    await InvoiceService.update_invoice_status(db_session, invoice.id, InvoiceStatus.CANCELLED, publisher, actor=actor)

    result = await db_session.execute(select(AuditLog).order_by(AuditLog.id))
    logs = result.scalars().all()

    assert [log.action for log in logs] == ["INVOICE_CREATED", "INVOICE_STATUS_CHANGED"]
    assert all(log.actor_id == 2 and log.resource_id == str(invoice.id) for log in logs)
