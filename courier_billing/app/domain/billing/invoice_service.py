"""
Invoice Service (Domain Logic).

Handles invoice creation, lookups, the status workflow and payments.
Creation is atomic: header and line items commit together or not at all.
Events are published only after a successful commit.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from courier_billing.app.core.config import settings
from courier_billing.app.core.exceptions import (
    InputValidationError,
    InvalidStatusTransitionError,
    InvariantViolationError,
    PersistenceError,
    ResourceNotFoundError,
)
from courier_billing.app.domain.billing.events import InvoiceEvent, InvoiceEventPublisher, InvoiceEventType
from courier_billing.app.domain.billing.invoice_assembler import (
    InvoiceAssembler,
    OrderContext,
    default_due_date,
    generate_invoice_number,
)
from courier_billing.app.domain.pricing.pricing_service import PricingService
from courier_billing.app.domain.pricing.tax_engine import TaxEngine
from courier_billing.app.domain.pricing.types import MAX_AMOUNT, ZERO, Number, money, to_decimal
from courier_billing.app.models.invoice import Invoice
from courier_billing.app.models.invoice_enums import ALLOWED_STATUS_TRANSITIONS, InvoiceItemType, InvoiceStatus
from courier_billing.app.models.invoice_item import InvoiceItem
from courier_billing.app.models.pricing_enums import CustomerType, PriorityLevel
from courier_billing.app.services.audit import AuditAction, log_event

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
MAX_QUANTITY = 1_000_000

# Header fields that may be edited after creation
EDITABLE_HEADER_FIELDS = (
    "customer_name", "customer_address", "customer_city", "customer_postal_code",
    "customer_country", "issue_date", "due_date", "notes",
)

DELETABLE_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED})


def compute_line_total(unit_price: Number, quantity: int, discount_percent: Optional[Number] = None) -> Decimal:
    """unit_price * quantity, less discount_percent, rounded half-up to cents."""
    line_total = to_decimal(unit_price) * quantity
    if discount_percent is not None and to_decimal(discount_percent) > 0:
        line_total -= line_total * to_decimal(discount_percent) / HUNDRED
    return money(line_total)


def _validate_item(item: InvoiceItem) -> None:
    """
    Reject out-of-range items. A caller-supplied line_total must equal the
    computed one; it is never trusted on its own.
    """
    if item.quantity is None or not 1 <= item.quantity <= MAX_QUANTITY:
        raise InputValidationError(f"quantity must be between 1 and {MAX_QUANTITY}", field="quantity")
    if item.unit_price is None:
        raise InputValidationError("unit_price is required", field="unit_price")
    unit_price = to_decimal(item.unit_price)
    if not unit_price.is_finite() or abs(unit_price) > MAX_AMOUNT:
        raise InputValidationError(f"unit_price must not exceed {MAX_AMOUNT}", field="unit_price")
    if item.item_type != InvoiceItemType.DISCOUNT and unit_price < 0:
        raise InputValidationError("unit_price must be non-negative", field="unit_price")
    discount = to_decimal(item.discount_percent)
    if not discount.is_finite() or discount < 0 or discount > HUNDRED:
        raise InputValidationError("discount_percent must be between 0 and 100", field="discount_percent")

    expected = compute_line_total(unit_price, item.quantity, discount)
    if abs(expected) > MAX_AMOUNT:
        raise InputValidationError(f"line_total must not exceed {MAX_AMOUNT}", field="line_total")
    if item.line_total is not None:
        line_total = to_decimal(item.line_total)
        if item.item_type != InvoiceItemType.DISCOUNT and line_total < 0:
            raise InputValidationError("line_total must be non-negative", field="line_total")
        if line_total != expected:
            raise InputValidationError(
                f"line_total {line_total} does not match unit_price x quantity less discount ({expected})",
                field="line_total",
            )


def check_transition(invoice: Invoice, new_status: InvoiceStatus) -> None:
    if new_status not in ALLOWED_STATUS_TRANSITIONS[invoice.status]:
        raise InvalidStatusTransitionError(invoice.status.value, new_status.value)


class InvoiceService:

    @staticmethod
    async def create_invoice(
        db: AsyncSession,
        invoice: Invoice,
        items: Sequence[InvoiceItem],
        publisher: InvoiceEventPublisher,
        actor: Optional[dict] = None,
    ) -> Invoice:
        """
        Persist an invoice with its line items.

        Flow:
        1. Default number, dates, status, currency and tax rate
        2. Compute missing line totals
        3. Derive subtotal, tax and total from the lines
        4. Write header + items in one transaction
        5. Publish invoice.created

        Raises:
            InputValidationError: Bad quantities, prices or discounts
            InvariantViolationError: Preset subtotal disagrees with the lines
            PersistenceError: The write failed; nothing was stored
        """
        if not items:
            raise InputValidationError("An invoice needs at least one line item", field="items")

        invoice.issue_date = invoice.issue_date or date.today()
        invoice.due_date = invoice.due_date or default_due_date(invoice.issue_date)
        if invoice.due_date < invoice.issue_date:
            raise InputValidationError("due_date must not be before issue_date", field="due_date")
        invoice.invoice_number = invoice.invoice_number or generate_invoice_number(invoice.issue_date)
        invoice.status = invoice.status or InvoiceStatus.DRAFT
        invoice.currency = invoice.currency or settings.default_currency
        if invoice.tax_rate is None:
            invoice.tax_rate = to_decimal(settings.tax_rate)

        subtotal = ZERO
        for item in items:
            if item.quantity is None:
                item.quantity = 1
            item.discount_percent = item.discount_percent if item.discount_percent is not None else ZERO
            _validate_item(item)
            if item.line_total is None:
                item.line_total = compute_line_total(item.unit_price, item.quantity, item.discount_percent)
            subtotal += money(item.line_total)

        if invoice.subtotal is not None and money(invoice.subtotal) != subtotal:
            raise InvariantViolationError(
                "Invoice subtotal does not match its line items",
                details={"subtotal": str(invoice.subtotal), "lines_total": str(subtotal)},
            )

        tax_amount, total = TaxEngine(invoice.tax_rate).apply_tax(subtotal)
        if subtotal < 0 or total > MAX_AMOUNT:
            raise InputValidationError(f"Invoice total must be between 0 and {MAX_AMOUNT}", field="items")
        invoice.subtotal = subtotal
        invoice.tax_amount = tax_amount
        invoice.total_amount = total
        invoice.items = list(items)

        try:
            db.add(invoice)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Failed to persist invoice for customer %s: %s", invoice.customer_id, exc)
            raise PersistenceError(
                "Invoice could not be saved; no partial invoice was stored",
                details={"customer_id": str(invoice.customer_id)},
            ) from exc

        invoice = await InvoiceService.get_invoice_by_id(db, invoice.id)
        logger.info("Created invoice %s (%s) total=%s", invoice.id, invoice.invoice_number, invoice.total_amount)

        await publisher.publish(InvoiceEvent.from_invoice(InvoiceEventType.CREATED, invoice))
        await log_event(
            db=db,
            action=AuditAction.INVOICE_CREATED,
            actor=actor,
            resource_type="invoice",
            resource_id=invoice.id,
            metadata={"invoice_number": invoice.invoice_number, "total_amount": str(invoice.total_amount)},
        )
        return invoice

    @staticmethod
    async def invoice_delivery(
        db: AsyncSession,
        order: OrderContext,
        publisher: InvoiceEventPublisher,
        distance_km: Number,
        customer_type: Optional[CustomerType] = None,
        priority_level: Optional[PriorityLevel] = None,
        weight_kg: Optional[Number] = None,
        delivery_time: Optional[datetime] = None,
        actor: Optional[dict] = None,
    ) -> Invoice:
        """Price a completed delivery and invoice it."""
        calculation = await PricingService.calculate_price(
            db,
            distance_km=distance_km,
            customer_id=order.customer_id,
            customer_type=customer_type,
            priority_level=priority_level,
            weight_kg=weight_kg,
            delivery_time=delivery_time,
        )
        if order.distance_km is None:
            order.distance_km = to_decimal(distance_km)
        invoice, items = InvoiceAssembler.assemble(calculation, order)
        return await InvoiceService.create_invoice(db, invoice, items, publisher, actor=actor)

    # Lookups

    @staticmethod
    async def get_invoice_by_id(db: AsyncSession, invoice_id: int) -> Invoice:
        result = await db.execute(
            select(Invoice)
            .options(selectinload(Invoice.items))
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise ResourceNotFoundError("Invoice", invoice_id)
        return invoice

    @staticmethod
    async def get_invoice_by_number(db: AsyncSession, invoice_number: str) -> Invoice:
        result = await db.execute(
            select(Invoice).options(selectinload(Invoice.items)).where(Invoice.invoice_number == invoice_number)
        )
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise ResourceNotFoundError("Invoice", invoice_number)
        return invoice

    @staticmethod
    async def list_invoices(
        db: AsyncSession,
        customer_id: Optional[UUID] = None,
        status: Optional[InvoiceStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[List[Invoice], int]:
        """Page of invoices, newest first, plus the total match count."""
        query = select(Invoice)
        count_query = select(func.count(Invoice.id))
        if customer_id is not None:
            query = query.where(Invoice.customer_id == customer_id)
            count_query = count_query.where(Invoice.customer_id == customer_id)
        if status is not None:
            query = query.where(Invoice.status == status)
            count_query = count_query.where(Invoice.status == status)

        total = (await db.execute(count_query)).scalar_one()
        result = await db.execute(
            query.options(selectinload(Invoice.items))
            .order_by(desc(Invoice.issue_date), desc(Invoice.id))
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def list_overdue_invoices(db: AsyncSession, today: Optional[date] = None) -> List[Invoice]:
        """SENT invoices whose due date has passed."""
        today = today or date.today()
        result = await db.execute(
            select(Invoice)
            .options(selectinload(Invoice.items))
            .where(Invoice.due_date < today, Invoice.status == InvoiceStatus.SENT)
            .order_by(Invoice.due_date, Invoice.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_invoices_due_between(db: AsyncSession, start_date: date, end_date: date) -> List[Invoice]:
        """SENT invoices falling due in [start_date, end_date]."""
        if start_date > end_date:
            raise InputValidationError("start_date must not be after end_date", field="start_date")
        result = await db.execute(
            select(Invoice)
            .options(selectinload(Invoice.items))
            .where(
                Invoice.due_date >= start_date,
                Invoice.due_date <= end_date,
                Invoice.status == InvoiceStatus.SENT,
            )
            .order_by(Invoice.due_date, Invoice.id)
        )
        return list(result.scalars().all())

    # Mutations

    @staticmethod
    async def update_invoice(
        db: AsyncSession, invoice_id: int, data: Dict[str, Any], actor: Optional[dict] = None
    ) -> Invoice:
        """Edit customer snapshot, dates or notes. Amounts and status are not editable here."""
        invoice = await InvoiceService.get_invoice_by_id(db, invoice_id)

        changes = {key: data[key] for key in EDITABLE_HEADER_FIELDS if data.get(key) is not None}
        issue_date = changes.get("issue_date", invoice.issue_date)
        due_date = changes.get("due_date", invoice.due_date)
        if due_date < issue_date:
            raise InputValidationError("due_date must not be before issue_date", field="due_date")

        for key, value in changes.items():
            setattr(invoice, key, value)
        await db.commit()

        invoice = await InvoiceService.get_invoice_by_id(db, invoice_id)
        await log_event(
            db=db,
            action=AuditAction.INVOICE_UPDATED,
            actor=actor,
            resource_type="invoice",
            resource_id=invoice_id,
            metadata={"fields": sorted(changes)},
        )
        return invoice

    @staticmethod
    async def update_invoice_status(
        db: AsyncSession,
        invoice_id: int,
        new_status: InvoiceStatus,
        publisher: InvoiceEventPublisher,
        notes: Optional[str] = None,
        actor: Optional[dict] = None,
    ) -> Invoice:
        """
        Move an invoice along its workflow.

        Raises:
            ResourceNotFoundError: Unknown invoice
            InvalidStatusTransitionError: Transition not allowed from the current status
        """
        invoice = await InvoiceService.get_invoice_by_id(db, invoice_id)
        previous = invoice.status
        check_transition(invoice, new_status)

        invoice.status = new_status
        if notes is not None:
            invoice.notes = notes
        if new_status == InvoiceStatus.SENT and invoice.sent_at is None:
            invoice.sent_at = datetime.now(timezone.utc)
        await db.commit()

        invoice = await InvoiceService.get_invoice_by_id(db, invoice_id)
        logger.info("Invoice %s status %s -> %s", invoice_id, previous.value, new_status.value)

        await publisher.publish(InvoiceEvent.from_invoice(InvoiceEventType.STATUS_UPDATED, invoice, notes=notes))
        await log_event(
            db=db,
            action=AuditAction.INVOICE_STATUS_CHANGED,
            actor=actor,
            resource_type="invoice",
            resource_id=invoice_id,
            metadata={"from": previous.value, "to": new_status.value},
        )
        return invoice

    @staticmethod
    async def record_payment(
        db: AsyncSession,
        invoice_id: int,
        payment_method: str,
        publisher: InvoiceEventPublisher,
        payment_date: Optional[date] = None,
        payment_reference: Optional[str] = None,
        actor: Optional[dict] = None,
    ) -> Invoice:
        """Mark an invoice PAID with its payment details."""
        invoice = await InvoiceService.get_invoice_by_id(db, invoice_id)
        check_transition(invoice, InvoiceStatus.PAID)

        invoice.status = InvoiceStatus.PAID
        invoice.payment_method = payment_method
        invoice.payment_date = payment_date or date.today()
        invoice.payment_reference = payment_reference
        await db.commit()

        invoice = await InvoiceService.get_invoice_by_id(db, invoice_id)
        logger.info("Recorded %s payment for invoice %s", payment_method, invoice_id)

        await publisher.publish(InvoiceEvent.from_invoice(InvoiceEventType.PAID, invoice))
        await log_event(
            db=db,
            action=AuditAction.INVOICE_PAID,
            actor=actor,
            resource_type="invoice",
            resource_id=invoice_id,
            metadata={"payment_method": payment_method, "payment_reference": payment_reference},
        )
        return invoice

    @staticmethod
    async def mark_overdue_invoices(
        db: AsyncSession,
        publisher: InvoiceEventPublisher,
        today: Optional[date] = None,
        actor: Optional[dict] = None,
    ) -> List[Invoice]:
        """Move every SENT invoice past its due date to OVERDUE."""
        overdue = await InvoiceService.list_overdue_invoices(db, today)
        for invoice in overdue:
            invoice.status = InvoiceStatus.OVERDUE
        await db.commit()

        for invoice in overdue:
            await db.refresh(invoice)
            await publisher.publish(InvoiceEvent.from_invoice(InvoiceEventType.STATUS_UPDATED, invoice, notes="Payment overdue"))
            await log_event(
                db=db,
                action=AuditAction.INVOICE_STATUS_CHANGED,
                actor=actor,
                resource_type="invoice",
                resource_id=invoice.id,
                metadata={"from": InvoiceStatus.SENT.value, "to": InvoiceStatus.OVERDUE.value},
            )

        if overdue:
            logger.info("Marked %d invoice(s) overdue", len(overdue))
        return overdue

    @staticmethod
    async def delete_invoice(db: AsyncSession, invoice_id: int, actor: Optional[dict] = None) -> None:
        """Delete a DRAFT or CANCELLED invoice together with its items."""
        invoice = await InvoiceService.get_invoice_by_id(db, invoice_id)
        if invoice.status not in DELETABLE_STATUSES:
            raise InvalidStatusTransitionError(invoice.status.value, "DELETED")

        invoice_number = invoice.invoice_number
        await db.delete(invoice)
        await db.commit()

        logger.info("Deleted invoice %s (%s)", invoice_id, invoice_number)
        await log_event(
            db=db,
            action=AuditAction.INVOICE_DELETED,
            actor=actor,
            resource_type="invoice",
            resource_id=invoice_id,
            metadata={"invoice_number": invoice_number},
        )
