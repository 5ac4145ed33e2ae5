"""
Outbound invoice events.

Invoice changes are announced through an InvoiceEventPublisher after the
database write has committed. The transport (message broker) lives outside
this service; the default publisher writes events to the log.
"""

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol
from uuid import UUID

from pydantic import BaseModel, Field

from courier_billing.app.core.config import settings
from courier_billing.app.models.invoice import Invoice
from courier_billing.app.models.invoice_enums import InvoiceStatus

logger = logging.getLogger(__name__)


class InvoiceEventType:
    CREATED = "invoice.created"
    STATUS_UPDATED = "invoice.status_updated"
    PAID = "invoice.paid"


class InvoiceEvent(BaseModel):
    """Event envelope plus invoice snapshot."""
    event_id: UUID = Field(default_factory=uuid.uuid4)
    event_type: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    source_service: str = Field(default_factory=lambda: settings.event_source_service)

    invoice_id: int
    invoice_number: str
    customer_id: UUID
    status: InvoiceStatus
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    subtotal: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    payment_method: Optional[str] = None
    payment_date: Optional[date] = None
    payment_reference: Optional[str] = None
    status_changed_at: datetime = Field(default_factory=datetime.utcnow)
    notes: Optional[str] = None

    @classmethod
    def from_invoice(cls, event_type: str, invoice: Invoice, notes: Optional[str] = None) -> "InvoiceEvent":
        return cls(
            event_type=event_type,
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            customer_id=invoice.customer_id,
            status=invoice.status,
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            subtotal=invoice.subtotal,
            tax_amount=invoice.tax_amount,
            total_amount=invoice.total_amount,
            currency=invoice.currency,
            payment_method=invoice.payment_method,
            payment_date=invoice.payment_date,
            payment_reference=invoice.payment_reference,
            notes=notes,
        )


class InvoiceEventPublisher(Protocol):

    async def publish(self, event: InvoiceEvent) -> None:
        ...


class LoggingInvoiceEventPublisher:
    """Default publisher: structured log line per event."""

    async def publish(self, event: InvoiceEvent) -> None:
        logger.info(
            "Invoice event %s",
            event.event_type,
            extra={"event": event.model_dump(mode="json")},
        )


_default_publisher = LoggingInvoiceEventPublisher()


def get_event_publisher() -> InvoiceEventPublisher:
    """
    FastAPI dependency for the outbound event publisher.

    Override in app.dependency_overrides to plug in a broker-backed publisher.
    """
    return _default_publisher
