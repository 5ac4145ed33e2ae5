"""
Invoice API Endpoints.

Invoice creation, lookup, status workflow and payments.
Static paths are declared before /{invoice_id} so they are not shadowed.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
from typing import List, Optional
from uuid import UUID

from courier_billing.app.db.session import get_db
from courier_billing.app.core.guards import Capability, require_capability
from courier_billing.app.domain.billing.events import InvoiceEventPublisher, get_event_publisher
from courier_billing.app.domain.billing.invoice_assembler import OrderContext
from courier_billing.app.domain.billing.invoice_service import InvoiceService
from courier_billing.app.models.invoice import Invoice
from courier_billing.app.models.invoice_enums import InvoiceStatus
from courier_billing.app.models.invoice_item import InvoiceItem
from courier_billing.app.schemas.invoice import (
    DeliveryInvoiceRequest,
    InvoiceCreate,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceStatusUpdate,
    InvoiceUpdate,
    PaymentRecord,
)

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    request: InvoiceCreate,
    current_user: dict = Depends(require_capability(Capability.INVOICE_MANAGE)),
    db: AsyncSession = Depends(get_db),
    publisher: InvoiceEventPublisher = Depends(get_event_publisher)
):
    """Create an invoice from explicit line items."""
    header = request.model_dump(exclude={"items"})
    invoice = Invoice(**header, created_by=current_user.get("user_id"))
    items = [InvoiceItem(**item.model_dump()) for item in request.items]
    return await InvoiceService.create_invoice(db, invoice, items, publisher, actor=current_user)


@router.post("/deliveries", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def invoice_delivery(
    request: DeliveryInvoiceRequest,
    current_user: dict = Depends(require_capability(Capability.INVOICE_MANAGE)),
    db: AsyncSession = Depends(get_db),
    publisher: InvoiceEventPublisher = Depends(get_event_publisher)
):
    """
    Price a completed delivery and invoice it.

    Produces one DELIVERY line for the base rate, one for the distance
    charge, and one SURCHARGE line per non-zero surcharge.
    """
    order = OrderContext(
        customer_id=request.customer_id,
        customer_name=request.customer_name,
        order_number=request.order_number,
        delivery_id=request.delivery_id,
        distance_km=request.distance_km,
        customer_address=request.customer_address,
        customer_city=request.customer_city,
        customer_postal_code=request.customer_postal_code,
        customer_country=request.customer_country,
        currency=request.currency,
        issue_date=request.issue_date,
        notes=request.notes,
        created_by=current_user.get("user_id"),
    )
    return await InvoiceService.invoice_delivery(
        db,
        order,
        publisher,
        distance_km=request.distance_km,
        customer_type=request.customer_type,
        priority_level=request.priority_level,
        weight_kg=request.weight_kg,
        delivery_time=request.delivery_time,
        actor=current_user,
    )


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    customer_id: Optional[UUID] = Query(None),
    invoice_status: Optional[InvoiceStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(require_capability(Capability.INVOICE_READ)),
    db: AsyncSession = Depends(get_db)
):
    """List invoices, newest first, optionally filtered by customer and status."""
    invoices, total = await InvoiceService.list_invoices(
        db, customer_id=customer_id, status=invoice_status, skip=skip, limit=limit
    )
    return InvoiceListResponse(invoices=invoices, total=total, skip=skip, limit=limit)


@router.get("/overdue", response_model=List[InvoiceResponse])
async def list_overdue_invoices(
    current_user: dict = Depends(require_capability(Capability.INVOICE_MANAGE)),
    db: AsyncSession = Depends(get_db)
):
    """SENT invoices past their due date."""
    return await InvoiceService.list_overdue_invoices(db)


@router.post("/overdue/mark", response_model=List[InvoiceResponse])
async def mark_overdue_invoices(
    current_user: dict = Depends(require_capability(Capability.INVOICE_MANAGE)),
    db: AsyncSession = Depends(get_db),
    publisher: InvoiceEventPublisher = Depends(get_event_publisher)
):
    """Move SENT invoices past their due date to OVERDUE."""
    return await InvoiceService.mark_overdue_invoices(db, publisher, actor=current_user)


@router.get("/due-between", response_model=List[InvoiceResponse])
async def list_invoices_due_between(
    start_date: date = Query(...),
    end_date: date = Query(...),
    current_user: dict = Depends(require_capability(Capability.INVOICE_MANAGE)),
    db: AsyncSession = Depends(get_db)
):
    return await InvoiceService.list_invoices_due_between(db, start_date, end_date)


@router.get("/number/{invoice_number}", response_model=InvoiceResponse)
async def get_invoice_by_number(
    invoice_number: str,
    current_user: dict = Depends(require_capability(Capability.INVOICE_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await InvoiceService.get_invoice_by_number(db, invoice_number)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: int = Path(..., description="Invoice ID"),
    current_user: dict = Depends(require_capability(Capability.INVOICE_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await InvoiceService.get_invoice_by_id(db, invoice_id)


@router.put("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    request: InvoiceUpdate,
    invoice_id: int = Path(..., description="Invoice ID"),
    current_user: dict = Depends(require_capability(Capability.INVOICE_MANAGE)),
    db: AsyncSession = Depends(get_db)
):
    """Edit customer details, dates or notes."""
    return await InvoiceService.update_invoice(db, invoice_id, request.model_dump(), actor=current_user)


@router.put("/{invoice_id}/status", response_model=InvoiceResponse)
async def update_invoice_status(
    request: InvoiceStatusUpdate,
    invoice_id: int = Path(..., description="Invoice ID"),
    current_user: dict = Depends(require_capability(Capability.INVOICE_MANAGE)),
    db: AsyncSession = Depends(get_db),
    publisher: InvoiceEventPublisher = Depends(get_event_publisher)
):
    """
    Change invoice status.

    Allowed: DRAFT -> SENT/OVERDUE/CANCELLED, SENT -> PAID/OVERDUE/CANCELLED,
    OVERDUE -> PAID/CANCELLED. Anything else returns 409.
    """
    return await InvoiceService.update_invoice_status(
        db, invoice_id, request.status, publisher, notes=request.notes, actor=current_user
    )


@router.put("/{invoice_id}/payment", response_model=InvoiceResponse)
async def record_payment(
    request: PaymentRecord,
    invoice_id: int = Path(..., description="Invoice ID"),
    current_user: dict = Depends(require_capability(Capability.INVOICE_MANAGE)),
    db: AsyncSession = Depends(get_db),
    publisher: InvoiceEventPublisher = Depends(get_event_publisher)
):
    """Record a payment and mark the invoice PAID."""
    return await InvoiceService.record_payment(
        db,
        invoice_id,
        request.payment_method,
        publisher,
        payment_date=request.payment_date,
        payment_reference=request.payment_reference,
        actor=current_user,
    )


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: int = Path(..., description="Invoice ID"),
    current_user: dict = Depends(require_capability(Capability.INVOICE_DELETE)),
    db: AsyncSession = Depends(get_db)
):
    """Delete a DRAFT or CANCELLED invoice."""
    await InvoiceService.delete_invoice(db, invoice_id, actor=current_user)
