"""
Invoice schemas.

Request and response models for invoice management.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID
from courier_billing.app.models.invoice_enums import InvoiceItemType, InvoiceStatus
from courier_billing.app.models.pricing_enums import CustomerType, PriorityLevel


class CustomerSnapshot(BaseModel):
    """Customer details copied onto the invoice."""
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_address: Optional[str] = Field(None, max_length=255)
    customer_city: Optional[str] = Field(None, max_length=100)
    customer_postal_code: Optional[str] = Field(None, max_length=20)
    customer_country: Optional[str] = Field(None, max_length=100)


class InvoiceItemCreate(BaseModel):
    """Line item. line_total is computed when omitted."""
    item_type: InvoiceItemType
    description: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(1, ge=1)
    unit_price: Decimal
    discount_percent: Decimal = Field(Decimal("0"), ge=0, le=100)
    line_total: Optional[Decimal] = None
    delivery_id: Optional[UUID] = None


class InvoiceCreate(CustomerSnapshot):
    """Manually created invoice."""
    customer_id: UUID
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    notes: Optional[str] = Field(None, max_length=1000)
    items: List[InvoiceItemCreate] = Field(..., min_length=1)


class DeliveryInvoiceRequest(CustomerSnapshot):
    """Completed delivery to price and invoice in one step."""
    customer_id: UUID
    order_number: Optional[str] = Field(None, max_length=50)
    delivery_id: Optional[UUID] = None
    customer_type: Optional[CustomerType] = None
    priority_level: Optional[PriorityLevel] = None
    distance_km: Decimal
    weight_kg: Optional[Decimal] = None
    delivery_time: Optional[datetime] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    issue_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=1000)


class InvoiceUpdate(BaseModel):
    """Editable header fields. Amounts and status change through dedicated endpoints."""
    customer_name: Optional[str] = Field(None, min_length=1, max_length=255)
    customer_address: Optional[str] = Field(None, max_length=255)
    customer_city: Optional[str] = Field(None, max_length=100)
    customer_postal_code: Optional[str] = Field(None, max_length=20)
    customer_country: Optional[str] = Field(None, max_length=100)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=1000)


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus
    notes: Optional[str] = Field(None, max_length=1000)


class PaymentRecord(BaseModel):
    payment_method: str = Field(..., min_length=1, max_length=50)
    payment_date: Optional[date] = None
    payment_reference: Optional[str] = Field(None, max_length=100)


class InvoiceItemResponse(BaseModel):
    id: int
    item_type: InvoiceItemType
    description: str
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal
    line_total: Decimal
    delivery_id: Optional[UUID]

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    """Schema for displaying an invoice with its items."""
    id: int
    invoice_number: str
    customer_id: UUID
    issue_date: date
    due_date: date
    status: InvoiceStatus
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    currency: str
    customer_name: str
    customer_address: Optional[str]
    customer_city: Optional[str]
    customer_postal_code: Optional[str]
    customer_country: Optional[str]
    payment_method: Optional[str]
    payment_date: Optional[date]
    payment_reference: Optional[str]
    notes: Optional[str]
    created_by: Optional[int]
    created_at: datetime
    updated_at: datetime
    sent_at: Optional[datetime]
    items: List[InvoiceItemResponse]

    class Config:
        from_attributes = True


class InvoiceListResponse(BaseModel):
    """Schema for paginated invoice list."""
    invoices: List[InvoiceResponse]
    total: int
    skip: int
    limit: int
