"""
Invoice enumerations.
"""

import enum


class InvoiceStatus(str, enum.Enum):
    """
    Invoice status enumeration.

    Status flow:
        DRAFT → SENT → PAID
        DRAFT / SENT → OVERDUE → PAID
        DRAFT / SENT / OVERDUE → CANCELLED
    """
    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class InvoiceItemType(str, enum.Enum):
    """Invoice line item type."""
    DELIVERY = "DELIVERY"
    SURCHARGE = "SURCHARGE"
    DISCOUNT = "DISCOUNT"
    OTHER = "OTHER"


ALLOWED_STATUS_TRANSITIONS = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.SENT, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED}),
    InvoiceStatus.SENT: frozenset({InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.CANCELLED: frozenset(),
}
