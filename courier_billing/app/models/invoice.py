"""
Invoice database model.

An invoice aggregates line items for one customer.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, Enum, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from courier_billing.app.db.session import Base
from courier_billing.app.models.invoice_enums import InvoiceStatus
from courier_billing.app.models.invoice_item import InvoiceItem  # noqa: F401  (relationship target)


class Invoice(Base):
    """
    Invoice model.

    Invariants: subtotal equals the sum of item line totals,
    total_amount equals subtotal + tax_amount.
    Header and items are always written in the same transaction.
    """
    __tablename__ = "invoices"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)
    customer_id = Column(Uuid, nullable=False, index=True)

    # Invoice details
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(Enum(InvoiceStatus), default=InvoiceStatus.DRAFT, nullable=False, index=True)

    # Financials
    subtotal = Column(Numeric(12, 2), nullable=False)
    tax_rate = Column(Numeric(5, 4), nullable=False)
    tax_amount = Column(Numeric(12, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="USD", nullable=False)

    # Customer details (snapshot at time of invoice)
    customer_name = Column(String(255), nullable=False)
    customer_address = Column(String(255), nullable=True)
    customer_city = Column(String(100), nullable=True)
    customer_postal_code = Column(String(20), nullable=True)
    customer_country = Column(String(100), nullable=True)

    # Payment details
    payment_method = Column(String(50), nullable=True)
    payment_date = Column(Date, nullable=True)
    payment_reference = Column(String(100), nullable=True)

    # Metadata
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(String(1000), nullable=True)

    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceItem.id",
    )

    def __repr__(self):
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', status='{self.status}', total={self.total_amount})>"
