"""
Invoice Item database model.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from courier_billing.app.db.session import Base
from courier_billing.app.models.invoice_enums import InvoiceItemType


class InvoiceItem(Base):
    """
    Invoice line item.

    delivery_id references the originating delivery for lookup only;
    the dispatch service owns deliveries.
    """
    __tablename__ = "invoice_items"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    invoice_id = Column(Integer, ForeignKey('invoices.id', ondelete="CASCADE"), nullable=False, index=True)

    # Item details
    item_type = Column(Enum(InvoiceItemType), nullable=False)
    description = Column(String(255), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    discount_percent = Column(Numeric(5, 2), default=0, nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)

    delivery_id = Column(Uuid, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    invoice = relationship("Invoice", back_populates="items")

    def __repr__(self):
        return f"<InvoiceItem(id={self.id}, type='{self.item_type}', line_total={self.line_total})>"
