"""
Audit Log Database Model.

Tracks administrative actions on pricing rules and invoices.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from courier_billing.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for billing actions.

    Events logged:
    - PRICING_RULE_CREATED / UPDATED / DEACTIVATED
    - INVOICE_CREATED / STATUS_CHANGED / PAID / DELETED
    """
    __tablename__ = "audit_logs"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What it was performed on
    resource_type = Column(String(50), nullable=True)
    resource_id = Column(String(64), index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_username}, resource={self.resource_type}:{self.resource_id})>"
