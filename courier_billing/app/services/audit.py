"""
Audit logging service for tracking admin and finance actions.

Provides centralized logging of pricing and invoice changes for compliance.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from courier_billing.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    PRICING_RULE_CREATED = "PRICING_RULE_CREATED"
    PRICING_RULE_UPDATED = "PRICING_RULE_UPDATED"
    PRICING_RULE_DEACTIVATED = "PRICING_RULE_DEACTIVATED"

    INVOICE_CREATED = "INVOICE_CREATED"
    INVOICE_UPDATED = "INVOICE_UPDATED"
    INVOICE_STATUS_CHANGED = "INVOICE_STATUS_CHANGED"
    INVOICE_PAID = "INVOICE_PAID"
    INVOICE_DELETED = "INVOICE_DELETED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor: Optional[Dict[str, Any]] = None,
    resource_type: Optional[str] = None,
    resource_id: Any = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Log an admin or finance event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor: Token payload of the user performing the action (None for system)
        resource_type: Kind of record acted upon ("pricing_rule", "invoice")
        resource_id: ID of that record
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    actor = actor or {}
    audit_log = AuditLog(
        actor_id=actor.get("user_id"),
        actor_username=actor.get("sub"),
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        meta_data=metadata,
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log
