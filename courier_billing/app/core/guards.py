"""
Security guards for role-based access control.

Roles from the token are mapped to capabilities; endpoints declare the
capability they need rather than a list of roles.
"""

from typing import Dict, FrozenSet
from fastapi import Depends
from courier_billing.app.core.exceptions import InsufficientPermissionsError
from courier_billing.app.models.enums import UserRole
from courier_billing.app.core.dependencies import get_current_user


class Capability:
    PRICING_CALCULATE = "pricing:calculate"
    PRICING_READ = "pricing:read"
    PRICING_MANAGE = "pricing:manage"
    INVOICE_READ = "invoice:read"
    INVOICE_MANAGE = "invoice:manage"
    INVOICE_DELETE = "invoice:delete"


ROLE_CAPABILITIES: Dict[UserRole, FrozenSet[str]] = {
    UserRole.ADMIN: frozenset({
        Capability.PRICING_CALCULATE,
        Capability.PRICING_READ,
        Capability.PRICING_MANAGE,
        Capability.INVOICE_READ,
        Capability.INVOICE_MANAGE,
        Capability.INVOICE_DELETE,
    }),
    UserRole.FINANCE: frozenset({
        Capability.PRICING_CALCULATE,
        Capability.PRICING_READ,
        Capability.INVOICE_READ,
        Capability.INVOICE_MANAGE,
    }),
    UserRole.DISPATCHER: frozenset({
        Capability.PRICING_CALCULATE,
        Capability.INVOICE_READ,
    }),
}


def _role_of(current_user: dict) -> UserRole:
    user_role_str = current_user.get("role")
    if not user_role_str:
        raise InsufficientPermissionsError("Role information missing from token")
    try:
        return UserRole(user_role_str)
    except ValueError:
        raise InsufficientPermissionsError("Invalid role in token", details={"role": user_role_str})


def has_capability(role: UserRole, capability: str) -> bool:
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def require_capability(capability: str):
    """
    Dependency factory for capability checks.

    Usage:
        @router.post("/pricing/rules")
        async def create_rule(current_user: dict = Depends(require_capability(Capability.PRICING_MANAGE))):
            ...

    Raises:
        InsufficientPermissionsError 403 if the caller's role does not grant the capability
    """
    async def capability_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if not has_capability(_role_of(current_user), capability):
            raise InsufficientPermissionsError(
                f"Access denied. Missing capability: {capability}",
                details={"capability": capability}
            )
        return current_user

    return capability_checker
