"""
User roles enumeration.

Roles are carried in bearer tokens issued by the auth service.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Full access, including pricing rule management
        FINANCE: Manages invoices and reads pricing rules
        DISPATCHER: Quotes prices and views invoices
    """
    ADMIN = "ADMIN"
    FINANCE = "FINANCE"
    DISPATCHER = "DISPATCHER"
