"""
JWT token utilities.

Tokens are issued by the auth service; this service only verifies them.
create_access_token is used by tests and operational scripts.
"""

from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from courier_billing.app.core.config import settings


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload to encode (should include: sub, user_id, role)
        expires_delta: Optional custom expiration time

    Example payload:
        {
            "sub": "finance.clerk",
            "user_id": 7,
            "role": "FINANCE",
            "exp": 1234567890
        }
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decoded payload if the signature and expiry are valid, None otherwise."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
