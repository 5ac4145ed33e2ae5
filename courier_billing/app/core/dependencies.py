"""
Authentication dependencies for FastAPI.

The bearer token is the only source of identity: user records live in
the auth service, so no database lookup happens here.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from courier_billing.app.core.exceptions import AuthenticationError
from courier_billing.app.core.jwt import decode_access_token

# HTTP Bearer security scheme; a missing header is reported as AuthenticationError below
security = HTTPBearer(auto_error=False)


async def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> dict:
    """
    Validate the bearer token and return its payload.

    Raises:
        AuthenticationError: 401 if the token is missing, invalid, expired or lacks a subject
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    if not payload.get("sub") or not payload.get("role"):
        raise AuthenticationError("Invalid token payload")

    return payload
