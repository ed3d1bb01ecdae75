"""
API Dependencies
Common dependencies for API endpoints
"""
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from stockflow.core.database import get_db  # noqa: F401
from stockflow.core.security import Identity, decode_identity
from stockflow.services.scheduler import AutomaticTriggerScheduler, get_scheduler

# Security scheme; missing credentials are reported as 401 below
security = HTTPBearer(auto_error=False)


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Identity:
    """
    Resolve the caller from the bearer JWT.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    identity = decode_identity(credentials.credentials)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def get_trigger_scheduler() -> AutomaticTriggerScheduler:
    """Process-wide automatic trigger scheduler."""
    return get_scheduler()
