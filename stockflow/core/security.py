"""
Security utilities for StockFlow
Identity resolution from bearer tokens
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from .config import settings
from .logging import get_logger

security_logger = get_logger("security")


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    WAREHOUSE = "warehouse"
    SUPPLIER = "supplier"


@dataclass(frozen=True)
class Identity:
    """Resolved caller: who they are and what role they act in"""
    user_id: Optional[int]
    role: Role

    @classmethod
    def system(cls) -> "Identity":
        """Identity used by background jobs such as the automatic trigger"""
        return cls(user_id=None, role=Role.ADMIN)

    @property
    def is_system(self) -> bool:
        return self.user_id is None


def create_access_token(
    user_id: int,
    role: Role,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode: Dict[str, Any] = {
        "sub": str(user_id),
        "role": Role(role).value,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_identity(token: str) -> Optional[Identity]:
    """
    Verify JWT token and return the identity it carries

    Returns None when the token is invalid, expired or malformed.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        security_logger.warning(f"Rejected token: {e}")
        return None

    subject = payload.get("sub")
    role = payload.get("role")
    if subject is None or role is None:
        return None
    try:
        return Identity(user_id=int(subject), role=Role(role))
    except ValueError:
        security_logger.warning(f"Token carries unknown role or subject: {role!r}/{subject!r}")
        return None
