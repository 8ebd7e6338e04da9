"""Password hashing and bearer-token authentication helpers."""

from typing import Optional

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from crm.core.exceptions import (
    EmptyPassword, PasswordTooLong, WeakPassword, forbidden, unauthorized,
)
from crm.db.session import get_db
from crm.models import User
from crm.services.token_service import TokenService, get_token_service

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72
MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Raises:
        EmptyPassword: If ``password`` is empty.
        PasswordTooLong: If ``password`` encodes to more than 72 bytes.
    """
    if not password:
        raise EmptyPassword()
    pwd_bytes = password.encode("utf-8")
    if len(pwd_bytes) > BCRYPT_MAX_BYTES:
        raise PasswordTooLong()
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash."""
    if not plain_password or not hashed_password:
        return False
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    try:
        return bcrypt.checkpw(pwd_bytes, hashed_bytes)
    except ValueError:
        # not a bcrypt hash, or a plaintext over 72 bytes
        return False


def check_password_strength(password: str) -> None:
    """Raise WeakPassword unless the password is 8+ chars with digit, upper and lower."""
    if (
        not password
        or len(password) < MIN_PASSWORD_LENGTH
        or not any(c.isdigit() for c in password)
        or not any(c.isupper() for c in password)
        or not any(c.islower() for c in password)
    ):
        raise WeakPassword()


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> int:
    """Extract user_id from the JWT Bearer token."""
    if credentials is None:
        raise unauthorized()
    payload = tokens.decode(credentials.credentials)
    if payload is None:
        raise unauthorized("Invalid or expired token")
    return int(payload["sub"])


async def require_owner(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> int:
    """Dependency that only lets active owner accounts through."""
    user = db.get(User, user_id)
    if user is None or not user.is_active or not user.is_owner:
        raise forbidden("Only the account owner can do this")
    return user_id
