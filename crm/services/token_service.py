"""Token service — JWT access/refresh issuance, verification and rotation."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from jose import JWTError, jwt

from crm.core.config import Settings, settings as default_settings

logger = logging.getLogger("crm.tokens")

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPair:
    """An access token and the refresh token issued alongside it."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenService:
    """Signs and verifies JWTs with a secret taken from injected settings."""

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings

    def _claims(self, user) -> Dict[str, Any]:
        return {"sub": str(user.id), "email": user.email}

    def _encode(self, data: Dict[str, Any], token_type: str, lifetime: timedelta) -> str:
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + lifetime
        to_encode.update({"exp": expire, "type": token_type, "jti": uuid.uuid4().hex})
        return jwt.encode(
            to_encode, self.settings.JWT_SECRET, algorithm=self.settings.JWT_ALGORITHM
        )

    def issue_access_token(self, user) -> str:
        """Create a short-lived access token for ``user``."""
        return self._encode(
            self._claims(user),
            ACCESS,
            timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRY_MINUTES),
        )

    def issue_refresh_token(self, user) -> str:
        """Create a refresh token for ``user``."""
        return self._encode(
            self._claims(user),
            REFRESH,
            timedelta(days=self.settings.REFRESH_TOKEN_EXPIRY_DAYS),
        )

    def issue_pair(self, user) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(user),
            refresh_token=self.issue_refresh_token(user),
        )

    def decode(self, token: str, expected_type: str = ACCESS) -> Optional[Dict[str, Any]]:
        """Return the token payload, or None if the token does not verify.

        Signature, expiry, token type and the presence of ``sub`` are all
        checked.
        """
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self.settings.JWT_SECRET,
                algorithms=[self.settings.JWT_ALGORITHM],
            )
        except JWTError as e:
            logger.debug("Rejected %s token: %s", expected_type, e)
            return None
        if payload.get("type") != expected_type or payload.get("sub") is None:
            return None
        return payload

    def refresh(self, refresh_token: str, user=None) -> Optional[TokenPair]:
        """Exchange a valid refresh token for a new access/refresh pair.

        Returns None on any verification failure so that callers can treat
        expired and forged tokens the same way. When ``user`` is given the new
        pair carries its current claims, and it must be the token's subject.
        """
        payload = self.decode(refresh_token, REFRESH)
        if payload is None:
            return None
        if user is not None and str(user.id) != payload["sub"]:
            return None
        identity = user or _Identity(id=payload["sub"], email=payload.get("email"))
        return self.issue_pair(identity)

    def expires_at(self, token: str) -> datetime:
        """Expiry of a token this service issued, as naive UTC."""
        claims = jwt.get_unverified_claims(token)
        return datetime.fromtimestamp(claims["exp"], tz=timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class _Identity:
    id: str
    email: Optional[str]


token_service = TokenService()


def get_token_service() -> TokenService:
    """FastAPI dependency returning the process-wide token service."""
    return token_service
