"""Auth service — login, token refresh, password lifecycle, user management."""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crm.core.config import Settings, settings as default_settings
from crm.core.exceptions import (
    CannotDeactivateOwner, DuplicatedEmail, EmptyPassword, IncorrectCurrentPassword,
    InvalidEmail, InvalidGroup, InvalidLogin, PasswordRequired, TokenInvalidOrExpired,
    UserNotFound,
)
from crm.core.security import check_password_strength, hash_password, verify_password
from crm.models import RefreshToken, User, UsersGroup
from crm.models.user import normalize_email
from crm.services.notification_service import NotificationService
from crm.services.token_service import REFRESH, TokenPair, TokenService

logger = logging.getLogger("crm.auth")

PROFILE_FIELDS = ("email", "username", "full_name", "position", "avatar_url", "description")


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email_normalized == normalize_email(email)).first()


def check_duplicated_email(db: Session, email: str, exclude_id: Optional[int] = None) -> None:
    """Raise DuplicatedEmail if another user already owns ``email`` (any case)."""
    query = db.query(User.id).filter(User.email_normalized == normalize_email(email))
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first() is not None:
        raise DuplicatedEmail()


def commit_user(db: Session, user: User) -> User:
    """Commit pending changes, mapping a unique-index race on email to DuplicatedEmail."""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicatedEmail()
    db.refresh(user)
    return user


def load_groups(db: Session, group_ids: List[int]) -> List[UsersGroup]:
    groups = db.query(UsersGroup).filter(UsersGroup.id.in_(group_ids)).all() if group_ids else []
    if len(groups) != len(set(group_ids)):
        raise InvalidGroup()
    return groups


class AuthService:
    """Coordinates credentials, tokens and notifications for user accounts."""

    def __init__(
        self,
        settings: Settings = default_settings,
        tokens: Optional[TokenService] = None,
        notifier: Optional[NotificationService] = None,
    ):
        self.settings = settings
        self.tokens = tokens or TokenService(settings)
        self.notifier = notifier or NotificationService(settings)

    # ---- Lookup ----

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        """Get a user by id.

        Raises:
            UserNotFound: If no such user exists.
        """
        user = db.get(User, user_id)
        if not user:
            raise UserNotFound()
        return user

    @staticmethod
    def list_users(db: Session, page: int = 1, page_size: int = 20, search: Optional[str] = None):
        """List users with pagination, optionally filtered by email/name/username."""
        query = db.query(User)
        if search:
            like = f"%{search.strip().lower()}%"
            query = query.filter(or_(
                User.email_normalized.like(like),
                User.full_name.ilike(like),
                User.username.ilike(like),
            ))
        total = query.count()
        users = (
            query.order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"users": users, "total": total, "page": page}

    # ---- Creation and edits ----

    def create_user(
        self,
        db: Session,
        email: str,
        password: str,
        group_ids: Optional[List[int]] = None,
        is_owner: bool = False,
        is_active: bool = True,
        **profile: Any,
    ) -> User:
        """Create a user directly (no invitation).

        Raises:
            DuplicatedEmail: If the email is taken, compared case-insensitively.
            EmptyPassword: If ``password`` is empty.
            InvalidGroup: If any of ``group_ids`` does not exist.
        """
        check_duplicated_email(db, email)
        user = User(
            hashed_password=hash_password(password),
            is_owner=is_owner,
            is_active=is_active,
            device_tokens=[],
            email_signatures=[],
        )
        user.set_email(email)
        self._merge_profile(user, profile)
        user.groups = load_groups(db, group_ids or [])
        db.add(user)
        commit_user(db, user)
        logger.info("Created user %s", user.id)
        return user

    def edit_profile(self, db: Session, user_id: int, **fields: Any) -> User:
        """Partially update the user's own profile. Password is never touched here."""
        user = self.get_user(db, user_id)
        self._apply_profile(db, user, fields)
        return commit_user(db, user)

    def update_user(
        self,
        db: Session,
        user_id: int,
        password: Optional[str] = None,
        group_ids: Optional[List[int]] = None,
        **fields: Any,
    ) -> User:
        """Admin update of a user. Password and groups change only when supplied."""
        user = self.get_user(db, user_id)
        self._apply_profile(db, user, fields)
        if password:
            user.hashed_password = hash_password(password)
        if group_ids is not None:
            user.groups = load_groups(db, group_ids)
        return commit_user(db, user)

    def _apply_profile(self, db: Session, user: User, fields: Dict[str, Any]) -> None:
        email = fields.get("email")
        if email is not None and normalize_email(email) != user.email_normalized:
            check_duplicated_email(db, email, exclude_id=user.id)
        self._merge_profile(user, fields)

    @staticmethod
    def _merge_profile(user: User, fields: Dict[str, Any]) -> None:
        for name in PROFILE_FIELDS:
            value = fields.get(name)
            if value is None:
                continue
            if name == "email":
                user.set_email(value)
            else:
                setattr(user, name, value)

    def config_email_signatures(
        self, db: Session, user_id: int, signatures: List[Dict[str, str]]
    ) -> User:
        """Replace the user's per-brand email signatures."""
        user = self.get_user(db, user_id)
        user.email_signatures = [
            {"brand_id": s["brand_id"], "signature": s["signature"]} for s in signatures
        ]
        return commit_user(db, user)

    def config_get_notification_by_email(self, db: Session, user_id: int, enabled: bool) -> User:
        user = self.get_user(db, user_id)
        user.get_notification_by_email = enabled
        return commit_user(db, user)

    # ---- Sessions ----

    def login(
        self, db: Session, email: str, password: str, device_token: Optional[str] = None
    ) -> TokenPair:
        """Authenticate by email/password and return a fresh token pair.

        Raises:
            InvalidLogin: For an unknown email, a wrong password or an
                inactive account alike.
        """
        user = find_by_email(db, email)
        if not user or not user.is_active or not verify_password(password, user.hashed_password):
            logger.info("Rejected login for %s", normalize_email(email))
            raise InvalidLogin()

        if device_token and device_token not in (user.device_tokens or []):
            user.device_tokens = [*(user.device_tokens or []), device_token]

        user.last_login_at = utc_now()
        pair = self.tokens.issue_pair(user)
        self._store_refresh_token(db, user.id, pair.refresh_token)
        db.commit()
        logger.info("User %s logged in", user.id)
        return pair

    def refresh_tokens(self, db: Session, refresh_token: str) -> Optional[TokenPair]:
        """Rotate a refresh token.

        Returns None when the token does not verify, was already used or
        revoked, or belongs to a user who is gone or deactivated.
        """
        payload = self.tokens.decode(refresh_token, REFRESH)
        if payload is None:
            return None

        user = db.get(User, int(payload["sub"]))
        if user is None or not user.is_active:
            return None

        # single conditional UPDATE so that only one concurrent caller can spend the token
        spent = db.query(RefreshToken).filter(
            RefreshToken.token_hash == hash_token(refresh_token),
            RefreshToken.revoked_at.is_(None),
        ).update({"revoked_at": utc_now()}, synchronize_session=False)
        if spent != 1:
            db.rollback()
            return None

        pair = self.tokens.refresh(refresh_token, user)
        if pair is None:
            db.rollback()
            return None
        self._store_refresh_token(db, user.id, pair.refresh_token)
        db.commit()
        return pair

    def logout(self, db: Session, user_id: int, device_token: Optional[str] = None) -> None:
        """Revoke all refresh tokens for a user and forget the device token."""
        user = self.get_user(db, user_id)
        self._revoke_refresh_tokens(db, user.id)
        if device_token and device_token in (user.device_tokens or []):
            user.device_tokens = [t for t in user.device_tokens if t != device_token]
        db.commit()

    def set_active(self, db: Session, user_id: int, is_active: Optional[bool] = None) -> User:
        """Activate or deactivate a user; ``None`` toggles the current state.

        Raises:
            UserNotFound: If no such user exists.
            CannotDeactivateOwner: If this would leave no active owner.
        """
        user = self.get_user(db, user_id)
        target = (not user.is_active) if is_active is None else is_active

        if not target and user.is_owner:
            other_owners = db.query(User.id).filter(
                User.is_owner.is_(True),
                User.is_active.is_(True),
                User.id != user.id,
            ).count()
            if other_owners == 0:
                raise CannotDeactivateOwner()

        user.is_active = target
        if not target:
            self._revoke_refresh_tokens(db, user.id)
        return commit_user(db, user)

    # ---- Passwords ----

    def change_password(
        self, db: Session, user_id: int, current_password: str, new_password: str
    ) -> User:
        """Change a password after checking the current one.

        Raises:
            EmptyPassword, IncorrectCurrentPassword, WeakPassword
        """
        if not new_password:
            raise EmptyPassword()
        user = self.get_user(db, user_id)
        if not verify_password(current_password, user.hashed_password):
            raise IncorrectCurrentPassword()
        check_password_strength(new_password)

        user.hashed_password = hash_password(new_password)
        return commit_user(db, user)

    def forgot_password(self, db: Session, email: str) -> None:
        """Issue a reset token and email it. Nothing is returned to the caller."""
        user = find_by_email(db, email)
        if not user:
            raise InvalidEmail()

        token = generate_token()
        user.reset_password_token = token
        user.reset_password_expires = utc_now() + timedelta(
            hours=self.settings.RESET_PASSWORD_EXPIRY_HOURS
        )
        db.commit()
        self.notifier.send_password_reset(user.email, token)

    def reset_password(self, db: Session, token: str, new_password: str) -> User:
        """Set a new password using a reset token; the token is single use.

        Raises:
            TokenInvalidOrExpired: If the token is unknown, used or expired.
            PasswordRequired: If ``new_password`` is empty.
        """
        user = None
        if token:
            user = db.query(User).filter(
                User.reset_password_token == token,
                User.reset_password_expires > utc_now(),
            ).first()
        if not user:
            raise TokenInvalidOrExpired("Password reset token is invalid or has expired.")
        if not new_password:
            raise PasswordRequired()

        user.hashed_password = hash_password(new_password)
        user.reset_password_token = None
        user.reset_password_expires = None
        self._revoke_refresh_tokens(db, user.id)
        return commit_user(db, user)

    def reset_member_password(self, db: Session, user_id: int, new_password: str) -> User:
        """Owner-initiated password reset for another member."""
        user = self.get_user(db, user_id)
        if not new_password:
            raise PasswordRequired()
        user.hashed_password = hash_password(new_password)
        self._revoke_refresh_tokens(db, user.id)
        return commit_user(db, user)

    # ---- Refresh token storage ----

    def _store_refresh_token(self, db: Session, user_id: int, refresh_token: str) -> None:
        db.add(RefreshToken(
            user_id=user_id,
            token_hash=hash_token(refresh_token),
            expires_at=self.tokens.expires_at(refresh_token),
        ))

    @staticmethod
    def _revoke_refresh_tokens(db: Session, user_id: int) -> None:
        db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
        ).update({"revoked_at": utc_now()}, synchronize_session=False)


auth_service = AuthService()


def get_auth_service() -> AuthService:
    """FastAPI dependency returning the process-wide auth service."""
    return auth_service
