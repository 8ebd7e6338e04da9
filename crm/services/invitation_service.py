"""Invitation service — single-use registration tokens tied to a users group."""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from crm.core.config import Settings, settings as default_settings
from crm.core.exceptions import (
    EmptyPassword, InvalidGroup, InvalidRequest, PasswordMismatch,
    TokenInvalidOrExpired, UserNotFound,
)
from crm.core.security import check_password_strength, hash_password
from crm.models import User, UsersGroup
from crm.services.auth_service import (
    check_duplicated_email, commit_user, find_by_email, generate_token, utc_now,
)
from crm.services.notification_service import NotificationService

logger = logging.getLogger("crm.invitations")


class InvitationService:
    """Invites new members and completes their registration."""

    def __init__(
        self,
        settings: Settings = default_settings,
        notifier: Optional[NotificationService] = None,
    ):
        self.settings = settings
        self.notifier = notifier or NotificationService(settings)

    def _new_registration_token(self, user: User) -> str:
        token = generate_token()
        user.registration_token = token
        user.registration_token_expires = utc_now() + timedelta(
            days=self.settings.REGISTRATION_TOKEN_EXPIRY_DAYS
        )
        return token

    def invite(self, db: Session, email: str, password: str, group_id: int) -> str:
        """Create a pending user in ``group_id`` and return its registration token.

        Raises:
            InvalidGroup: If the group does not exist.
            DuplicatedEmail: If the email is already registered.
            EmptyPassword, WeakPassword, PasswordTooLong: If the initial
                password is unusable.
        """
        group = db.get(UsersGroup, group_id)
        if group is None:
            raise InvalidGroup()
        check_duplicated_email(db, email)
        if not password:
            raise EmptyPassword()
        check_password_strength(password)

        user = User(
            hashed_password=hash_password(password),
            is_active=True,
            device_tokens=[],
            email_signatures=[],
        )
        user.set_email(email)
        user.groups = [group]
        token = self._new_registration_token(user)
        db.add(user)
        commit_user(db, user)

        logger.info("Invited user %s into group %s", user.id, group.id)
        self.notifier.send_invitation(user.email, token)
        return token

    def resend_invitation(self, db: Session, email: str) -> str:
        """Replace a pending user's registration token and send it again.

        Raises:
            UserNotFound: If nobody has this email.
            InvalidRequest: If the user already completed registration.
        """
        user = find_by_email(db, email)
        if user is None:
            raise UserNotFound()
        if not user.registration_token:
            raise InvalidRequest()

        token = self._new_registration_token(user)
        db.commit()
        self.notifier.send_invitation(user.email, token)
        return token

    def confirm_invitation(
        self,
        db: Session,
        token: str,
        password: str,
        password_confirmation: str,
        username: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> User:
        """Complete registration: set the password and profile, consume the token.

        Raises:
            TokenInvalidOrExpired, EmptyPassword, PasswordMismatch
        """
        user = None
        if token:
            user = db.query(User).filter(
                User.registration_token == token,
                User.registration_token_expires > utc_now(),
            ).first()
        if user is None:
            raise TokenInvalidOrExpired()
        if not password:
            raise EmptyPassword()
        if password != password_confirmation:
            raise PasswordMismatch()

        user.hashed_password = hash_password(password)
        if username is not None:
            user.username = username
        if full_name is not None:
            user.full_name = full_name
        user.registration_token = None
        user.registration_token_expires = None
        return commit_user(db, user)


invitation_service = InvitationService()


def get_invitation_service() -> InvitationService:
    """FastAPI dependency returning the process-wide invitation service."""
    return invitation_service
