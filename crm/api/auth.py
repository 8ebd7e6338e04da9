"""Auth API router — login, refresh, logout, password lifecycle, own profile."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from crm.db.session import get_db
from crm.schemas.schemas import (
    LoginRequest, TokenResponse, RefreshRequest, RefreshResponse, LogoutRequest,
    ForgotPasswordRequest, ResetPasswordRequest, ChangePasswordRequest,
    ConfirmInvitationRequest, ProfileUpdateRequest, EmailSignaturesRequest,
    NotificationConfigRequest, UserOut, MessageResponse,
)
from crm.services.auth_service import AuthService, get_auth_service
from crm.services.invitation_service import InvitationService, get_invitation_service
from crm.services.audit_service import audit_service
from crm.core.security import get_current_user_id

router = APIRouter(prefix="/auth", tags=["auth"])


def _tokens(pair) -> TokenResponse:
    return TokenResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type,
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Authenticate and return an access/refresh token pair."""
    pair = auth.login(db, body.email, body.password, body.device_token)
    audit_service.log_from_request(db, request, action="user.login", actor_email=body.email)
    return _tokens(pair)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(
    body: RefreshRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Rotate a refresh token. ``tokens`` is null if it was rejected."""
    pair = auth.refresh_tokens(db, body.refresh_token)
    return RefreshResponse(tokens=_tokens(pair) if pair else None)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: LogoutRequest,
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    auth: AuthService = Depends(get_auth_service),
):
    """Revoke all refresh tokens and drop the device token."""
    auth.logout(db, user_id, body.device_token)
    audit_service.log_from_request(db, request, action="user.logout", actor_id=user_id)
    return MessageResponse(message="Logged out successfully")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    auth.forgot_password(db, body.email)
    return MessageResponse(message="Password reset instructions have been sent to your email")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    user = auth.reset_password(db, body.token, body.new_password)
    audit_service.log_from_request(
        db, request, action="user.password_reset", actor_id=user.id, target_user_id=user.id,
    )
    return MessageResponse(message="Password has been reset")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    auth: AuthService = Depends(get_auth_service),
):
    auth.change_password(db, user_id, body.current_password, body.new_password)
    audit_service.log_from_request(
        db, request, action="user.password_changed", actor_id=user_id, target_user_id=user_id,
    )
    return MessageResponse(message="Password changed")


@router.post("/confirm-invitation", response_model=UserOut)
async def confirm_invitation(
    body: ConfirmInvitationRequest,
    request: Request,
    db: Session = Depends(get_db),
    invitations: InvitationService = Depends(get_invitation_service),
):
    """Complete registration with the token from the invitation email."""
    user = invitations.confirm_invitation(
        db,
        body.token,
        body.password,
        body.password_confirmation,
        username=body.username,
        full_name=body.full_name,
    )
    audit_service.log_from_request(
        db, request, action="user.invitation_confirmed", actor_id=user.id, target_user_id=user.id,
    )
    return user


@router.get("/me", response_model=UserOut)
async def get_me(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    auth: AuthService = Depends(get_auth_service),
):
    """Get current user profile."""
    return auth.get_user(db, user_id)


@router.patch("/me", response_model=UserOut)
async def edit_profile(
    body: ProfileUpdateRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.edit_profile(db, user_id, **body.model_dump(exclude_unset=True))


@router.put("/me/email-signatures", response_model=UserOut)
async def config_email_signatures(
    body: EmailSignaturesRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.config_email_signatures(db, user_id, [s.model_dump() for s in body.signatures])


@router.put("/me/notifications", response_model=UserOut)
async def config_get_notification_by_email(
    body: NotificationConfigRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.config_get_notification_by_email(db, user_id, body.get_notification_by_email)
