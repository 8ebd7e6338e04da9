"""Users API router — owner-only member management and invitations."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from crm.db.session import get_db
from crm.schemas.schemas import (
    UserCreateRequest, UserUpdateRequest, UserOut, UserListResponse, SetActiveRequest,
    MemberPasswordRequest, InviteRequest, ResendInvitationRequest, InvitationOut,
    MessageResponse,
)
from crm.services.auth_service import AuthService, get_auth_service
from crm.services.invitation_service import InvitationService, get_invitation_service
from crm.services.audit_service import audit_service
from crm.core.security import require_owner

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    owner_id: int = Depends(require_owner),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.list_users(db, page=page, page_size=page_size, search=search)


@router.post("/", response_model=UserOut)
async def create_user(
    body: UserCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    owner_id: int = Depends(require_owner),
    auth: AuthService = Depends(get_auth_service),
):
    """Create an active user directly, skipping the invitation email."""
    fields = body.model_dump(exclude_unset=True, exclude={"email", "password", "group_ids"})
    user = auth.create_user(db, body.email, body.password, group_ids=body.group_ids, **fields)
    audit_service.log_from_request(
        db, request, action="user.created", actor_id=owner_id, target_user_id=user.id,
    )
    return user


@router.post("/invite", response_model=InvitationOut)
async def invite(
    body: InviteRequest,
    request: Request,
    db: Session = Depends(get_db),
    owner_id: int = Depends(require_owner),
    invitations: InvitationService = Depends(get_invitation_service),
):
    """Invite a new member. The registration token only travels by email."""
    invitations.invite(db, body.email, body.password, body.group_id)
    audit_service.log_from_request(
        db, request, action="user.invited", actor_id=owner_id, details={"email": body.email},
    )
    return InvitationOut(email=body.email)


@router.post("/resend-invitation", response_model=InvitationOut)
async def resend_invitation(
    body: ResendInvitationRequest,
    db: Session = Depends(get_db),
    owner_id: int = Depends(require_owner),
    invitations: InvitationService = Depends(get_invitation_service),
):
    invitations.resend_invitation(db, body.email)
    return InvitationOut(email=body.email, message="Invitation resent")


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    owner_id: int = Depends(require_owner),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.get_user(db, user_id)


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: int,
    body: UserUpdateRequest,
    db: Session = Depends(get_db),
    owner_id: int = Depends(require_owner),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.update_user(db, user_id, **body.model_dump(exclude_unset=True))


@router.post("/{user_id}/active", response_model=UserOut)
async def set_active(
    user_id: int,
    body: SetActiveRequest,
    request: Request,
    db: Session = Depends(get_db),
    owner_id: int = Depends(require_owner),
    auth: AuthService = Depends(get_auth_service),
):
    user = auth.set_active(db, user_id, body.is_active)
    audit_service.log_from_request(
        db, request,
        action="user.activated" if user.is_active else "user.deactivated",
        actor_id=owner_id,
        target_user_id=user.id,
    )
    return user


@router.post("/{user_id}/reset-password", response_model=MessageResponse)
async def reset_member_password(
    user_id: int,
    body: MemberPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    owner_id: int = Depends(require_owner),
    auth: AuthService = Depends(get_auth_service),
):
    auth.reset_member_password(db, user_id, body.new_password)
    audit_service.log_from_request(
        db, request, action="user.member_password_reset", actor_id=owner_id, target_user_id=user_id,
    )
    return MessageResponse(message="Password has been reset")
