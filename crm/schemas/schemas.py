"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str
    device_token: Optional[str] = None

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

class RefreshRequest(BaseModel):
    refresh_token: str

class RefreshResponse(BaseModel):
    """``tokens`` is null when the refresh token was rejected."""
    tokens: Optional[TokenResponse] = None

class LogoutRequest(BaseModel):
    device_token: Optional[str] = None

class ForgotPasswordRequest(BaseModel):
    email: str

class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str

class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


# ---- Invitation ----
class InviteRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str
    group_id: int

class ResendInvitationRequest(BaseModel):
    email: str

class ConfirmInvitationRequest(BaseModel):
    token: str
    password: str
    password_confirmation: str
    username: Optional[str] = None
    full_name: Optional[str] = None

class InvitationOut(BaseModel):
    email: str
    message: str = "Invitation sent"


# ---- User ----
class EmailSignature(BaseModel):
    brand_id: str
    signature: str

class UserOut(BaseModel):
    id: int
    email: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    position: Optional[str] = None
    avatar_url: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    is_owner: bool = False
    group_ids: List[int] = []
    email_signatures: List[EmailSignature] = []
    get_notification_by_email: bool = False
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserListResponse(BaseModel):
    users: List[UserOut]
    total: int
    page: int

class ProfileUpdateRequest(BaseModel):
    email: Optional[str] = None
    username: Optional[str] = None
    full_name: Optional[str] = None
    position: Optional[str] = None
    avatar_url: Optional[str] = None
    description: Optional[str] = None

class UserUpdateRequest(ProfileUpdateRequest):
    password: Optional[str] = None
    group_ids: Optional[List[int]] = None

class UserCreateRequest(ProfileUpdateRequest):
    email: str = Field(..., min_length=3)
    password: str
    group_ids: List[int] = []

class SetActiveRequest(BaseModel):
    """Omit ``is_active`` to toggle."""
    is_active: Optional[bool] = None

class MemberPasswordRequest(BaseModel):
    new_password: str

class EmailSignaturesRequest(BaseModel):
    signatures: List[EmailSignature]

class NotificationConfigRequest(BaseModel):
    get_notification_by_email: bool


# ---- Group ----
class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None

class GroupOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
