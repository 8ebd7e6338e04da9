"""User model."""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, JSON, ForeignKey, Table, func,
)
from sqlalchemy.orm import relationship
from crm.db.base import Base


user_group_members = Table(
    "user_group_members",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("group_id", Integer, ForeignKey("users_groups.id", ondelete="CASCADE"), primary_key=True),
)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class User(Base):
    """CRM team member account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False)
    # uniqueness key; always normalize_email(email)
    email_normalized = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=True)

    # profile details
    full_name = Column(String(255), nullable=True)
    position = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)

    device_tokens = Column(JSON, nullable=False, default=list)
    email_signatures = Column(JSON, nullable=False, default=list)
    get_notification_by_email = Column(Boolean, default=False, nullable=False)

    registration_token = Column(String(128), nullable=True, index=True)
    registration_token_expires = Column(DateTime, nullable=True)
    reset_password_token = Column(String(128), nullable=True, index=True)
    reset_password_expires = Column(DateTime, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    is_owner = Column(Boolean, default=False, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    groups = relationship("UsersGroup", secondary=user_group_members, back_populates="members", lazy="selectin")

    @property
    def group_ids(self) -> list[int]:
        return [g.id for g in self.groups]

    def set_email(self, email: str) -> None:
        self.email = email.strip()
        self.email_normalized = normalize_email(email)
