"""Users group model; invitations assign new users to one."""

from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship
from crm.db.base import Base


class UsersGroup(Base):
    """Named group of users used for permission assignment."""
    __tablename__ = "users_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    members = relationship("User", secondary="user_group_members", back_populates="groups")
