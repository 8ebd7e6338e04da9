"""Stored refresh tokens."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from crm.db.base import Base


class RefreshToken(Base):
    """Hash of an issued refresh token; revoked on rotation and logout."""
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
