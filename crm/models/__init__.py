"""Models package — import all models so metadata.create_all sees them."""

from crm.models.group import UsersGroup
from crm.models.user import User, user_group_members
from crm.models.refresh_token import RefreshToken
from crm.models.audit_log import AuditLog

__all__ = [
    "UsersGroup", "User", "user_group_members", "RefreshToken", "AuditLog",
]
