"""Seed the owner account from env vars."""

from sqlalchemy.orm import Session

from crm.models import UsersGroup
from crm.core.config import settings
from crm.services.auth_service import auth_service, find_by_email


def seed_owner(db: Session) -> None:
    """Create the owner user if not already present."""
    if find_by_email(db, settings.OWNER_EMAIL):
        print(f"ℹ️  Owner '{settings.OWNER_EMAIL}' already exists, skipping.")
        return

    admins = db.query(UsersGroup).filter(UsersGroup.name == "Admins").first()
    auth_service.create_user(
        db,
        settings.OWNER_EMAIL,
        settings.OWNER_PASSWORD,
        group_ids=[admins.id] if admins else [],
        is_owner=True,
        full_name="Owner",
    )
    print(f"✅ Created owner: {settings.OWNER_EMAIL}")
