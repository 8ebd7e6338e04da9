"""Seed default users groups into the database."""

from sqlalchemy.orm import Session
from crm.models import UsersGroup

DEFAULT_GROUPS = [
    {"name": "Admins", "description": "Manage members, invitations and settings"},
    {"name": "Growth team", "description": "Run growth hacking experiments"},
    {"name": "Viewers", "description": "Read-only access to boards and pipelines"},
]


def seed_groups(db: Session) -> None:
    """Insert default groups if they don't already exist."""
    for group_data in DEFAULT_GROUPS:
        existing = db.query(UsersGroup).filter(UsersGroup.name == group_data["name"]).first()
        if not existing:
            db.add(UsersGroup(**group_data))

    db.commit()
    print(f"✅ Seeded {len(DEFAULT_GROUPS)} groups")
