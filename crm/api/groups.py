"""Users groups API router."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crm.db.session import get_db
from crm.schemas.schemas import GroupCreate, GroupOut
from crm.models import UsersGroup
from crm.core.exceptions import ResourceConflictError
from crm.core.security import get_current_user_id, require_owner

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("/", response_model=GroupOut)
async def create_group(
    body: GroupCreate,
    db: Session = Depends(get_db),
    owner_id: int = Depends(require_owner),
):
    """Create a users group that invitations can target."""
    if db.query(UsersGroup).filter(UsersGroup.name == body.name).first():
        raise ResourceConflictError(f"Group '{body.name}' already exists")
    group = UsersGroup(name=body.name, description=body.description)
    db.add(group)
    db.commit()
    db.refresh(group)
    return group


@router.get("/", response_model=List[GroupOut])
async def list_groups(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    groups = db.query(UsersGroup).order_by(UsersGroup.name).all()
    return groups
