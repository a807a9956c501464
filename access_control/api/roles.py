"""Role administration API."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from access_control.core.security import RequirePermissions, require_role_admin
from access_control.db.session import get_db
from access_control.schemas.schemas import MessageResponse, RoleCreate, RoleOut, RoleUpdate
from access_control.services.evaluator import RoleContext
from access_control.services.role_service import role_service

router = APIRouter(prefix="/roles", tags=["roles"])

require_role_viewer = RequirePermissions([("roles", "view"), ("roles", "manage")], require_all=False)


@router.get("", response_model=List[RoleOut])
async def list_roles(
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_role_viewer),
):
    return role_service.list_roles(db, active_only)


@router.post("", response_model=RoleOut, status_code=201)
async def create_role(
    body: RoleCreate,
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_role_admin),
):
    return role_service.create_role(
        db, body.name, body.display_name, body.level, body.is_superuser,
        actor_role_id=ctx.role_id,
    )


@router.put("/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: int,
    body: RoleUpdate,
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_role_admin),
):
    return role_service.update_role(
        db, role_id, body.display_name, body.level, body.is_active,
        actor_role_id=ctx.role_id,
    )


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_role_admin),
):
    """Delete a role together with its page rules and grants."""
    role_service.delete_role(db, role_id, actor_role_id=ctx.role_id)
    return MessageResponse(message="Role deleted")
