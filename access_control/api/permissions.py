"""Resource-action permission API: definitions, grants and revocations."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from access_control.db.session import get_db
from access_control.schemas.schemas import (
    PermissionOut, GrantResponse, InitializeResponse,
)
from access_control.services.audit_service import audit_service
from access_control.services.evaluator import RoleContext
from access_control.services.permission_service import permission_service
from access_control.core.security import (
    get_current_context, require_permission_admin, require_permission_viewer,
)

router = APIRouter(tags=["permissions"])


@router.get("/permissions", response_model=List[PermissionOut])
async def list_permissions(
    module: Optional[str] = Query(None),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_permission_viewer),
):
    """List permission definitions."""
    return permission_service.list_permissions(db, module, active_only)


@router.post("/permissions/initialize", response_model=InitializeResponse)
async def initialize_permissions(
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_permission_admin),
):
    """Insert the default permission catalog (existing pairs are kept)."""
    created = permission_service.initialize_defaults(db, actor_role_id=ctx.role_id)
    return InitializeResponse(message=f"Created {created} permissions", created=created)


@router.get("/me/permissions", response_model=List[PermissionOut])
async def my_permissions(
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(get_current_context),
):
    """Grants of the caller's role."""
    return permission_service.list_grants(db, ctx.role_id)


@router.get("/roles/{role_id}/permissions", response_model=List[PermissionOut])
async def role_permissions(
    role_id: int,
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_permission_viewer),
):
    """Grants of a role."""
    return permission_service.list_grants(db, role_id)


@router.post("/roles/{role_id}/permissions/{permission_id}", response_model=GrantResponse)
async def grant_permission(
    role_id: int,
    permission_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_permission_admin),
):
    """Grant a permission to a role. Granting twice is not an error."""
    changed = permission_service.grant(
        db, role_id, permission_id,
        actor_role_id=ctx.role_id, audit_meta=audit_service.request_meta(request),
    )
    return GrantResponse(
        message="Permission granted" if changed else "Permission already granted",
        changed=changed,
    )


@router.delete("/roles/{role_id}/permissions/{permission_id}", response_model=GrantResponse)
async def revoke_permission(
    role_id: int,
    permission_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_permission_admin),
):
    """Revoke a permission from a role. Revoking an absent grant is not an error."""
    changed = permission_service.revoke(
        db, role_id, permission_id,
        actor_role_id=ctx.role_id, audit_meta=audit_service.request_meta(request),
    )
    return GrantResponse(
        message="Permission revoked" if changed else "Permission was not granted",
        changed=changed,
    )
