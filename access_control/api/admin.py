"""Audit trail and health endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from access_control.core.security import require_permission_admin
from access_control.db.session import get_db
from access_control.schemas.schemas import AuditLogOut, AuditPageOut
from access_control.services.audit_service import audit_service
from access_control.services.cache_service import cache_service
from access_control.services.evaluator import RoleContext

logger = logging.getLogger("access_control.admin")

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/audit", response_model=AuditPageOut)
async def audit_history(
    action: Optional[str] = Query(None, description="Action family, e.g. 'permission' or 'page_access.bulk_updated'"),
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    actor_role_id: Optional[int] = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_permission_admin),
):
    """Who changed which grants and matrix cells, newest first."""
    entries, total = audit_service.history(
        db, actor_role_id, action, resource_type, resource_id, offset, limit,
    )
    return AuditPageOut(
        entries=[AuditLogOut.model_validate(e) for e in entries],
        total=total, offset=offset, limit=limit,
    )


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Store and cache reachability. A missing cache only slows checks down."""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error("Health check could not reach the database: %s", e)
        database = "error"

    cache = "ok" if cache_service.health_check() else "unavailable"
    return {
        "database": database,
        "cache": cache,
        "status": "healthy" if database == "ok" else "degraded",
    }
