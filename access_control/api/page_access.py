"""Page access API: matrix editor endpoints, navigation and access checks."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from access_control.core.config import settings
from access_control.core.exceptions import bad_request
from access_control.core.levels import AccessLevel
from access_control.core.pages import default_catalog
from access_control.core.rate_limiter import limiter
from access_control.core.security import (
    PAGE_HEADER, RequirePageAccess, get_current_context, require_permission_admin,
    require_permission_viewer,
)
from access_control.db.session import get_db
from access_control.schemas.schemas import (
    AccessChangeIn, AccessCheckResponse, AccessRuleOut, BulkUpdateResponse,
    CreateAllResponse, NavGroupOut, PageAccessConfig, ResolvedPageAccess,
)
from access_control.services.audit_service import audit_service
from access_control.services.evaluator import RoleContext
from access_control.services.guard import Guard, RoleState
from access_control.services.navigation import navigation_filter
from access_control.services.page_access_service import page_access_service

router = APIRouter(tags=["page-access"])


@router.get("/roles/{role_id}/page-access", response_model=List[AccessRuleOut])
async def role_page_access(
    role_id: int,
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_permission_viewer),
):
    """Stored rules of a role."""
    return page_access_service.list_rules(db, role_id)


@router.get("/me/page-access", response_model=List[ResolvedPageAccess])
async def my_page_access(ctx: RoleContext = Depends(get_current_context)):
    """The caller's resolved level on every catalog page."""
    return [
        ResolvedPageAccess(page_url=p.url, page_name=p.name, category=p.category, **ctx.page_permissions(p.url))
        for p in default_catalog
    ]


@router.get("/page-access-management/config", response_model=PageAccessConfig)
async def page_access_config(
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_permission_admin),
):
    """Roles, pages and current rules for the matrix editor."""
    return page_access_service.get_config(db, default_catalog)


@router.post("/page-access-management/bulk-update", response_model=BulkUpdateResponse)
@limiter.limit(settings.BULK_UPDATE_RATE_LIMIT)
async def bulk_update(
    request: Request,
    changes: List[AccessChangeIn],
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_permission_admin),
):
    """Apply a batch of matrix changes. All are applied or none."""
    result = page_access_service.bulk_update(
        db, changes, default_catalog,
        actor_role_id=ctx.role_id, audit_meta=audit_service.request_meta(request),
    )
    message = "No changes" if not result["submitted"] else "Changes saved"
    return BulkUpdateResponse(message=message, **result)


@router.post("/page-access-management/create-all", response_model=CreateAllResponse)
async def create_all(
    db: Session = Depends(get_db),
    ctx: RoleContext = Depends(require_permission_admin),
):
    """Create a 'none' rule for every (role, page) pair that has no rule yet."""
    created = page_access_service.materialize_all(
        db, default_level=AccessLevel.NONE, actor_role_id=ctx.role_id,
    )
    return CreateAllResponse(message=f"Created {created} rules", created=created)


@router.get("/navigation", response_model=List[NavGroupOut])
async def navigation(ctx: RoleContext = Depends(get_current_context)):
    """Menu groups visible to the caller; empty groups are left out."""
    return navigation_filter.menu(ctx)


@router.get("/access/check", response_model=AccessCheckResponse)
async def check_access(
    page_url: Optional[str] = Query(None),
    level: AccessLevel = Query(AccessLevel.READ),
    resource: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    ctx: RoleContext = Depends(get_current_context),
):
    """Evaluate one page level or one resource-action pair for the caller."""
    if page_url:
        decision = Guard.level(level, page_url).evaluate(RoleState.ready(ctx))
        return AccessCheckResponse(
            allowed=decision.allowed,
            access_level=ctx.access_level(page_url),
            unmet=decision.unmet,
        )
    if resource and action:
        decision = Guard.permissions([(resource, action)]).evaluate(RoleState.ready(ctx))
        return AccessCheckResponse(allowed=decision.allowed, unmet=decision.unmet)
    raise bad_request("Provide page_url, or resource and action")


@router.get("/access/enter", response_model=ResolvedPageAccess)
async def enter_page(
    request: Request,
    ctx: RoleContext = Depends(RequirePageAccess("read")),
):
    """Route-entry check for the page in the ``X-Page-Url`` header."""
    page_url = request.headers.get(PAGE_HEADER) or request.url.path
    page = default_catalog.get(page_url)
    return ResolvedPageAccess(
        page_url=page_url,
        page_name=page.name if page else page_url,
        category=page.category if page else "general",
        **ctx.page_permissions(page_url),
    )
