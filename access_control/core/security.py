"""JWT role identity and guard dependencies for routes."""

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from access_control.core.config import settings
from access_control.core.exceptions import forbidden, unauthorized, unavailable
from access_control.services.context_loader import ContextLoader, get_context_loader
from access_control.services.evaluator import PairLike, RoleContext
from access_control.services.guard import Guard, GuardDecision, GuardOutcome, LoadStatus, RoleState

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)

PAGE_HEADER = "X-Page-Url"


def create_access_token(role_id: int, subject: Optional[str] = None,
                        expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT carrying the caller's role id."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    )
    to_encode = {
        "sub": subject or f"role:{role_id}",
        "role_id": role_id,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_role_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> Optional[int]:
    """Role id from the bearer token, or None when no token was sent."""
    if credentials is None:
        return None
    payload = decode_token(credentials.credentials)
    role_id = payload.get("role_id")
    if role_id is None:
        raise unauthorized("Invalid token payload")
    try:
        return int(role_id)
    except (TypeError, ValueError):
        raise unauthorized("Invalid token payload")


async def get_role_state(
    role_id: Optional[int] = Depends(get_current_role_id),
    loader: ContextLoader = Depends(get_context_loader),
) -> RoleState:
    return await loader.state(role_id)


def enforce(decision: GuardDecision, state: RoleState) -> RoleContext:
    """Turn a guard decision into the HTTP response of a denied request."""
    if decision.outcome == GuardOutcome.ERROR:
        raise unavailable()
    if decision.denied:
        if decision.reason == "unauthenticated":
            raise unauthorized()
        raise forbidden({"message": "Insufficient permissions", "unmet": decision.unmet})
    return state.context


async def get_current_context(state: RoleState = Depends(get_role_state)) -> RoleContext:
    """Any resolved, active role."""
    if state.status != LoadStatus.READY:
        raise unavailable()
    if state.context is None or not state.context.is_active:
        raise unauthorized()
    return state.context


class RequirePageAccess:
    """Dependency that checks the caller's level on a page.

    The page is fixed at construction or read from the ``X-Page-Url``
    header, falling back to the request path.
    """

    def __init__(self, required_level: str, page_url: Optional[str] = None):
        self.guard = Guard.level(required_level, page_url)

    async def __call__(
        self, request: Request, state: RoleState = Depends(get_role_state),
    ) -> RoleContext:
        location = request.headers.get(PAGE_HEADER) or request.url.path
        return enforce(self.guard.evaluate(state, location), state)


class RequirePermissions:
    """Dependency that checks resource-action grants (all or any)."""

    def __init__(self, pairs: Sequence[PairLike], require_all: bool = True):
        self.guard = Guard.permissions(pairs, require_all)

    async def __call__(self, state: RoleState = Depends(get_role_state)) -> RoleContext:
        return enforce(self.guard.evaluate(state), state)


# Convenience dependency instances
require_permission_admin = RequirePermissions([("permissions", "manage")])
require_role_admin = RequirePermissions([("roles", "manage")])
require_permission_viewer = RequirePermissions(
    [("permissions", "view"), ("permissions", "manage")], require_all=False,
)
