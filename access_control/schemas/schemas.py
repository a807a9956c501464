"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from access_control.core.levels import AccessLevel, coerce_level


class MessageResponse(BaseModel):
    message: str


# ---- Role ----
class RoleOut(BaseModel):
    id: int
    name: str
    display_name: str
    level: int = 0
    is_active: bool = True
    is_superuser: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    display_name: str = Field(..., min_length=1, max_length=255)
    level: int = 0
    is_superuser: bool = False

class RoleUpdate(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=255)
    level: Optional[int] = None
    is_active: Optional[bool] = None


# ---- Permission ----
class PermissionOut(BaseModel):
    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    module: str
    resource: str
    action: str
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class GrantResponse(BaseModel):
    message: str
    changed: bool

class InitializeResponse(BaseModel):
    message: str
    created: int


# ---- Page access ----
class PageOut(BaseModel):
    url: str
    name: str
    category: str

    class Config:
        from_attributes = True

class AccessRuleOut(BaseModel):
    id: Optional[int] = None
    role_id: int
    page_url: str
    page_name: Optional[str] = None
    access_level: AccessLevel

    class Config:
        from_attributes = True

    @field_validator("access_level", mode="before")
    @classmethod
    def _fail_closed(cls, v):
        # Stored values outside the enum read as "none".
        return coerce_level(v)

class AccessChangeIn(BaseModel):
    page_url: str = Field(..., min_length=1, max_length=255)
    role_id: int
    access_level: AccessLevel
    page_title: Optional[str] = None

class PageAccessConfig(BaseModel):
    roles: List[RoleOut]
    pages: List[PageOut]
    current_access: List[AccessRuleOut]

class BulkUpdateResponse(BaseModel):
    message: str
    submitted: int
    created: int
    updated: int

class CreateAllResponse(BaseModel):
    message: str
    created: int

class ResolvedPageAccess(BaseModel):
    page_url: str
    page_name: str
    category: str
    access_level: AccessLevel
    can_view: bool
    can_edit: bool
    can_create: bool
    can_delete: bool


# ---- Navigation ----
class NavItemOut(BaseModel):
    url: str
    name: str
    category: str
    access_level: AccessLevel

    class Config:
        from_attributes = True

class NavGroupOut(BaseModel):
    category: str
    pages: List[NavItemOut]

    class Config:
        from_attributes = True


# ---- Access check ----
class AccessCheckResponse(BaseModel):
    allowed: bool
    access_level: Optional[AccessLevel] = None
    unmet: List[str] = []


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    actor_role_id: Optional[int] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    old_value_json: Optional[str] = None
    new_value_json: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AuditPageOut(BaseModel):
    entries: List[AuditLogOut]
    total: int
    offset: int
    limit: int
