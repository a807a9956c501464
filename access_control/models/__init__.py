"""Models package: import all models so metadata sees every table."""

from access_control.models.role import Role
from access_control.models.access_rule import AccessRule
from access_control.models.permission import Permission, RolePermission
from access_control.models.audit_log import AuditLog

__all__ = [
    "Role", "AccessRule", "Permission", "RolePermission", "AuditLog",
]
