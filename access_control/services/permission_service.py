"""Permission registry: resource-action definitions and role grants."""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from access_control.core.exceptions import ResourceNotFoundError
from access_control.models.permission import Permission, RolePermission
from access_control.models.role import Role
from access_control.services.audit_service import audit_service
from access_control.services.cache_service import cache_service
from access_control.services.evaluator import PairLike, load_context

logger = logging.getLogger("access_control.permissions")


# (module, resource, actions)
DEFAULT_PERMISSIONS = [
    ("sales", "quotations", ("view", "create", "edit", "delete")),
    ("sales", "invoices", ("view", "create", "edit", "delete")),
    ("sales", "tax_invoices", ("view", "create", "edit", "delete")),
    ("sales", "receipts", ("view", "create", "edit", "delete")),
    ("production", "work_orders", ("view", "create", "edit", "delete")),
    ("production", "work_queue", ("view", "edit")),
    ("production", "daily_work_log", ("view", "create", "edit")),
    ("production", "calendar", ("view", "edit")),
    ("accounting", "transactions", ("view", "create", "edit", "delete")),
    ("inventory", "stock", ("view", "create", "edit", "delete")),
    ("customers", "customers", ("view", "create", "edit", "delete")),
    ("master_data", "master_data", ("view", "create", "edit", "delete")),
    ("reports", "reports", ("view", "export")),
    ("users", "users", ("view", "create", "edit", "delete")),
    ("users", "roles", ("view", "manage")),
    ("users", "permissions", ("view", "manage")),
]


def _display(resource: str, action: str) -> str:
    return f"{action.capitalize()} {resource.replace('_', ' ')}"


class PermissionService:
    """Reads and mutates the resource-action grant model."""

    @staticmethod
    def list_permissions(
        db: Session, module: Optional[str] = None, active_only: bool = False,
    ) -> List[Permission]:
        query = db.query(Permission)
        if module:
            query = query.filter(Permission.module == module)
        if active_only:
            query = query.filter(Permission.is_active.is_(True))
        return query.order_by(Permission.module, Permission.resource, Permission.id).all()

    @staticmethod
    def list_grants(db: Session, role_id: int) -> List[Permission]:
        """Permissions granted to a role (inactive definitions included)."""
        PermissionService._get_role(db, role_id)
        return (
            db.query(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .filter(RolePermission.role_id == role_id)
            .order_by(Permission.module, Permission.resource, Permission.id)
            .all()
        )

    @staticmethod
    def has_permission(db: Session, role_id: int, resource: str, action: str) -> bool:
        ctx = load_context(db, role_id)
        return ctx is not None and ctx.has_permission(resource, action)

    @staticmethod
    def has_any(db: Session, role_id: int, pairs: Iterable[PairLike]) -> bool:
        ctx = load_context(db, role_id)
        return ctx is not None and ctx.has_any(pairs)

    @staticmethod
    def has_all(db: Session, role_id: int, pairs: Iterable[PairLike]) -> bool:
        pairs = list(pairs)
        if not pairs:
            return True
        ctx = load_context(db, role_id)
        return ctx is not None and ctx.has_all(pairs)

    @staticmethod
    def grant(
        db: Session, role_id: int, permission_id: int,
        actor_role_id: Optional[int] = None, audit_meta: Optional[dict] = None,
    ) -> bool:
        """Grant a permission. Returns False when it was already granted."""
        PermissionService._get_role(db, role_id)
        permission = PermissionService._get_permission(db, permission_id)

        if PermissionService._edge(db, role_id, permission_id) is not None:
            return False

        db.add(RolePermission(role_id=role_id, permission_id=permission_id))
        audit_service.record(
            db, actor_role_id, "permission.granted", "role", role_id,
            new_value={"permission_id": permission_id, "name": permission.name},
            **(audit_meta or {}),
        )
        try:
            db.commit()
        except IntegrityError:
            # Granted concurrently by someone else; the end state is the same.
            db.rollback()
            return False
        cache_service.invalidate_roles([role_id])
        logger.info("Granted %s to role %s", permission.name, role_id)
        return True

    @staticmethod
    def revoke(
        db: Session, role_id: int, permission_id: int,
        actor_role_id: Optional[int] = None, audit_meta: Optional[dict] = None,
    ) -> bool:
        """Revoke a permission. Returns False when nothing was granted."""
        PermissionService._get_role(db, role_id)
        permission = PermissionService._get_permission(db, permission_id)

        edge = PermissionService._edge(db, role_id, permission_id)
        if edge is None:
            return False

        db.delete(edge)
        audit_service.record(
            db, actor_role_id, "permission.revoked", "role", role_id,
            old_value={"permission_id": permission_id, "name": permission.name},
            **(audit_meta or {}),
        )
        db.commit()
        cache_service.invalidate_roles([role_id])
        logger.info("Revoked %s from role %s", permission.name, role_id)
        return True

    @staticmethod
    def initialize_defaults(db: Session, actor_role_id: Optional[int] = None) -> int:
        """Insert the default permission catalog, skipping existing pairs."""
        existing = {
            (p.resource, p.action) for p in db.query(Permission.resource, Permission.action).all()
        }
        created = 0
        for module, resource, actions in DEFAULT_PERMISSIONS:
            for action in actions:
                if (resource, action) in existing:
                    continue
                db.add(Permission(
                    name=f"{resource}.{action}",
                    display_name=_display(resource, action),
                    module=module,
                    resource=resource,
                    action=action,
                    is_active=True,
                ))
                created += 1
        if created:
            audit_service.record(
                db, actor_role_id, "permission.initialized", "permission",
                new_value={"created": created},
            )
        db.commit()
        logger.info("Initialized %d default permissions", created)
        return created

    # ---- helpers ----

    @staticmethod
    def _get_role(db: Session, role_id: int) -> Role:
        role = db.query(Role).filter(Role.id == role_id).first()
        if not role:
            raise ResourceNotFoundError(f"Role {role_id} not found")
        return role

    @staticmethod
    def _get_permission(db: Session, permission_id: int) -> Permission:
        permission = db.query(Permission).filter(Permission.id == permission_id).first()
        if not permission:
            raise ResourceNotFoundError(f"Permission {permission_id} not found")
        return permission

    @staticmethod
    def _edge(db: Session, role_id: int, permission_id: int) -> Optional[RolePermission]:
        return (
            db.query(RolePermission)
            .filter(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
            .first()
        )


permission_service = PermissionService()
