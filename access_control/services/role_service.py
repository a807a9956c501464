"""Role administration."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from access_control.core.exceptions import ResourceConflictError, ResourceNotFoundError
from access_control.models.role import Role
from access_control.services.audit_service import audit_service
from access_control.services.cache_service import cache_service

logger = logging.getLogger("access_control.roles")


class RoleService:
    """Create, update and delete roles."""

    @staticmethod
    def list_roles(db: Session, active_only: bool = False) -> List[Role]:
        query = db.query(Role)
        if active_only:
            query = query.filter(Role.is_active.is_(True))
        return query.order_by(Role.id).all()

    @staticmethod
    def get_role(db: Session, role_id: int) -> Role:
        role = db.query(Role).filter(Role.id == role_id).first()
        if not role:
            raise ResourceNotFoundError(f"Role {role_id} not found")
        return role

    @staticmethod
    def create_role(
        db: Session,
        name: str,
        display_name: str,
        level: int = 0,
        is_superuser: bool = False,
        actor_role_id: Optional[int] = None,
    ) -> Role:
        if db.query(Role).filter(Role.name == name).first():
            raise ResourceConflictError(f"Role '{name}' already exists")

        role = Role(
            name=name,
            display_name=display_name,
            level=level,
            is_superuser=is_superuser,
            is_active=True,
        )
        db.add(role)
        db.flush()
        audit_service.record(
            db, actor_role_id, "role.created", "role", role.id,
            new_value={"name": name, "is_superuser": is_superuser},
        )
        db.commit()
        db.refresh(role)
        logger.info("Created role %s (%s)", role.id, name)
        return role

    @staticmethod
    def update_role(
        db: Session,
        role_id: int,
        display_name: Optional[str] = None,
        level: Optional[int] = None,
        is_active: Optional[bool] = None,
        actor_role_id: Optional[int] = None,
    ) -> Role:
        role = RoleService.get_role(db, role_id)
        if is_active is False and role.is_superuser:
            raise ResourceConflictError("The superuser role cannot be deactivated")
        old = {"display_name": role.display_name, "level": role.level, "is_active": role.is_active}

        if display_name:
            role.display_name = display_name
        if level is not None:
            role.level = level
        if is_active is not None:
            role.is_active = is_active

        audit_service.record(
            db, actor_role_id, "role.updated", "role", role_id,
            old_value=old,
            new_value={"display_name": role.display_name, "level": role.level, "is_active": role.is_active},
        )
        db.commit()
        db.refresh(role)
        cache_service.invalidate_roles([role_id])
        return role

    @staticmethod
    def delete_role(db: Session, role_id: int, actor_role_id: Optional[int] = None) -> None:
        """Delete a role with its page rules and grants. The bypass role cannot be deleted."""
        role = RoleService.get_role(db, role_id)
        if role.is_superuser:
            raise ResourceConflictError("The superuser role cannot be deleted")

        name = role.name
        db.delete(role)
        audit_service.record(
            db, actor_role_id, "role.deleted", "role", role_id,
            old_value={"name": name},
        )
        db.commit()
        cache_service.invalidate_roles([role_id])
        logger.info("Deleted role %s (%s)", role_id, name)


role_service = RoleService()
