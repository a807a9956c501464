"""Audit service: append-only trail for permission and role mutations."""

import json
from typing import Any, List, Optional, Tuple

from fastapi import Request
from sqlalchemy.orm import Session

from access_control.models.audit_log import AuditLog


class AuditService:
    """Records immutable audit log entries."""

    @staticmethod
    def record(
        db: Session,
        actor_role_id: Optional[int],
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """Stage an audit entry in the caller's transaction without committing.

        Used where the entry must land atomically with the change it describes.
        """
        entry = AuditLog(
            actor_role_id=actor_role_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            old_value_json=json.dumps(old_value, default=str) if old_value is not None else None,
            new_value_json=json.dumps(new_value, default=str) if new_value is not None else None,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(entry)
        return entry

    @staticmethod
    def request_meta(request: Optional[Request]) -> dict:
        """IP and user-agent of a request, as ``record`` kwargs."""
        if request is None:
            return {}
        return {
            "ip_address": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent", "")[:500],
        }

    @staticmethod
    def history(
        db: Session,
        actor_role_id: Optional[int] = None,
        action_prefix: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[AuditLog], int]:
        """Newest-first entries and the total count for the filters.

        ``action_prefix`` matches dotted action families, so ``"permission"``
        selects grants, revocations and initialization.
        """
        filters = []
        if actor_role_id is not None:
            filters.append(AuditLog.actor_role_id == actor_role_id)
        if action_prefix:
            filters.append(AuditLog.action.startswith(action_prefix.rstrip(".")))
        if resource_type:
            filters.append(AuditLog.resource_type == resource_type)
        if resource_id is not None:
            filters.append(AuditLog.resource_id == str(resource_id))

        query = db.query(AuditLog).filter(*filters)
        entries = (
            query.order_by(AuditLog.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return entries, query.count()


audit_service = AuditService()
