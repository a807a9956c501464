"""Resource-action permission and role grant models."""

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey,
    UniqueConstraint, func,
)
from sqlalchemy.orm import relationship

from access_control.db.base import Base


class Permission(Base):
    """A grantable (module, resource, action) capability.

    Lookups key on (resource, action); module is a grouping label.
    """
    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("resource", "action", name="uq_permissions_resource_action"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False, index=True)  # e.g. "invoices.edit"
    display_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    module = Column(String(50), nullable=False, index=True)
    resource = Column(String(100), nullable=False)
    action = Column(String(50), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    grants = relationship(
        "RolePermission", back_populates="permission", cascade="all, delete-orphan",
    )


class RolePermission(Base):
    """Grant edge. Presence grants, absence does not; there is no deny row."""
    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_edge"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_id = Column(Integer, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    role = relationship("Role", back_populates="grants")
    permission = relationship("Permission", back_populates="grants", lazy="joined")
