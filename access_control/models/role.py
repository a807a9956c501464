"""Role model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship

from access_control.db.base import Base


class Role(Base):
    """Administrator-defined role.

    ``is_superuser`` marks the bypass role: every access check for it
    resolves to the maximum regardless of stored rules.
    """
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=False)
    level = Column(Integer, nullable=False, default=0)  # display/sorting only
    is_active = Column(Boolean, default=True, nullable=False)
    is_superuser = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    access_rules = relationship(
        "AccessRule", back_populates="role", cascade="all, delete-orphan",
    )
    grants = relationship(
        "RolePermission", back_populates="role", cascade="all, delete-orphan",
    )
