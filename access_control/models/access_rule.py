"""Page access rule model: one level per (role, page)."""

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship

from access_control.db.base import Base


class AccessRule(Base):
    """Stored access level of a role on a page. No row means ``none``."""
    __tablename__ = "page_access"
    __table_args__ = (
        UniqueConstraint("role_id", "page_url", name="uq_page_access_role_page"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    page_url = Column(String(255), nullable=False, index=True)
    page_name = Column(String(255), nullable=True)
    access_level = Column(String(16), nullable=False, default="none")
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    role = relationship("Role", back_populates="access_rules")
