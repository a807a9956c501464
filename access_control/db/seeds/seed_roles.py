"""Seed default roles into the database."""

from sqlalchemy.orm import Session

from access_control.models.role import Role

DEFAULT_ROLES = [
    {"id": 1, "name": "ADMIN", "display_name": "Administrator", "level": 100, "is_superuser": True},
    {"id": 2, "name": "MANAGER", "display_name": "Manager", "level": 80},
    {"id": 3, "name": "ACCOUNTANT", "display_name": "Accountant", "level": 60},
    {"id": 4, "name": "SALES", "display_name": "Sales", "level": 40},
    {"id": 5, "name": "PRODUCTION", "display_name": "Production", "level": 40},
    {"id": 6, "name": "VIEWER", "display_name": "Viewer", "level": 20},
]


def seed_roles(db: Session) -> None:
    """Insert default roles if they don't already exist."""
    for role_data in DEFAULT_ROLES:
        existing = db.query(Role).filter(Role.name == role_data["name"]).first()
        if not existing:
            db.add(Role(is_active=True, **role_data))

    db.commit()
    print(f"✅ Seeded {len(DEFAULT_ROLES)} roles")
