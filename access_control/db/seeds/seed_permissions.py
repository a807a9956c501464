"""Seed the default permission catalog and role grants."""

from sqlalchemy.orm import Session

from access_control.models.permission import Permission
from access_control.models.role import Role
from access_control.services.permission_service import permission_service

# role name -> (resource, action) pairs; ADMIN needs none, it bypasses every check
DEFAULT_GRANTS = {
    "MANAGER": [
        ("quotations", "view"), ("quotations", "create"), ("quotations", "edit"),
        ("invoices", "view"), ("invoices", "create"), ("invoices", "edit"),
        ("work_orders", "view"), ("work_orders", "create"), ("work_orders", "edit"),
        ("stock", "view"), ("customers", "view"), ("customers", "edit"),
        ("reports", "view"), ("reports", "export"), ("users", "view"), ("roles", "view"),
    ],
    "ACCOUNTANT": [
        ("transactions", "view"), ("transactions", "create"), ("transactions", "edit"),
        ("invoices", "view"), ("tax_invoices", "view"), ("receipts", "view"),
        ("reports", "view"),
    ],
    "SALES": [
        ("quotations", "view"), ("quotations", "create"), ("quotations", "edit"),
        ("invoices", "view"), ("customers", "view"), ("customers", "create"),
    ],
    "PRODUCTION": [
        ("work_orders", "view"), ("work_orders", "edit"), ("work_queue", "view"),
        ("daily_work_log", "view"), ("daily_work_log", "create"), ("calendar", "view"),
    ],
    "VIEWER": [
        ("quotations", "view"), ("work_orders", "view"), ("reports", "view"),
    ],
}


def seed_permissions(db: Session) -> None:
    """Insert the default permissions, then grant each role its defaults."""
    created = permission_service.initialize_defaults(db)
    print(f"✅ Seeded {created} permissions")

    by_pair = {(p.resource, p.action): p.id for p in db.query(Permission).all()}
    granted = 0
    for role_name, pairs in DEFAULT_GRANTS.items():
        role = db.query(Role).filter(Role.name == role_name).first()
        if not role:
            print(f"⚠️  Role {role_name} not found. Run seed_roles first.")
            continue
        for pair in pairs:
            if permission_service.grant(db, role.id, by_pair[pair]):
                granted += 1
    print(f"✅ Granted {granted} role permissions")
