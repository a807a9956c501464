"""Seed default page access rules and fill the rest of the matrix with 'none'."""

from sqlalchemy.orm import Session

from access_control.models.role import Role
from access_control.services.page_access_service import page_access_service

DEFAULT_RULES = {
    "MANAGER": {
        "/": "read", "/sales/quotations": "create", "/sales/invoices": "create",
        "/production/work-orders": "create", "/production/calendar": "edit",
        "/inventory": "edit", "/customers": "edit", "/reports/production": "read",
        "/users": "read",
    },
    "ACCOUNTANT": {
        "/": "read", "/accounting": "create", "/sales/invoices": "read",
        "/sales/tax-invoices": "edit", "/sales/receipts": "edit",
    },
    "SALES": {
        "/": "read", "/sales/quotations": "create", "/sales/invoices": "edit",
        "/customers": "create",
    },
    "PRODUCTION": {
        "/": "read", "/production/calendar": "read", "/production/work-queue-planning": "edit",
        "/production/work-orders": "edit", "/production/daily-work-log": "create",
    },
    "VIEWER": {
        "/": "read", "/sales/quotations": "read", "/production/work-orders": "read",
    },
}


def seed_page_access(db: Session) -> None:
    """Write the default rules for roles that have none, then materialize the rest."""
    changes = []
    for role_name, rules in DEFAULT_RULES.items():
        role = db.query(Role).filter(Role.name == role_name).first()
        if not role or role.access_rules:
            continue
        changes.extend(
            {"page_url": url, "role_id": role.id, "access_level": level}
            for url, level in rules.items()
        )
    if changes:
        page_access_service.bulk_update(db, changes)
    created = page_access_service.materialize_all(db)
    print(f"✅ Seeded {len(changes)} page rules, materialized {created} more")
