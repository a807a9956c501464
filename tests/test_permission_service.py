"""
Tests for the resource-action permission registry.
"""
import json

import pytest

from access_control.core.exceptions import ResourceNotFoundError
from access_control.models.audit_log import AuditLog
from access_control.models.permission import Permission, RolePermission
from access_control.services.cache_service import context_key
from access_control.services.permission_service import DEFAULT_PERMISSIONS, permission_service

from conftest import ADMIN_ID, MANAGER_ID, RETIRED_ID, SALES_ID


def _expected_count():
    return sum(len(actions) for _, _, actions in DEFAULT_PERMISSIONS)


class TestInitializeDefaults:

    def test_creates_catalog_once(self, db, roles):
        assert permission_service.initialize_defaults(db) == _expected_count()
        assert permission_service.initialize_defaults(db) == 0
        assert db.query(Permission).count() == _expected_count()

    def test_keeps_existing_rows(self, db, roles):
        db.add(Permission(
            name="custom.invoices.view", display_name="Custom", module="sales",
            resource="invoices", action="view", is_active=False,
        ))
        db.commit()

        created = permission_service.initialize_defaults(db)
        assert created == _expected_count() - 1
        kept = db.query(Permission).filter_by(resource="invoices", action="view").one()
        assert kept.name == "custom.invoices.view"
        assert kept.is_active is False

    def test_list_filters_by_module(self, db, permissions):
        sales = permission_service.list_permissions(db, module="sales")
        assert sales
        assert {p.module for p in sales} == {"sales"}


class TestGrantRevoke:

    def test_grant_is_idempotent(self, db, permissions):
        perm = permissions[("invoices", "edit")]
        assert permission_service.grant(db, SALES_ID, perm.id) is True
        assert permission_service.grant(db, SALES_ID, perm.id) is False
        assert db.query(RolePermission).filter_by(role_id=SALES_ID).count() == 1

    def test_revoke_is_idempotent(self, db, permissions):
        perm = permissions[("invoices", "edit")]
        permission_service.grant(db, SALES_ID, perm.id)
        assert permission_service.revoke(db, SALES_ID, perm.id) is True
        assert permission_service.revoke(db, SALES_ID, perm.id) is False
        assert not permission_service.has_permission(db, SALES_ID, "invoices", "edit")

    def test_revoke_of_never_granted_pair(self, db, permissions):
        assert permission_service.revoke(db, SALES_ID, permissions[("stock", "delete")].id) is False

    def test_unknown_role_or_permission(self, db, permissions):
        with pytest.raises(ResourceNotFoundError):
            permission_service.grant(db, 999, permissions[("stock", "view")].id)
        with pytest.raises(ResourceNotFoundError):
            permission_service.grant(db, SALES_ID, 99999)

    def test_grant_drops_cached_context(self, db, permissions, fake_cache):
        fake_cache.setex(context_key(SALES_ID), 300, "{}")
        permission_service.grant(db, SALES_ID, permissions[("stock", "view")].id)
        assert fake_cache.get(context_key(SALES_ID)) is None

    def test_grant_is_audited(self, db, permissions):
        perm = permissions[("reports", "export")]
        permission_service.grant(db, MANAGER_ID, perm.id, actor_role_id=ADMIN_ID)

        entry = db.query(AuditLog).filter_by(action="permission.granted").one()
        assert entry.actor_role_id == ADMIN_ID
        assert entry.resource_id == str(MANAGER_ID)
        assert json.loads(entry.new_value_json)["name"] == "reports.export"

    def test_list_grants(self, db, permissions):
        permission_service.grant(db, SALES_ID, permissions[("customers", "view")].id)
        permission_service.grant(db, SALES_ID, permissions[("invoices", "view")].id)
        names = {p.name for p in permission_service.list_grants(db, SALES_ID)}
        assert names == {"customers.view", "invoices.view"}

        with pytest.raises(ResourceNotFoundError):
            permission_service.list_grants(db, 999)


class TestChecks:

    def test_exact_pair_only(self, db, permissions):
        permission_service.grant(db, SALES_ID, permissions[("quotations", "create")].id)
        assert permission_service.has_permission(db, SALES_ID, "quotations", "create")
        assert not permission_service.has_permission(db, SALES_ID, "quotations", "view")

    def test_any_and_all(self, db, permissions):
        permission_service.grant(db, SALES_ID, permissions[("receipts", "view")].id)
        pairs = [("receipts", "view"), ("receipts", "edit")]
        assert permission_service.has_any(db, SALES_ID, pairs)
        assert not permission_service.has_all(db, SALES_ID, pairs)
        assert permission_service.has_all(db, SALES_ID, [])
        assert not permission_service.has_any(db, SALES_ID, [])

    def test_superuser_holds_everything(self, db, permissions):
        assert permission_service.has_all(db, ADMIN_ID, [("users", "delete"), ("nonexistent", "thing")])

    def test_unknown_and_inactive_roles_hold_nothing(self, db, permissions):
        permission_service.grant(db, RETIRED_ID, permissions[("stock", "view")].id)
        assert not permission_service.has_permission(db, RETIRED_ID, "stock", "view")
        assert not permission_service.has_permission(db, 999, "stock", "view")
