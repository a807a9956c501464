"""
Tests for async context loading and caching.
"""
import asyncio
import json
import threading

from sqlalchemy.exc import OperationalError

from access_control.core.levels import AccessLevel
from access_control.services.cache_service import context_key
from access_control.services.guard import LoadStatus
from access_control.services.page_access_service import page_access_service

from conftest import ADMIN_ID, MANAGER_ID, SALES_ID, VIEWER_ID


def run(coro):
    return asyncio.run(coro)


class TestLoad:

    def test_unknown_role_is_none(self, loader, roles):
        assert run(loader.load(999)) is None

    def test_loads_and_caches(self, loader, db, roles, fake_cache):
        page_access_service.bulk_update(db, [{"page_url": "/", "role_id": SALES_ID, "access_level": "read"}])

        ctx = run(loader.load(SALES_ID))
        assert ctx.access_level("/") is AccessLevel.READ
        assert fake_cache.ttls[context_key(SALES_ID)] == 300
        assert json.loads(fake_cache.get(context_key(SALES_ID)))["rules"] == {"/": "read"}

    def test_cache_hit_skips_store(self, loader, roles, fake_cache, monkeypatch):
        run(loader.load(MANAGER_ID))

        def fail(role_id):
            raise AssertionError("store should not be read")

        monkeypatch.setattr(loader, "_fetch", fail)
        assert run(loader.load(MANAGER_ID)).name == "MANAGER"

    def test_writes_are_visible_on_next_load(self, loader, db, roles):
        assert not run(loader.load(VIEWER_ID)).can_view("/customers")
        page_access_service.bulk_update(
            db, [{"page_url": "/customers", "role_id": VIEWER_ID, "access_level": "read"}],
        )
        assert run(loader.load(VIEWER_ID)).can_view("/customers")

    def test_cache_calls_run_in_worker_threads(self, loader, roles, monkeypatch):
        loop_thread = threading.get_ident()
        seen = []
        real_get, real_set = loader.cache.get_json, loader.cache.set_json

        def get_json(key):
            seen.append(threading.get_ident())
            return real_get(key)

        def set_json(key, value, ttl_seconds=300):
            seen.append(threading.get_ident())
            real_set(key, value, ttl_seconds)

        monkeypatch.setattr(loader.cache, "get_json", get_json)
        monkeypatch.setattr(loader.cache, "set_json", set_json)
        run(loader.load(SALES_ID))

        assert len(seen) == 2
        assert loop_thread not in seen

    def test_invalidate(self, loader, roles, fake_cache):
        run(loader.load(ADMIN_ID))
        loader.invalidate(ADMIN_ID)
        assert fake_cache.get(context_key(ADMIN_ID)) is None

    def test_load_many(self, loader, roles):
        contexts = run(loader.load_many([SALES_ID, MANAGER_ID, SALES_ID, 999]))
        assert list(contexts) == [SALES_ID, MANAGER_ID, 999]
        assert contexts[MANAGER_ID].name == "MANAGER"
        assert contexts[999] is None


class TestState:

    def test_no_role_is_ready_without_context(self, loader):
        state = run(loader.state(None))
        assert state.status == LoadStatus.READY
        assert state.context is None

    def test_store_failure_is_error_state(self, loader, roles, monkeypatch):
        def broken(role_id):
            raise OperationalError("SELECT", {}, Exception("connection refused"))

        monkeypatch.setattr(loader, "_fetch", broken)
        state = run(loader.state(SALES_ID))
        assert state.status == LoadStatus.ERROR
        assert state.error.role_id == SALES_ID

    def test_role_with_no_rules_is_ready_not_error(self, loader, roles):
        state = run(loader.state(VIEWER_ID))
        assert state.status == LoadStatus.READY
        assert state.context.rules == {}
