"""
Pytest configuration and fixtures.
"""
import fnmatch
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEBUG"] = "false"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import access_control.models  # noqa: F401  registers the tables
from access_control.db.base import Base
from access_control.models.role import Role
from access_control.services.cache_service import cache_service
from access_control.services.context_loader import ContextLoader
from access_control.services.permission_service import permission_service

ADMIN_ID = 1
MANAGER_ID = 2
SALES_ID = 3
VIEWER_ID = 4
PRODUCTION_ID = 5
RETIRED_ID = 6


class FakeRedis:
    """In-memory stand-in for the few redis commands the cache uses."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, *keys):
        return sum(1 for k in keys if self.store.pop(k, None) is not None)

    def keys(self, pattern):
        return [k for k in self.store if fnmatch.fnmatch(k, pattern)]

    def ping(self):
        return True


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so worker-thread loads get their own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'access.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def fake_cache(monkeypatch):
    """Route the shared cache service to an in-memory store."""
    fake = FakeRedis()
    monkeypatch.setattr(cache_service, "_client", fake)
    return fake


@pytest.fixture
def loader(session_factory):
    return ContextLoader(session_factory=session_factory, cache=cache_service, ttl_seconds=300)


@pytest.fixture
def roles(db):
    """The standard role set: ADMIN is the superuser, RETIRED is inactive."""
    rows = [
        Role(id=ADMIN_ID, name="ADMIN", display_name="Administrator", level=100, is_superuser=True),
        Role(id=MANAGER_ID, name="MANAGER", display_name="Manager", level=80),
        Role(id=SALES_ID, name="SALES", display_name="Sales", level=40),
        Role(id=VIEWER_ID, name="VIEWER", display_name="Viewer", level=20),
        Role(id=PRODUCTION_ID, name="PRODUCTION", display_name="Production", level=40),
        Role(id=RETIRED_ID, name="RETIRED", display_name="Retired", level=10, is_active=False),
    ]
    db.add_all(rows)
    db.commit()
    return {r.name: r for r in rows}


@pytest.fixture
def permissions(db, roles):
    """Default permission catalog keyed by (resource, action)."""
    from access_control.models.permission import Permission

    permission_service.initialize_defaults(db)
    return {(p.resource, p.action): p for p in db.query(Permission).all()}


@pytest.fixture
def client(session_factory, loader, roles):
    """FastAPI test client wired to the test database and loader."""
    from fastapi.testclient import TestClient
    from access_control.core.rate_limiter import limiter
    from access_control.db.session import get_db
    from access_control.main import app
    from access_control.services.context_loader import get_context_loader

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_context_loader] = lambda: loader
    limiter.reset()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth():
    """Build Authorization headers for a role id."""
    from access_control.core.security import create_access_token

    def _auth(role_id):
        return {"Authorization": f"Bearer {create_access_token(role_id)}"}
    return _auth
