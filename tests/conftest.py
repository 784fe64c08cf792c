"""
Shared fixtures.

The app module builds a global engine from DATABASE_URL at import time, so the
environment is pointed at a throwaway SQLite file before anything from
lulemo.app is imported. Each test then gets its own database file wired in
through dependency overrides.
"""

import asyncio
import os
import tempfile
from datetime import timedelta

_TMP_DIR = tempfile.mkdtemp(prefix="lulemo-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'global.db')}"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

from lulemo.app.core.clock import utcnow  # noqa: E402
from lulemo.app.core.config import Settings  # noqa: E402
from lulemo.app.db.base import Base  # noqa: E402
from lulemo.app.db.session import create_engine_for, create_sessionmaker  # noqa: E402
from lulemo.app.models import auth_session, email_verification, user  # noqa: E402,F401

FAST_ITERATIONS = 1_000
ADMIN_EMAIL = "admin@example.com"


class FakeClock:
    """Callable stand-in for utcnow() that only moves when told to."""

    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'lulemo.db'}",
        ACCESS_TOKEN_SECRET="test-access-token-secret",
        PASSWORD_ITERATIONS=FAST_ITERATIONS,
        DEV_BYPASS_EMAIL=True,
        ADMIN_EMAILS=ADMIN_EMAIL,
        _env_file=None,
    )


@pytest.fixture
def db_factory(settings):
    """async_sessionmaker bound to a fresh database with all tables created."""
    engine = create_engine_for(settings.DATABASE_URL)

    async def create_all():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_all())
    yield create_sessionmaker(engine)
    asyncio.run(engine.dispose())


@pytest.fixture
def run_db(db_factory):
    """Run `fn(db)` to completion inside one session."""

    def runner(fn):
        async def scenario():
            async with db_factory() as db:
                return await fn(db)

        return asyncio.run(scenario())

    return runner


@pytest.fixture
def make_user():
    """Insert a user directly, skipping registration and its email code."""
    from lulemo.app.models.user import DEFAULT_PERMISSIONS, ROLE_USER, STATUS_ACTIVE, User
    from lulemo.security.hashing import get_password_hash

    async def create(db, email="user@example.com", password="abcd1234", role=ROLE_USER, status=STATUS_ACTIVE):
        account = User(email=email, role=role, region="unknown", status=status)
        account.password_hash, account.password_salt = get_password_hash(password, FAST_ITERATIONS)
        account.password_iterations = FAST_ITERATIONS
        account.permission_list = list(DEFAULT_PERMISSIONS)
        db.add(account)
        await db.commit()
        return account

    return create


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr("lulemo.app.services.sessions.utcnow", fake)
    return fake


@pytest.fixture
def app(settings, db_factory):
    from lulemo.app.api import deps
    from lulemo.app.db.session import get_db
    from lulemo.app.main import app as fastapi_app

    async def override_get_db():
        async with db_factory() as db:
            yield db

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[deps.get_app_settings] = lambda: settings
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client
