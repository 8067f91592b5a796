import os

os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.pop("WEBHOOK_URL", None)

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.session import get_db
from app.models import Base, User
from app.core.security import create_access_token, hash_password
from app.core.config import settings
from app.core.enums import UserRole
from app.core import redis as redis_module


TEST_DATABASE_URL = os.environ["DATABASE_URL"]


class FakeRedis:
    """Dict-backed stand-in for the redis.asyncio calls the app makes."""

    def __init__(self, fail=False):
        self.store = {}
        self.expiry = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise ConnectionError("redis down")

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.store[key] = value if isinstance(value, bytes) else str(value).encode()
        self.expiry[key] = ex

    async def incr(self, key):
        self._check()
        value = int(self.store.get(key, b"0")) + 1
        self.store[key] = str(value).encode()
        return value

    async def delete(self, key):
        self._check()
        self.store.pop(key, None)


def _make_engine():
    if not TEST_DATABASE_URL.startswith("sqlite"):
        return create_async_engine(TEST_DATABASE_URL, echo=False, future=True)

    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # let SQLAlchemy own BEGIN so SAVEPOINTs behave on sqlite
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


@pytest.fixture
async def test_engine():
    engine = _make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session_factory(test_engine):
    return sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def test_client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def create_user(session_factory):
    # closed before returning; the sqlite test connection is shared
    async def _create_user(username: str, role: UserRole, password: str = "secret123"):
        async with session_factory() as session:
            user = User(
                username=username,
                password_hash=hash_password(password),
                full_name=username.replace("_", " ").title(),
                role=role,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user

    return _create_user


def auth_headers(user) -> dict:
    token = create_access_token(str(user.id), user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin(create_user):
    return await create_user("admin_1", UserRole.ADMIN)


@pytest.fixture
async def creator(create_user):
    return await create_user("creator_1", UserRole.QUOTE_CREATOR)


@pytest.fixture
async def creator_2(create_user):
    return await create_user("creator_2", UserRole.QUOTE_CREATOR)


@pytest.fixture
async def price_manager(create_user):
    return await create_user("pricer_1", UserRole.PRICE_MANAGER)


@pytest.fixture
async def quality_controller(create_user):
    return await create_user("qc_1", UserRole.QUALITY_CONTROLLER)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def creator_headers(creator):
    return auth_headers(creator)


@pytest.fixture
def creator_2_headers(creator_2):
    return auth_headers(creator_2)


@pytest.fixture
def price_manager_headers(price_manager):
    return auth_headers(price_manager)


@pytest.fixture
def qc_headers(quality_controller):
    return auth_headers(quality_controller)


@pytest.fixture
def valid_quote_data():
    return {
        "customer": {"name": "Jane Smith", "phone": "0400 111 222", "address": "1 George St, Sydney"},
        "vehicle": {"make": "Audi", "model": "A4", "year": "03/2019", "rego": "ABC123", "auto": True},
        "parts": [
            {"name": "Camera", "number": "4K0980546"},
            {"name": "Left Headlamp", "number": "L"},
        ],
        "notes": "Front damage",
        "required_by": "21/10/2026 2:30pm",
    }


@pytest.fixture
def create_quote_factory(test_client, creator_headers, valid_quote_data):
    async def _create_quote(headers=None, **overrides):
        data = dict(valid_quote_data)
        data.update(overrides)
        response = await test_client.post("/quotes/", json=data, headers=headers or creator_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create_quote


@pytest.fixture
def app_settings():
    """Return application settings"""
    return settings


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_module, "redis", fake)
    return fake


@pytest.fixture
def failing_redis(monkeypatch):
    fake = FakeRedis(fail=True)
    monkeypatch.setattr(redis_module, "redis", fake)
    return fake


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "auth: marks tests related to authentication"
    )
    config.addinivalue_line(
        "markers", "crud: marks tests related to CRUD operations"
    )
    config.addinivalue_line(
        "markers", "rules: marks tests related to brand part rules"
    )
    config.addinivalue_line(
        "markers", "workflow: marks tests related to quote status transitions"
    )
    config.addinivalue_line(
        "markers", "webhooks: marks tests related to webhooks"
    )
    config.addinivalue_line(
        "markers", "rate_limit: marks tests related to rate limiting"
    )
    config.addinivalue_line(
        "markers", "audit: marks tests related to audit logging"
    )
    config.addinivalue_line(
        "markers", "idempotency: marks tests related to idempotency"
    )
