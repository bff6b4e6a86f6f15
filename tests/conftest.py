"""
Pytest configuration and fixtures for portal testing
"""

import os
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

# Set test environment
os.environ["ENVIRONMENT"] = "test"

from portal.main import app as real_app
from portal.db.config import build_engine, get_session
from portal.dependencies import get_registry
from portal.models.persisted_portal import AccountRecord, Base, ProfileRecord
from portal.repositories.catalog_store import CatalogStore
from portal.security import hash_password
from portal.services.registry import PortalRegistry


ADMIN_EMAIL = "admin@example.com"
STUDENT_EMAIL = "student@example.com"
PASSWORD = "correct-horse"


@pytest.fixture
async def session_factory(tmp_path):
    """Isolated SQLite database file per test"""
    engine = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'portal_test.db'}", poolclass=NullPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    yield factory
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return CatalogStore(session_factory)


@pytest.fixture
async def accounts(session_factory):
    """An admin and a student account, keyed by role"""
    ids = {"admin": "user-admin-0001", "student": "user-student-0001"}
    hashed = hash_password(PASSWORD)
    async with session_factory() as session:
        for role, email in (("admin", ADMIN_EMAIL), ("student", STUDENT_EMAIL)):
            session.add(ProfileRecord(id=ids[role], email=email, role=role))
        await session.flush()
        for role, email in (("admin", ADMIN_EMAIL), ("student", STUDENT_EMAIL)):
            session.add(AccountRecord(id=ids[role], email=email, password_hash=hashed))
        await session.commit()
    return ids


@pytest.fixture
async def onboarding(store):
    """Course "Onboarding" with lessons L1 (order 1) and L2 (order 2)"""
    course = await store.insert(
        "courses", {"title": "Onboarding", "description": "First week"}
    )
    l2 = await store.insert(
        "trainings",
        {
            "title": "L2",
            "video_url": "https://videos.example.com/l2",
            "order_number": 2,
            "course_id": course["id"],
        },
    )
    l1 = await store.insert(
        "trainings",
        {
            "title": "L1",
            "video_url": "https://videos.example.com/l1",
            "order_number": 1,
            "course_id": course["id"],
        },
    )
    return {"course": course, "l1": l1, "l2": l2}


@pytest.fixture
def registry(session_factory):
    return PortalRegistry.from_session_factory(session_factory)


@pytest.fixture
async def test_app(session_factory, registry):
    async def override_session():
        async with session_factory() as session:  # type: ignore
            yield session

    real_app.dependency_overrides[get_session] = override_session
    real_app.dependency_overrides[get_registry] = lambda: registry
    yield real_app
    real_app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app):
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# Helper functions for tests
async def sign_in(client, role: str, email: str, password: str = PASSWORD):
    """Choose a role and submit credentials; returns the login response"""
    r = await client.post("/api/v1/session/role", json={"role": role})
    assert r.status_code == 200, r.text
    return await client.post(
        "/api/v1/session/login", json={"email": email, "password": password}
    )
