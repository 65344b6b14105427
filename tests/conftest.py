"""
Shared fixtures.

Each test gets its own file-backed SQLite database so concurrent transactions
really contend for the write lock.
"""

from __future__ import annotations

import uuid

import pytest
from fastapi import Request
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database.engine import build_engine, get_db, get_session_factory, init_db
from app.core.errors import NotAuthenticatedError
from app.features.join_requests.service import JoinRequestWorkflow
from app.features.members.service import MembershipManager
from app.features.organizations.service import OrganizationService
from app.features.permissions.catalog import sync_permission_catalog
from app.features.permissions.evaluator import AuthorizationEvaluator
from app.features.permissions.models import Permission
from app.features.permissions.roles import RoleStore
from app.features.users.dependencies import get_current_user
from app.features.users.models import User
from app.main import app


@pytest.fixture
async def engine(tmp_path):
    db_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'membership.db'}")
    await init_db(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        async with session.begin():
            await sync_permission_catalog(session)
    return factory


@pytest.fixture
async def permission_ids(session_factory) -> dict[str, str]:
    """Permission name -> id."""
    async with session_factory() as session:
        rows = (await session.execute(select(Permission.name, Permission.id))).all()
    return dict(rows)


@pytest.fixture
def make_user(session_factory):
    async def _make_user(name: str | None = "Test User", email: str | None = None) -> str:
        suffix = uuid.uuid4().hex[:10]
        user = User(
            appwrite_id=f"aw-{suffix}",
            email=email or f"user-{suffix}@example.org",
            name=name,
        )
        async with session_factory() as session:
            async with session.begin():
                session.add(user)
        return user.id

    return _make_user


@pytest.fixture
def organizations(session_factory) -> OrganizationService:
    return OrganizationService(session_factory)


@pytest.fixture
def roles(session_factory) -> RoleStore:
    return RoleStore(session_factory)


@pytest.fixture
def members(session_factory) -> MembershipManager:
    return MembershipManager(session_factory)


@pytest.fixture
def workflow(session_factory) -> JoinRequestWorkflow:
    return JoinRequestWorkflow(session_factory)


@pytest.fixture
def evaluator(session_factory) -> AuthorizationEvaluator:
    return AuthorizationEvaluator(session_factory)


@pytest.fixture
async def bahari(make_user, organizations):
    """Organization "Bahari" with its founding admin. Returns (org, founder_id)."""
    founder_id = await make_user(name="Amina Founder")
    org_id = await organizations.create_organization_with_member(founder_id, name="Bahari", slug="lsm-bahari")
    return await organizations.get_organization(org_id), founder_id


# ---------------------------------------------------------------------------
# HTTP client with auth and database overrides
# (requests authenticate as "Bearer <local user id>", see tests.helpers)
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(session_factory):
    async def override_db():
        async with session_factory() as session:
            yield session
            await session.commit()

    async def override_current_user(request: Request) -> User:
        scheme, _, user_id = request.headers.get("Authorization", "").partition(" ")
        if scheme.lower() != "bearer" or not user_id:
            raise NotAuthenticatedError()
        async with session_factory() as session:
            user = await session.get(User, user_id)
        if user is None:
            raise NotAuthenticatedError("Invalid token")
        return user

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_current_user] = override_current_user
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
