"""Integration test fixtures for database and HTTP client operations.

Each test gets its own SQLite database file with the full schema, using
the same BEGIN IMMEDIATE locking the application uses, so concurrent
units of work really contend. Uses polyfactory for seeding rows directly.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from src.app.core import db
from src.app.core.db import configure_sqlite_locking, get_session_factory
from src.app.core.health import reset_health_cache
from src.app.main import create_app
from src.app.models import Project, Tenant
from src.app.services import (
    InviteService,
    ProjectService,
    TenantService,
    build_invite_service,
    build_project_service,
    build_tenant_service,
)
from tests.factories import (
    ProjectFactory,
    ProjectMemberFactory,
    TenantFactory,
    TenantMemberFactory,
)


@pytest.fixture(scope="function")
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    """Create a file-backed test database with all tables."""
    test_engine = configure_sqlite_locking(
        create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'membership.db'}",
            connect_args={"timeout": 30},
        )
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return get_session_factory(engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Provide an async session for the services under test.

    Services commit through their own unit of work; nothing is left open
    between calls, so other sessions in the same test never wait on it.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def tenant_service(db_session: AsyncSession) -> TenantService:
    return build_tenant_service(db_session)


@pytest.fixture
def project_service(db_session: AsyncSession) -> ProjectService:
    return build_project_service(db_session)


@pytest.fixture
def invite_service(db_session: AsyncSession) -> InviteService:
    return build_invite_service(db_session)


@pytest.fixture
def seed(session_factory: async_sessionmaker[AsyncSession]) -> Callable[..., Any]:
    """Insert rows directly, bypassing the services, and commit them."""

    async def _seed(*rows: Any) -> None:
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()

    return _seed


@pytest.fixture
def fetch(session_factory: async_sessionmaker[AsyncSession]) -> Callable[..., Any]:
    """Read a row in a short-lived session so no lock outlives the read.

    Closing the session detaches the row with its loaded state intact.
    """

    async def _fetch(model: type[Any], *key: Any) -> Any:
        async with session_factory() as session:
            return await session.get(model, key[0] if len(key) == 1 else key)

    return _fetch


@pytest.fixture
async def active_tenant(seed) -> Tenant:
    """An active tenant owned by `alice` with her owner membership."""
    tenant = TenantFactory.build(name="Acme", owner_id="alice")
    await seed(tenant)
    await seed(TenantMemberFactory.owner_of(tenant))
    return tenant


@pytest.fixture
async def project_with_team(seed, active_tenant: Tenant) -> Project:
    """Project `Launch` in `active_tenant`: alice admin, dan deputy, erin contributor."""
    project = ProjectFactory.build(
        tenant_id=active_tenant.id, name="Launch", created_by=active_tenant.owner_id
    )
    await seed(project)
    await seed(
        ProjectMemberFactory.build(project_id=project.id, user_id="alice", role="admin"),
        ProjectMemberFactory.build(project_id=project.id, user_id="dan", role="deputy"),
        ProjectMemberFactory.build(project_id=project.id, user_id="erin", role="contributor"),
    )
    return project


@pytest.fixture
async def leftover_project(seed) -> Project:
    """Unarchived project `Leftover` whose tenant is archived, as after a failed cascade."""
    tenant = TenantFactory.archived(name="Defunct", owner_id="alice")
    await seed(tenant)
    project = ProjectFactory.build(tenant_id=tenant.id, name="Leftover", created_by="alice")
    await seed(TenantMemberFactory.owner_of(tenant), project)
    await seed(
        ProjectMemberFactory.build(project_id=project.id, user_id="alice", role="admin"),
        ProjectMemberFactory.build(project_id=project.id, user_id="dan", role="deputy"),
        ProjectMemberFactory.build(project_id=project.id, user_id="erin", role="contributor"),
    )
    return project


@pytest.fixture
async def client(engine: AsyncEngine, monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[AsyncClient]:
    """HTTP client for the app, backed by the test database."""
    await db.dispose_engine()
    monkeypatch.setattr(db.engine, "_engine", engine)
    reset_health_cache()

    app = create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    reset_health_cache()

