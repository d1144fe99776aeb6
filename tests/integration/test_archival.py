"""Integration tests for tenant archival and its project cascade."""

from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from src.app.core.exceptions import InvalidStateError, NotFoundError
from src.app.models import Project, TenantStatus
from src.app.repositories import ProjectRepository
from src.app.services import build_archival_cascade
from src.app.temporal.activities import archival as archival_activities
from src.app.temporal.activities import sweep_pending_cascades
from tests.factories import ProjectFactory, TenantFactory

pytestmark = pytest.mark.integration


@pytest.fixture
async def tenant_projects(seed, active_tenant) -> list[Project]:
    projects = [ProjectFactory.build(tenant_id=active_tenant.id) for _ in range(3)]
    await seed(*projects)
    return projects


@pytest.fixture
def broken_cascade(monkeypatch: pytest.MonkeyPatch):
    """Make every project batch fail like a locked database would.

    Returns the working implementation so a test can restore it.
    """
    original = ProjectRepository.archive_by_tenant

    async def fail(self, tenant_id):
        raise OperationalError("UPDATE projects", {}, Exception("database is locked"))

    monkeypatch.setattr(ProjectRepository, "archive_by_tenant", fail)
    return original


class TestArchiveTenant:
    async def test_cascades_to_projects(
        self, tenant_service, project_service, active_tenant, tenant_projects
    ):
        result = await tenant_service.archive_tenant(active_tenant.id)

        assert result.tenant.status == TenantStatus.ARCHIVED.value
        assert result.tenant.archived_at is not None
        assert result.cascade.archived == 3
        assert result.cascade.complete
        projects = await project_service.list_projects(active_tenant.id, include_archived=True)
        assert all(p.archived for p in projects)

    async def test_already_archived_projects_untouched(
        self, tenant_service, project_service, active_tenant, tenant_projects
    ):
        archived_first = await project_service.archive_project(tenant_projects[0].id)

        result = await tenant_service.archive_tenant(active_tenant.id)

        assert result.cascade.archived == 2
        project = await project_service.get_project(tenant_projects[0].id)
        assert project.archived_at == archived_first.archived_at

    async def test_rearchive_is_invalid(self, tenant_service, active_tenant):
        await tenant_service.archive_tenant(active_tenant.id)

        with pytest.raises(InvalidStateError) as exc_info:
            await tenant_service.archive_tenant(active_tenant.id)

        assert exc_info.value.code == "tenant.already_archived"

    async def test_pending_tenant_can_be_archived(self, tenant_service, seed):
        tenant = TenantFactory.pending()
        await seed(tenant)

        result = await tenant_service.archive_tenant(tenant.id)

        assert result.tenant.status == TenantStatus.ARCHIVED.value
        assert result.cascade.archived == 0

    async def test_unknown_tenant(self, tenant_service):
        with pytest.raises(NotFoundError):
            await tenant_service.archive_tenant(uuid4())

    async def test_archived_tenant_rejects_new_projects(
        self, tenant_service, project_service, active_tenant
    ):
        await tenant_service.archive_tenant(active_tenant.id)

        with pytest.raises(InvalidStateError):
            await project_service.create_project("alice", active_tenant.id, "Late")


class TestCascadeFailure:
    async def test_failed_batch_reports_pending(
        self, tenant_service, active_tenant, tenant_projects, broken_cascade
    ):
        result = await tenant_service.archive_tenant(active_tenant.id)

        # The tenant flip stands even though no project could be archived
        assert result.tenant.status == TenantStatus.ARCHIVED.value
        assert result.cascade.archived == 0
        assert result.cascade.pending == 3
        assert result.cascade.attempts == 3
        assert not result.cascade.complete

    async def test_sweep_finishes_incomplete_cascade(
        self,
        tenant_service,
        project_service,
        active_tenant,
        tenant_projects,
        broken_cascade,
        session_factory,
        monkeypatch,
    ):
        await tenant_service.archive_tenant(active_tenant.id)
        monkeypatch.setattr(ProjectRepository, "archive_by_tenant", broken_cascade)
        monkeypatch.setattr(archival_activities, "get_session", session_factory)

        result = await sweep_pending_cascades()

        assert result == {"tenants": 1, "archived": 3, "pending": 0}
        projects = await project_service.list_projects(active_tenant.id, include_archived=True)
        assert all(p.archived for p in projects)

        # Nothing left for the next run
        assert await sweep_pending_cascades() == {"tenants": 0, "archived": 0, "pending": 0}


class TestPendingCascades:
    async def test_lists_archived_tenants_with_live_projects(self, db_session, seed):
        stuck = TenantFactory.archived()
        done = TenantFactory.archived()
        live = TenantFactory.build()
        await seed(stuck, done, live)
        await seed(
            ProjectFactory.build(tenant_id=stuck.id),
            ProjectFactory.build(tenant_id=done.id, archived=True),
            ProjectFactory.build(tenant_id=live.id),
        )

        cascade = build_archival_cascade(db_session)

        assert await cascade.list_pending_cascades() == [stuck.id]
