"""Repository for Project entity."""

from uuid import UUID

from sqlalchemy import func, update
from sqlmodel import select

from src.app.models import Project, Tenant, TenantStatus
from src.app.models.base import utc_now
from src.app.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Repository for Project entity."""

    model = Project

    async def get_by_name(self, tenant_id: UUID, name: str) -> Project | None:
        """Get project by name within a tenant."""
        return await self.find_one(Project.tenant_id == tenant_id, Project.name == name)

    async def list_by_tenant(
        self, tenant_id: UUID, include_archived: bool = False
    ) -> list[Project]:
        """List a tenant's projects, newest first."""
        query = select(Project).where(Project.tenant_id == tenant_id)
        if not include_archived:
            query = query.where(Project.archived == False)  # noqa: E712
        result = await self.session.execute(
            query.order_by(Project.created_at.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def count_unarchived(self, tenant_id: UUID) -> int:
        """Count the tenant's projects that are not archived yet."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Project)
            .where(
                Project.tenant_id == tenant_id,
                Project.archived == False,  # noqa: E712
            )
        )
        return result.scalar_one()

    async def archive_by_tenant(self, tenant_id: UUID) -> int:
        """Archive every non-archived project of a tenant in one statement.

        Each project's version is bumped so in-flight membership writes on
        those projects lose their version guard.

        Returns:
            Number of projects archived.
        """
        now = utc_now()
        result = await self.session.execute(
            update(Project)
            .where(
                Project.tenant_id == tenant_id,  # type: ignore[arg-type]
                Project.archived == False,  # type: ignore[arg-type]  # noqa: E712
            )
            .values(
                archived=True,
                archived_at=now,
                updated_at=now,
                version=Project.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0  # type: ignore[attr-defined]

    async def list_tenants_pending_cascade(self) -> list[UUID]:
        """Archived tenants that still own non-archived projects."""
        result = await self.session.execute(
            select(Project.tenant_id)
            .join(Tenant, Tenant.id == Project.tenant_id)  # type: ignore[arg-type]
            .where(
                Tenant.status == TenantStatus.ARCHIVED.value,
                Project.archived == False,  # noqa: E712
            )
            .distinct()
        )
        return list(result.scalars().all())
