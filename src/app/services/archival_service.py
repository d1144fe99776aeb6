"""Tenant-to-project archival cascade."""

from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.config import get_settings
from src.app.core.db.transaction import transactional
from src.app.core.logging import get_logger
from src.app.repositories import ProjectRepository
from src.app.schemas import CascadeReport

logger = get_logger(__name__)


class ArchivalCascade:
    """Archives every project of an archived tenant.

    The tenant's own archived status is never rolled back from here: once a
    tenant flips, the cascade either finishes or reports how many projects
    are still pending so the sweep job can pick them up.
    """

    def __init__(self, project_repo: ProjectRepository, session: AsyncSession):
        self.project_repo = project_repo
        self.session = session

    async def archive_projects(self, tenant_id: UUID) -> int:
        """Batch-archive the tenant's projects in the caller's transaction."""
        return await self.project_repo.archive_by_tenant(tenant_id)

    async def cascade_archive_tenant(
        self, tenant_id: UUID, max_attempts: int | None = None
    ) -> CascadeReport:
        """Run the batch in its own transactions until nothing is pending.

        Returns:
            Report of archived vs. still-pending projects. `pending` > 0 means
            the retry budget ran out.
        """
        max_attempts = max_attempts or get_settings().cascade_max_attempts
        report = CascadeReport(tenant_id=tenant_id)

        for attempt in range(1, max_attempts + 1):
            report.attempts = attempt
            try:
                report.archived += await self.archive_projects(tenant_id)
                await self.session.commit()
            except SQLAlchemyError as e:
                await self.session.rollback()
                logger.warning(
                    "Cascade attempt failed",
                    tenant_id=str(tenant_id),
                    attempt=attempt,
                    error=str(e),
                )
                continue
            finally:
                self.session.expunge_all()

            report.pending = await self._count_pending(tenant_id)
            if report.pending == 0:
                logger.info(
                    "Tenant cascade complete",
                    tenant_id=str(tenant_id),
                    archived=report.archived,
                    attempts=attempt,
                )
                return report

        report.pending = await self._count_pending(tenant_id)
        if report.pending:
            logger.error(
                "Tenant cascade incomplete",
                tenant_id=str(tenant_id),
                archived=report.archived,
                pending=report.pending,
                attempts=report.attempts,
            )
        return report

    async def list_pending_cascades(self) -> list[UUID]:
        """Archived tenants that still own non-archived projects."""
        return await transactional(
            self.session,
            self.project_repo.list_tenants_pending_cascade,
            name="list_pending_cascades",
        )

    async def _count_pending(self, tenant_id: UUID) -> int:
        return await transactional(
            self.session,
            lambda: self.project_repo.count_unarchived(tenant_id),
            name="count_pending_cascade",
        )
